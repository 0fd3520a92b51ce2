"""
app/services/notifier.py

Purpose: Outbound result messages

- Rich-media attempt with plain-text fallback
- Video ready / failure notifications
- Resets the conversation after a terminal notification, whether or not
  the message was delivered
"""

from typing import Optional

from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState
from app.models.conversation import Conversation, reset_fields
from app.services.conversation_service import ConversationRepository
from app.services.twilio_service import TwilioService
from utils.constants import (
    EDITED_IMAGE_MESSAGE,
    EDITED_IMAGE_LINK_MESSAGE,
    VIDEO_READY_MESSAGE,
)

logger = get_logger(__name__)


class Notifier:
    """Sends job results to users and returns conversations to the start."""

    def __init__(self, twilio: TwilioService, conversations: ConversationRepository):
        self._twilio = twilio
        self._conversations = conversations

    async def send_with_fallback(
        self,
        to_phone: str,
        text: str,
        media_url: Optional[str],
        fallback_text: Optional[str] = None
    ) -> bool:
        """
        Tries an MMS first; if the provider rejects it, sends plain text.

        Returns:
            True if either message was accepted
        """
        if media_url:
            result = await self._twilio.send_message(to_phone, text, media_url=media_url)
            if result["success"]:
                return True
            logger.warning(f"MMS rejected ({result.get('error')}), falling back to text")

        result = await self._twilio.send_message(to_phone, fallback_text or text)
        if not result["success"]:
            logger.error(f"Text message also failed: {result.get('error')}")
        return result["success"]

    async def send_edited_image(self, conversation: Conversation) -> bool:
        """
        Delivers the edited image and asks what to do next.
        The conversation stays in WAITING_FOR_VIDEO_DECISION.
        """
        with LogContext(conversation_id=conversation.id):
            return await self.send_with_fallback(
                conversation.phone_number,
                EDITED_IMAGE_MESSAGE,
                conversation.image_url,
                fallback_text=EDITED_IMAGE_LINK_MESSAGE.format(url=conversation.image_url),
            )

    async def notify_video_ready(self, conversation: Conversation, video_url: str) -> bool:
        """
        Sends the finished video, then resets the conversation.
        """
        with LogContext(conversation_id=conversation.id):
            message = VIDEO_READY_MESSAGE.format(url=video_url)
            delivered = False
            try:
                delivered = await self.send_with_fallback(
                    conversation.phone_number, message, video_url
                )
            finally:
                await self._reset(conversation.id, ConversationState.COMPLETED, "video delivered")
            return delivered

    async def notify_failure(
        self,
        conversation: Conversation,
        message: str,
        expected_state: ConversationState
    ) -> bool:
        """
        Sends an apology, then resets the conversation.

        Args:
            conversation: The conversation the failed job belonged to
            message: Apology text
            expected_state: State the job left the conversation in; the
                reset is skipped if the conversation has moved on
        """
        with LogContext(conversation_id=conversation.id):
            delivered = False
            try:
                result = await self._twilio.send_message(conversation.phone_number, message)
                delivered = result["success"]
                if not delivered:
                    logger.error(f"Failed to deliver error message: {result.get('error')}")
            finally:
                await self._reset(conversation.id, expected_state, "job failed")
            return delivered

    async def _reset(self, conversation_id: str, expected_state: ConversationState, reason: str):
        updated = await self._conversations.update_if_state(
            conversation_id, expected_state, **reset_fields()
        )
        if updated is not None:
            logger.info(f"Conversation reset after notification ({reason})")
