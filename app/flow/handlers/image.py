"""
app/flow/handlers/image.py

Handles: new image attachment (any state)

- Validates type (JPEG/PNG), emptiness and size
- Stores the image and restarts the workflow
- Cancels any job still running for the previous image
"""

from typing import Optional, TYPE_CHECKING

from app.core.exceptions import StorageError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage
from utils.constants import (
    IMAGE_RECEIVED_MESSAGE,
    UNSUPPORTED_IMAGE_TYPE_MESSAGE,
    IMAGE_TOO_LARGE_MESSAGE,
    EMPTY_IMAGE_MESSAGE,
    IMAGE_UPLOAD_FAILED_MESSAGE,
)
from utils.media_utils import canonical_image_type, format_size, is_supported_image_type

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)


async def handle_new_image(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    """
    Stores an inbound image and moves to WAITING_FOR_EDIT_PROMPT.

    Invalid images leave the conversation untouched.
    """
    with LogContext(conversation_id=conversation.id, state=conversation.state):
        if message.stored_image_url is None:
            rejection = await store_image(services, conversation, message)
            if rejection is not None:
                return rejection
        image_url = message.stored_image_url

        # The previous image's job must not write into the new workflow
        services.jobs.cancel(conversation.id)

        await services.conversations.update(
            conversation,
            image_url=image_url,
            state=ConversationState.WAITING_FOR_EDIT_PROMPT,
            video_prompt=None,
            video_url=None,
            operation_id=None,
        )
        return IMAGE_RECEIVED_MESSAGE


async def store_image(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> Optional[str]:
    """
    Downloads and stores the attachment once per message, recording its
    URL on the message so a retried dispatch reuses it.

    Returns:
        Rejection reply, or None once stored
    """
    content_type = message.media_content_type or "image/jpeg"
    if not is_supported_image_type(content_type):
        logger.info(f"Rejected attachment type {content_type}")
        return UNSUPPORTED_IMAGE_TYPE_MESSAGE

    data, _ = await services.twilio.download_media(message.media_url)

    if not data:
        logger.warning("Downloaded image is empty")
        return EMPTY_IMAGE_MESSAGE

    limit = services.settings.MAX_IMAGE_BYTES
    if len(data) > limit:
        logger.info(f"Rejected image of {len(data)} bytes (limit {limit})")
        return IMAGE_TOO_LARGE_MESSAGE.format(limit=format_size(limit))

    try:
        message.stored_image_url = await services.storage.upload(
            data, canonical_image_type(content_type), conversation.id
        )
    except StorageError as e:
        logger.error(f"Image upload failed: {e}")
        return IMAGE_UPLOAD_FAILED_MESSAGE
    return None
