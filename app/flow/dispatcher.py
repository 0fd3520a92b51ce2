"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized messages from the webhook
- Loads (or creates) the phone number's current conversation
- Routes to the handler for the conversation state
- Re-reads and retries when a transition loses a concurrent update
"""

from typing import Awaitable, Callable, Dict, TYPE_CHECKING

from app.core.exceptions import ConcurrentUpdateError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState, is_in_progress
from app.flow.handlers.image import handle_new_image
from app.flow.handlers.edit import handle_edit_prompt
from app.flow.handlers.decision import handle_video_decision
from app.flow.handlers.video import handle_video_prompt
from app.flow.handlers.session import handle_in_progress, handle_start_fresh
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)

Handler = Callable[["Services", Conversation, InboundMessage], Awaitable[str]]

STATE_HANDLERS: Dict[ConversationState, Handler] = {
    ConversationState.WAITING_FOR_EDIT_PROMPT: handle_edit_prompt,
    ConversationState.WAITING_FOR_VIDEO_DECISION: handle_video_decision,
    ConversationState.WAITING_FOR_VIDEO_PROMPT: handle_video_prompt,
}


def select_handler(conversation: Conversation, message: InboundMessage) -> Handler:
    """
    An image always restarts the flow. While a job runs, text only gets
    a progress notice; otherwise the state decides.
    States with nothing to answer (and unknown states) start fresh.
    """
    if message.has_image_attachment:
        return handle_new_image

    state = conversation.current_state
    if state is None:
        logger.warning(f"⚠️ Unknown state: {conversation.state}, starting fresh")
    elif is_in_progress(state):
        return handle_in_progress
    return STATE_HANDLERS.get(state, handle_start_fresh)


async def dispatch_message(message: InboundMessage, services: "Services") -> str:
    """
    Main dispatcher for incoming messages.

    Args:
        message: Normalized message object
        services: Application collaborators

    Returns:
        Reply text for the TwiML response

    Raises:
        ConcurrentUpdateError: If every retry lost a race
    """
    retries = max(services.settings.CONVERSATION_UPDATE_RETRIES, 1)

    with LogContext(phone=message.phone):
        logger.info(
            f"📨 Dispatching message {message.message_sid or ''} "
            f"(media={message.num_media}, text={message.text[:50]!r})"
        )

        for attempt in range(1, retries + 1):
            conversation = await services.conversations.get_or_create(message.phone)
            handler = select_handler(conversation, message)

            with LogContext(conversation_id=conversation.id, state=conversation.state):
                try:
                    reply = await handler(services, conversation, message)
                except ConcurrentUpdateError:
                    logger.warning(f"Concurrent update on attempt {attempt}/{retries}, re-reading")
                    continue

                logger.info(f"✅ {handler.__name__} replied: {reply[:60]}")
                return reply

        raise ConcurrentUpdateError(conversation.id, details={"attempts": retries})
