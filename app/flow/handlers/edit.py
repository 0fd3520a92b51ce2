"""
app/flow/handlers/edit.py

Handles: WAITING_FOR_EDIT_PROMPT

- Empty reply: ask again
- Otherwise: PROCESSING_EDIT and start the edit job
"""

from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.flow.states import ConversationState
from app.jobs.edit_job import run_edit_job
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage
from utils.constants import ASK_EDIT_PROMPT_MESSAGE, EDIT_STARTED_MESSAGE

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)


async def handle_edit_prompt(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    if not message.text:
        return ASK_EDIT_PROMPT_MESSAGE

    await services.conversations.update(
        conversation,
        state=ConversationState.PROCESSING_EDIT
    )

    services.jobs.start(
        conversation.id,
        run_edit_job(services, conversation.id, message.text),
        name="edit"
    )
    logger.info(f"Edit requested: {message.text[:80]}", extra={"conversation_id": conversation.id})
    return EDIT_STARTED_MESSAGE
