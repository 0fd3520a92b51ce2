"""
app/flow/handlers/session.py

Handles: text while a job runs, and text in states with nothing to answer

- PROCESSING_EDIT / GENERATING_VIDEO: "still working"
- WAITING_FOR_IMAGE / COMPLETED / FAILED / unrecognized: reset and ask for an image
"""

from typing import TYPE_CHECKING

from app.flow.states import ConversationState
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage
from utils.constants import (
    EDIT_IN_PROGRESS_MESSAGE,
    VIDEO_IN_PROGRESS_MESSAGE,
    START_FRESH_MESSAGE,
)

if TYPE_CHECKING:
    from app.core.dependencies import Services


async def handle_in_progress(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    if conversation.current_state is ConversationState.GENERATING_VIDEO:
        return VIDEO_IN_PROGRESS_MESSAGE
    return EDIT_IN_PROGRESS_MESSAGE


async def handle_start_fresh(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    await services.conversations.reset(conversation, reason=f"text in {conversation.state}")
    return START_FRESH_MESSAGE
