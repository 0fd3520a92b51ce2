"""
app/flow/handlers/decision.py

Handles: WAITING_FOR_VIDEO_DECISION

- Proceed intent → WAITING_FOR_VIDEO_PROMPT
- Edit intent → WAITING_FOR_EDIT_PROMPT
- Anything else (including ambiguous replies) → ask again
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Tuple

from app.core.logging import get_logger
from app.flow.intents import Intent, IntentResolver
from app.flow.states import ConversationState
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage
from utils.constants import (
    ASK_VIDEO_PROMPT_MESSAGE,
    ASK_EDIT_CHANGE_MESSAGE,
    VIDEO_DECISION_MESSAGE,
)

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)


@lru_cache(maxsize=8)
def _resolver(video_phrases: Tuple[str, ...], edit_phrases: Tuple[str, ...]) -> IntentResolver:
    return IntentResolver(video_phrases, edit_phrases)


async def handle_video_decision(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    config = services.settings
    intent = _resolver(
        tuple(config.VIDEO_INTENT_PHRASES), tuple(config.EDIT_INTENT_PHRASES)
    ).resolve(message.text)
    logger.info(f"Decision reply resolved to {intent.value}", extra={"conversation_id": conversation.id})

    if intent is Intent.PROCEED_TO_VIDEO:
        await services.conversations.update(
            conversation, state=ConversationState.WAITING_FOR_VIDEO_PROMPT
        )
        return ASK_VIDEO_PROMPT_MESSAGE

    if intent is Intent.EDIT_AGAIN:
        await services.conversations.update(
            conversation, state=ConversationState.WAITING_FOR_EDIT_PROMPT
        )
        return ASK_EDIT_CHANGE_MESSAGE

    return VIDEO_DECISION_MESSAGE
