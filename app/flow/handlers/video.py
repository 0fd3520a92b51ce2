"""
app/flow/handlers/video.py

Handles: WAITING_FOR_VIDEO_PROMPT

- Empty reply: ask again
- Otherwise: store the prompt, GENERATING_VIDEO, start the video job
"""

from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.flow.states import ConversationState
from app.jobs.video_job import run_video_job
from app.models.conversation import Conversation
from app.schemas.webhook import InboundMessage
from utils.constants import REPEAT_VIDEO_PROMPT_MESSAGE, VIDEO_STARTED_MESSAGE

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)


async def handle_video_prompt(
    services: "Services",
    conversation: Conversation,
    message: InboundMessage
) -> str:
    if not message.text:
        return REPEAT_VIDEO_PROMPT_MESSAGE

    await services.conversations.update(
        conversation,
        video_prompt=message.text,
        state=ConversationState.GENERATING_VIDEO,
    )

    services.jobs.start(conversation.id, run_video_job(services, conversation.id), name="video")
    return VIDEO_STARTED_MESSAGE
