"""
app/jobs/video_job.py

Purpose: Video generation pipeline

token → submit operation → record operation_id → poll at a fixed
interval, refreshing the token every Nth check → store video →
COMPLETED → notify (which resets).
Any failure: FAILED → apology → WAITING_FOR_IMAGE.
"""

import asyncio
from typing import TYPE_CHECKING

from app.core.exceptions import DreamrError, StorageError, ValidationError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState
from app.jobs.poller import FixedBackoff, JobOutcome, JobPoller, PollResult
from app.services.veo_service import classify_operation, operation_short_id
from utils.constants import MODERATED_MESSAGE, VIDEO_FAILED_MESSAGE
from utils.media_utils import canonical_image_type, encode_base64, format_size, is_supported_image_type

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


class TokenHolder:
    """Current bearer token, refreshed every `refresh_every` checks."""

    def __init__(self, services: "Services", token: str, refresh_every: int):
        self._services = services
        self.value = token
        self.refresh_every = refresh_every

    async def before_check(self, attempt: int):
        if attempt % self.refresh_every == 0:
            logger.info(f"Refreshing access token before check {attempt}")
            token = await self._services.credentials.fetch_access_token()
            self.value = token.value


def build_video_poller(services: "Services", operation_name: str, token: TokenHolder) -> JobPoller:
    config = services.settings
    return JobPoller(
        name=f"veo:{operation_short_id(operation_name)}",
        check_status=lambda: services.veo.get_operation(token.value, operation_name),
        classify=classify_operation,
        backoff=FixedBackoff(interval=config.VIDEO_POLL_INTERVAL),
        max_attempts=config.VIDEO_POLL_MAX_ATTEMPTS,
        before_check=token.before_check,
        sleep=services.sleep,
    )


async def run_video_job(services: "Services", conversation_id: str) -> PollResult:
    """
    Runs one video generation to completion for a conversation in
    GENERATING_VIDEO. Never raises except on cancellation.
    """
    with LogContext(conversation_id=conversation_id, job="video"):
        conversation = await services.conversations.get(conversation_id)
        if conversation is None:
            logger.error("Conversation vanished before video generation started")
            return PollResult(JobOutcome.FAILED, detail="Conversation not found")

        try:
            if not conversation.image_url or not conversation.video_prompt:
                raise DreamrError("Missing image or prompt", code="MISSING_INPUT")

            image, content_type = await services.storage.fetch(conversation.image_url)
            limit = services.settings.MAX_IMAGE_BYTES
            if not image:
                raise StorageError("Downloaded image is empty")
            if len(image) > limit:
                raise StorageError(f"Image too large (max {format_size(limit)})")
            if not is_supported_image_type(content_type):
                raise ValidationError(f"Invalid image type: {content_type}")

            access = await services.credentials.fetch_access_token()
            operation_name = await services.veo.submit_video(
                access.value,
                conversation.video_prompt,
                encode_base64(image),
                canonical_image_type(content_type),
            )

            recorded = await services.conversations.update_if_state(
                conversation_id,
                ConversationState.GENERATING_VIDEO,
                operation_id=operation_short_id(operation_name),
            )
            if recorded is None:
                logger.info("Conversation moved on before the operation was recorded")
                return PollResult(JobOutcome.FAILED, detail="Conversation moved on")

            token = TokenHolder(services, access.value, services.settings.VIDEO_TOKEN_REFRESH_EVERY)
            result = await build_video_poller(services, operation_name, token).run()

            if result.outcome is JobOutcome.READY:
                video = await services.veo.download_video(token.value, result.result)
                video_url = await services.storage.upload(video, VIDEO_CONTENT_TYPE, conversation_id)
                completed = await services.conversations.update_if_state(
                    conversation_id,
                    ConversationState.GENERATING_VIDEO,
                    video_url=video_url,
                    state=ConversationState.COMPLETED,
                )
                if completed is None:
                    logger.info("Video finished for a conversation that moved on; result dropped")
                    return result
                await services.notifier.notify_video_ready(completed, video_url)
                return result

        except asyncio.CancelledError:
            logger.info("Video job cancelled")
            raise
        except Exception as e:
            logger.error(f"Video job failed: {e}", exc_info=not isinstance(e, DreamrError))
            result = PollResult(JobOutcome.FAILED, detail=str(e), error=e)

        failed = await services.conversations.update_if_state(
            conversation_id,
            ConversationState.GENERATING_VIDEO,
            state=ConversationState.FAILED,
            operation_id=None,
        )
        if failed is None:
            logger.info("Video failure for a conversation that moved on; not notifying")
            return result

        message = MODERATED_MESSAGE if result.outcome is JobOutcome.MODERATED else VIDEO_FAILED_MESSAGE
        await services.notifier.notify_failure(failed, message, expected_state=ConversationState.FAILED)
        return result
