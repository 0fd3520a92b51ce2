"""
app/jobs/edit_job.py

Purpose: Image edit pipeline

submit edit → poll with adaptive backoff → store result →
WAITING_FOR_VIDEO_DECISION → send edited image.
Any failure: apology, then back to WAITING_FOR_IMAGE.
"""

import asyncio
from typing import TYPE_CHECKING

from app.core.exceptions import DreamrError, StorageError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState
from app.jobs.poller import AdaptiveBackoff, JobOutcome, JobPoller, PollResult
from app.services.flux_service import classify_edit_status
from utils.constants import EDIT_FAILED_MESSAGE, MODERATED_MESSAGE
from utils.media_utils import encode_base64, format_size

if TYPE_CHECKING:
    from app.core.dependencies import Services

logger = get_logger(__name__)

EDITED_CONTENT_TYPE = "image/jpeg"


def build_edit_poller(services: "Services", submission) -> JobPoller:
    config = services.settings
    return JobPoller(
        name=f"flux-edit:{submission.job_id}",
        check_status=lambda: services.flux.get_status(submission),
        classify=classify_edit_status,
        backoff=AdaptiveBackoff(
            base_delay=config.EDIT_POLL_BASE_DELAY,
            max_delay=config.EDIT_POLL_MAX_DELAY,
        ),
        max_attempts=config.EDIT_POLL_MAX_ATTEMPTS,
        sleep=services.sleep,
    )


async def run_edit_job(services: "Services", conversation_id: str, prompt: str) -> PollResult:
    """
    Runs one image edit to completion for a conversation in PROCESSING_EDIT.
    Never raises except on cancellation.
    """
    with LogContext(conversation_id=conversation_id, job="edit"):
        conversation = await services.conversations.get(conversation_id)
        if conversation is None:
            logger.error("Conversation vanished before edit started")
            return PollResult(JobOutcome.FAILED, detail="Conversation not found")

        try:
            if not conversation.image_url:
                raise DreamrError("No image found for this conversation", code="NO_IMAGE")

            image, _ = await services.storage.fetch(conversation.image_url)
            limit = services.settings.MAX_IMAGE_BYTES
            if len(image) > limit:
                raise StorageError(f"Image too large - maximum {format_size(limit)} allowed")

            submission = await services.flux.submit_edit(prompt, encode_base64(image))
            result = await build_edit_poller(services, submission).run()

            if result.outcome is JobOutcome.READY:
                edited, _ = await services.storage.fetch(result.result)
                edited_url = await services.storage.upload(
                    edited, EDITED_CONTENT_TYPE, f"{conversation_id}-edited"
                )
                updated = await services.conversations.update_if_state(
                    conversation_id,
                    ConversationState.PROCESSING_EDIT,
                    image_url=edited_url,
                    state=ConversationState.WAITING_FOR_VIDEO_DECISION,
                )
                if updated is None:
                    logger.info("Edit finished for a conversation that moved on; result dropped")
                    return result
                await services.notifier.send_edited_image(updated)
                return result

        except asyncio.CancelledError:
            logger.info("Edit job cancelled")
            raise
        except Exception as e:
            logger.error(f"Edit job failed: {e}", exc_info=not isinstance(e, DreamrError))
            result = PollResult(JobOutcome.FAILED, detail=str(e), error=e)

        current = await services.conversations.get(conversation_id)
        if current is None or current.current_state is not ConversationState.PROCESSING_EDIT:
            logger.info("Edit failure for a conversation that moved on; not notifying")
            return result

        message = MODERATED_MESSAGE if result.outcome is JobOutcome.MODERATED else EDIT_FAILED_MESSAGE
        await services.notifier.notify_failure(
            current, message, expected_state=ConversationState.PROCESSING_EDIT
        )
        return result
