import pytest

from app.core.exceptions import ConcurrentUpdateError
from app.flow import dispatcher
from app.flow.dispatcher import dispatch_message
from app.flow.states import ConversationState
from app.schemas.webhook import parse_twilio_message
from utils.constants import (
    ASK_EDIT_CHANGE_MESSAGE,
    ASK_EDIT_PROMPT_MESSAGE,
    ASK_VIDEO_PROMPT_MESSAGE,
    EDIT_IN_PROGRESS_MESSAGE,
    EDIT_STARTED_MESSAGE,
    EMPTY_IMAGE_MESSAGE,
    IMAGE_RECEIVED_MESSAGE,
    REPEAT_VIDEO_PROMPT_MESSAGE,
    START_FRESH_MESSAGE,
    UNSUPPORTED_IMAGE_TYPE_MESSAGE,
    VIDEO_DECISION_MESSAGE,
    VIDEO_IN_PROGRESS_MESSAGE,
    VIDEO_STARTED_MESSAGE,
)

from conftest import PHONE

S = ConversationState
MEDIA_URL = "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages/MM1/Media/ME1"


def text(body):
    return parse_twilio_message(from_number=PHONE, body=body, message_sid="SM1")


def image(content_type="image/jpeg", body=None):
    return parse_twilio_message(
        from_number=PHONE,
        body=body,
        num_media="1",
        media_url=MEDIA_URL,
        media_content_type=content_type,
    )


async def stored(services, conversation):
    return await services.conversations.get(conversation.id)


@pytest.mark.asyncio
async def test_first_message_without_image_asks_for_one(services, collection):
    reply = await dispatch_message(text("hi"), services)

    assert reply == START_FRESH_MESSAGE
    conversation = await services.conversations.get_latest_by_phone(PHONE)
    assert conversation.state == S.WAITING_FOR_IMAGE.value


@pytest.mark.asyncio
async def test_image_starts_workflow(services, collection, twilio, storage):
    conversation = collection.seed()

    reply = await dispatch_message(image(), services)

    assert reply == IMAGE_RECEIVED_MESSAGE
    assert twilio.downloads == [MEDIA_URL]
    updated = await stored(services, conversation)
    assert updated.state == S.WAITING_FOR_EDIT_PROMPT.value
    assert updated.image_url == storage.uploads[-1].url
    assert storage.uploads[-1].content_type == "image/jpeg"


@pytest.mark.asyncio
@pytest.mark.parametrize("state", [s for s in ConversationState])
async def test_image_from_any_state_restarts_and_clears_video_fields(services, collection, jobs, state):
    conversation = collection.seed(
        state=state.value,
        image_url="https://dreamr.test/api/v1/media/old",
        video_prompt="waves crashing",
        video_url="https://dreamr.test/api/v1/media/video",
        operation_id="op-9",
    )

    reply = await dispatch_message(image("image/png"), services)

    assert reply == IMAGE_RECEIVED_MESSAGE
    updated = await stored(services, conversation)
    assert updated.state == S.WAITING_FOR_EDIT_PROMPT.value
    assert updated.image_url != "https://dreamr.test/api/v1/media/old"
    assert updated.video_prompt is None
    assert updated.video_url is None
    assert updated.operation_id is None
    assert jobs.cancelled == [conversation.id]


@pytest.mark.asyncio
async def test_oversized_image_rejected_with_state_unchanged(services, collection, twilio, storage):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_DECISION.value, image_url="https://x/edited")
    twilio.media = (b"x" * (11 * 1024 * 1024), "image/jpeg")

    reply = await dispatch_message(image(), services)

    assert "10 MB" in reply
    assert storage.uploads == []
    updated = await stored(services, conversation)
    assert updated.state == S.WAITING_FOR_VIDEO_DECISION.value
    assert updated.image_url == "https://x/edited"
    assert updated.version == conversation.version


@pytest.mark.asyncio
async def test_unsupported_image_type_is_not_downloaded(services, collection, twilio):
    conversation = collection.seed()

    reply = await dispatch_message(image("image/gif"), services)

    assert reply == UNSUPPORTED_IMAGE_TYPE_MESSAGE
    assert twilio.downloads == []
    assert (await stored(services, conversation)).state == S.WAITING_FOR_IMAGE.value


@pytest.mark.asyncio
async def test_empty_image_rejected(services, collection, twilio):
    collection.seed()
    twilio.media = (b"", "image/jpeg")

    reply = await dispatch_message(image(), services)

    assert reply == EMPTY_IMAGE_MESSAGE


@pytest.mark.asyncio
async def test_edit_prompt_starts_edit_job(services, collection, jobs):
    conversation = collection.seed(state=S.WAITING_FOR_EDIT_PROMPT.value, image_url="https://x/1")

    reply = await dispatch_message(text("add a sunset background"), services)

    assert reply == EDIT_STARTED_MESSAGE
    assert (await stored(services, conversation)).state == S.PROCESSING_EDIT.value
    assert jobs.started == [(conversation.id, "edit")]


@pytest.mark.asyncio
@pytest.mark.parametrize("state,expected", [
    (S.WAITING_FOR_EDIT_PROMPT, ASK_EDIT_PROMPT_MESSAGE),
    (S.WAITING_FOR_VIDEO_DECISION, VIDEO_DECISION_MESSAGE),
    (S.WAITING_FOR_VIDEO_PROMPT, REPEAT_VIDEO_PROMPT_MESSAGE),
])
async def test_empty_text_never_advances(services, collection, jobs, state, expected):
    conversation = collection.seed(state=state.value, image_url="https://x/1")

    reply = await dispatch_message(text("   "), services)

    assert reply == expected
    updated = await stored(services, conversation)
    assert updated.state == state.value
    assert jobs.started == []


@pytest.mark.asyncio
@pytest.mark.parametrize("state,expected", [
    (S.PROCESSING_EDIT, EDIT_IN_PROGRESS_MESSAGE),
    (S.GENERATING_VIDEO, VIDEO_IN_PROGRESS_MESSAGE),
])
async def test_text_while_job_runs(services, collection, jobs, state, expected):
    conversation = collection.seed(state=state.value, image_url="https://x/1")

    reply = await dispatch_message(text("is it done yet?"), services)

    assert reply == expected
    assert (await stored(services, conversation)).state == state.value
    assert jobs.cancelled == []


@pytest.mark.asyncio
async def test_proceed_reply_asks_for_video_prompt_without_job(services, collection, jobs):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_DECISION.value, image_url="https://x/1")

    reply = await dispatch_message(text("yes please animate"), services)

    assert reply == ASK_VIDEO_PROMPT_MESSAGE
    assert (await stored(services, conversation)).state == S.WAITING_FOR_VIDEO_PROMPT.value
    assert jobs.started == []


@pytest.mark.asyncio
async def test_edit_again_reply_returns_to_edit_prompt(services, collection):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_DECISION.value, image_url="https://x/1")

    reply = await dispatch_message(text("Make another edit"), services)

    assert reply == ASK_EDIT_CHANGE_MESSAGE
    assert (await stored(services, conversation)).state == S.WAITING_FOR_EDIT_PROMPT.value


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["maybe later", "edit the video"])
async def test_unclear_decision_repeats_question(services, collection, body):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_DECISION.value, image_url="https://x/1")

    reply = await dispatch_message(text(body), services)

    assert reply == VIDEO_DECISION_MESSAGE
    assert (await stored(services, conversation)).state == S.WAITING_FOR_VIDEO_DECISION.value


@pytest.mark.asyncio
async def test_video_prompt_starts_video_job(services, collection, jobs):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_PROMPT.value, image_url="https://x/1")

    reply = await dispatch_message(text("zebra galloping at high speeds"), services)

    assert reply == VIDEO_STARTED_MESSAGE
    updated = await stored(services, conversation)
    assert updated.state == S.GENERATING_VIDEO.value
    assert updated.video_prompt == "zebra galloping at high speeds"
    assert jobs.started == [(conversation.id, "video")]


@pytest.mark.asyncio
@pytest.mark.parametrize("state", ["completed", "failed", "waiting_for_image", "legacy_state"])
async def test_text_in_idle_or_unknown_state_starts_fresh(services, collection, state):
    conversation = collection.seed(state=state, image_url="https://x/1", video_url="https://x/v")

    reply = await dispatch_message(text("hello again"), services)

    assert reply == START_FRESH_MESSAGE
    updated = await stored(services, conversation)
    assert updated.state == S.WAITING_FOR_IMAGE.value
    assert updated.image_url is None
    assert updated.video_url is None


@pytest.mark.asyncio
async def test_dispatch_retries_after_concurrent_update(services, collection, monkeypatch):
    collection.seed(state=S.WAITING_FOR_EDIT_PROMPT.value)
    calls = []

    async def flaky(services, conversation, message):
        calls.append(conversation.version)
        if len(calls) == 1:
            raise ConcurrentUpdateError(conversation.id)
        return "ok"

    monkeypatch.setitem(dispatcher.STATE_HANDLERS, S.WAITING_FOR_EDIT_PROMPT, flaky)

    assert await dispatch_message(text("anything"), services) == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_dispatch_gives_up_after_configured_retries(services, collection, monkeypatch):
    collection.seed(state=S.WAITING_FOR_EDIT_PROMPT.value)
    calls = []

    async def always_conflicts(services, conversation, message):
        calls.append(1)
        raise ConcurrentUpdateError(conversation.id)

    monkeypatch.setitem(dispatcher.STATE_HANDLERS, S.WAITING_FOR_EDIT_PROMPT, always_conflicts)

    with pytest.raises(ConcurrentUpdateError):
        await dispatch_message(text("anything"), services)
    assert len(calls) == services.settings.CONVERSATION_UPDATE_RETRIES


@pytest.mark.asyncio
async def test_image_stored_once_when_dispatch_retries(services, collection, twilio, storage, monkeypatch):
    conversation = collection.seed(state=S.WAITING_FOR_VIDEO_DECISION.value)
    update = services.conversations.update
    calls = []

    async def lose_first_race(target, **fields):
        calls.append(fields.get("image_url"))
        if len(calls) == 1:
            raise ConcurrentUpdateError(target.id)
        return await update(target, **fields)

    monkeypatch.setattr(services.conversations, "update", lose_first_race)

    reply = await dispatch_message(image(), services)

    assert reply == IMAGE_RECEIVED_MESSAGE
    assert twilio.downloads == [MEDIA_URL]
    assert len(storage.uploads) == 1
    assert calls == [storage.uploads[0].url] * 2
    updated = await stored(services, conversation)
    assert updated.state == S.WAITING_FOR_EDIT_PROMPT.value
    assert updated.image_url == storage.uploads[0].url
