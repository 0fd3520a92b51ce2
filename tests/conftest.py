import copy
import time
from types import SimpleNamespace

import httpx
import pytest
from pymongo import DESCENDING

from app.core.config import Settings
from app.core.dependencies import build_services
from app.core.exceptions import CredentialError, ResourceNotFoundError, StorageError
from app.models.conversation import Conversation
from app.services.conversation_service import ConversationRepository
from app.services.credential_service import AccessToken
from app.services.flux_service import EditSubmission

PHONE = "+15551234567"
ORIGINAL_URL = "https://dreamr.test/api/v1/media/original"
RESULT_URL = "https://delivery.bfl.test/result.jpg"
OPERATION_NAME = (
    "projects/dreamr-test/locations/us-central1/publishers/google/models/"
    "veo-3.0-generate-preview/operations/op-123"
)
GCS_URI = "gs://dreamr-test-dreamr-videos/out/sample_0.mp4"


class FakeCollection:
    """In-memory stand-in for the Motor conversations collection."""

    def __init__(self):
        self.docs = {}
        self.writes = []

    @staticmethod
    def _matches(doc, filter):
        return all(doc.get(key) == value for key, value in filter.items())

    async def find_one(self, filter, sort=None):
        found = [doc for doc in self.docs.values() if self._matches(doc, filter)]
        for key, direction in reversed(sort or []):
            found.sort(key=lambda doc: doc[key], reverse=direction == DESCENDING)
        return copy.deepcopy(found[0]) if found else None

    async def insert_one(self, doc):
        self.docs[doc["_id"]] = copy.deepcopy(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, filter, update):
        doc = next((d for d in self.docs.values() if self._matches(d, filter)), None)
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        changes = update.get("$set", {})
        doc.update(copy.deepcopy(changes))
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount
        self.writes.append(dict(changes))
        return SimpleNamespace(matched_count=1, modified_count=1)

    def seed(self, **fields) -> Conversation:
        fields.setdefault("phone_number", PHONE)
        conversation = Conversation(**fields)
        self.docs[conversation.id] = conversation.to_document()
        return conversation

    def states_written(self):
        return [w["state"] for w in self.writes if "state" in w]


class FakeStorage:
    """URL-addressed artifact store."""

    def __init__(self):
        self.objects = {}
        self.uploads = []

    def put(self, url, data, content_type):
        self.objects[url] = (data, content_type)

    async def upload(self, data, content_type, prefix):
        url = f"https://dreamr.test/api/v1/media/{prefix}-{len(self.uploads) + 1}"
        self.objects[url] = (data, content_type)
        self.uploads.append(SimpleNamespace(url=url, data=data, content_type=content_type, prefix=prefix))
        return url

    async def fetch(self, url, headers=None):
        if url not in self.objects:
            raise StorageError("Failed to download artifact: HTTP 404", details={"url": url})
        return self.objects[url]

    async def open(self, file_id):
        for url, value in self.objects.items():
            if url.endswith(f"/{file_id}"):
                return value
        raise ResourceNotFoundError("Media not found")


class FakeTwilio:
    def __init__(self):
        self.sent = []
        self.downloads = []
        self.media = (b"\xff\xd8" + b"x" * 1024, "image/jpeg")
        self.reject_media = False
        self.reject_all = False

    async def send_message(self, to_phone, message, media_url=None):
        self.sent.append(SimpleNamespace(to=to_phone, message=message, media_url=media_url))
        if self.reject_all or (media_url and self.reject_media):
            return {"success": False, "error": "Twilio API error: 400"}
        return {"success": True, "message_sid": f"SM{len(self.sent)}", "status": "queued"}

    async def download_media(self, media_url):
        self.downloads.append(media_url)
        return self.media

    def is_configured(self):
        return True


def _next(responses):
    """Pops the next scripted response; the last one repeats."""
    item = responses.pop(0) if len(responses) > 1 else responses[0]
    if isinstance(item, Exception):
        raise item
    return item


class FakeFlux:
    def __init__(self):
        self.statuses = [{"status": "Ready", "result": {"sample": RESULT_URL}}]
        self.submitted = []
        self.checks = 0

    async def submit_edit(self, prompt, image_base64):
        self.submitted.append((prompt, image_base64))
        return EditSubmission(job_id="job-1", polling_url="https://api.bfl.test/v1/get_result?id=job-1")

    async def get_status(self, submission):
        self.checks += 1
        return _next(self.statuses)


class FakeVeo:
    def __init__(self):
        self.operations = [{"done": True, "response": {"videos": [{"gcsUri": GCS_URI}]}}]
        self.submitted = []
        self.check_tokens = []
        self.downloads = []

    async def submit_video(self, access_token, prompt, image_base64, mime_type):
        self.submitted.append(SimpleNamespace(
            token=access_token, prompt=prompt, image=image_base64, mime_type=mime_type
        ))
        return OPERATION_NAME

    async def get_operation(self, access_token, operation_name):
        self.check_tokens.append(access_token)
        return _next(self.operations)

    async def download_video(self, access_token, gcs_uri):
        self.downloads.append((access_token, gcs_uri))
        return b"\x00\x00\x00\x18ftypmp42"


class FakeCredentials:
    def __init__(self):
        self.issued = 0
        self.fail_on = set()

    async def fetch_access_token(self):
        self.issued += 1
        if self.issued in self.fail_on:
            raise CredentialError("Token exchange failed: HTTP 503")
        return AccessToken(value=f"token-{self.issued}", expires_at=time.time() + 3600)


class FakeJobRegistry:
    """Records job starts without scheduling them."""

    def __init__(self):
        self.started = []
        self.cancelled = []

    def start(self, conversation_id, coro, name):
        coro.close()
        self.started.append((conversation_id, name))

    def cancel(self, conversation_id):
        self.cancelled.append(conversation_id)
        return False

    @property
    def active_count(self):
        return 0

    async def shutdown(self):
        pass


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def config():
    return Settings(
        ENVIRONMENT="development",
        PUBLIC_BASE_URL="https://dreamr.test",
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="secret",
        TWILIO_PHONE_NUMBER="+15550000000",
        BFL_API_KEY="bfl-key",
        GOOGLE_CLOUD_PROJECT_ID="dreamr-test",
    )


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def repository(collection):
    return ConversationRepository(collection)


@pytest.fixture
def storage():
    storage = FakeStorage()
    storage.put(ORIGINAL_URL, b"original-image", "image/png")
    storage.put(RESULT_URL, b"edited-image", "image/jpeg")
    return storage


@pytest.fixture
def twilio():
    return FakeTwilio()


@pytest.fixture
def flux():
    return FakeFlux()


@pytest.fixture
def veo():
    return FakeVeo()


@pytest.fixture
def credentials():
    return FakeCredentials()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def jobs():
    return FakeJobRegistry()


@pytest.fixture
def services(config, collection, repository, storage, twilio, flux, veo, credentials, jobs, sleeper):
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    return build_services(
        config,
        http,
        collection,
        None,
        conversations=repository,
        storage=storage,
        twilio=twilio,
        flux=flux,
        veo=veo,
        credentials=credentials,
        jobs=jobs,
        sleep=sleeper,
    )
