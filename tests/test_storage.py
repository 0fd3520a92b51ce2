import httpx
import pytest
from bson import ObjectId
from gridfs.errors import NoFile

from app.core.exceptions import ResourceNotFoundError, StorageError
from app.services.storage_service import StorageService

MEDIA_BASE = "https://dreamr.test/api/v1/media"


class FakeDownloadStream:
    def __init__(self, data, metadata):
        self._data = data
        self.metadata = metadata

    async def read(self):
        return self._data


class FakeBucket:
    """Minimal AsyncIOMotorGridFSBucket."""

    def __init__(self, fail=False):
        self.files = {}
        self.fail = fail

    async def upload_from_stream(self, filename, source, metadata=None):
        if self.fail:
            raise OSError("disk full")
        file_id = ObjectId()
        self.files[file_id] = (filename, source, metadata)
        return file_id

    async def open_download_stream(self, file_id):
        if file_id not in self.files:
            raise NoFile(f"no file with id {file_id}")
        _, data, metadata = self.files[file_id]
        return FakeDownloadStream(data, metadata)


def storage_for(bucket, handler=None):
    handler = handler or (lambda request: httpx.Response(404))
    return StorageService(bucket, httpx.AsyncClient(transport=httpx.MockTransport(handler)), MEDIA_BASE + "/")


@pytest.mark.asyncio
async def test_upload_then_open():
    bucket = FakeBucket()
    storage = storage_for(bucket)

    url = await storage.upload(b"png-bytes", "image/png", "conv-1")

    file_id, (filename, _, metadata) = next(iter(bucket.files.items()))
    assert url == f"{MEDIA_BASE}/{file_id}"
    assert filename.startswith("conv-1-")
    assert filename.endswith(".png")
    assert metadata == {"contentType": "image/png"}
    assert await storage.open(str(file_id)) == (b"png-bytes", "image/png")


@pytest.mark.asyncio
async def test_each_upload_is_a_new_file():
    bucket = FakeBucket()
    storage = storage_for(bucket)

    first = await storage.upload(b"a", "video/mp4", "conv-1")
    second = await storage.upload(b"a", "video/mp4", "conv-1")

    assert first != second
    assert len(bucket.files) == 2


@pytest.mark.asyncio
async def test_upload_failure_raises_storage_error():
    with pytest.raises(StorageError):
        await storage_for(FakeBucket(fail=True)).upload(b"a", "image/jpeg", "conv-1")


@pytest.mark.asyncio
@pytest.mark.parametrize("file_id", ["not-an-object-id", str(ObjectId())])
async def test_open_unknown_media(file_id):
    with pytest.raises(ResourceNotFoundError):
        await storage_for(FakeBucket()).open(file_id)


@pytest.mark.asyncio
async def test_fetch_over_http():
    def handler(request):
        if request.url.path.endswith("/ok"):
            return httpx.Response(200, content=b"bytes", headers={"content-type": "image/jpeg"})
        return httpx.Response(500)

    storage = storage_for(FakeBucket(), handler)

    assert await storage.fetch("https://delivery.bfl.test/ok") == (b"bytes", "image/jpeg")
    with pytest.raises(StorageError):
        await storage.fetch("https://delivery.bfl.test/broken")
