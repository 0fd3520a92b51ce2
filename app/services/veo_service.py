"""
app/services/veo_service.py

Purpose: Video generation via Vertex AI Veo

- Starts a predictLongRunning operation from an image + prompt
- Fetches operation status (fetchPredictOperation)
- Maps operation payloads onto JobStatus
- Downloads the generated video from Cloud Storage
"""

from typing import Dict, Any

import httpx

from app.core.config import Settings
from app.core.exceptions import ExternalServiceError, ProviderHTTPError, StorageError
from app.core.logging import get_logger
from app.jobs.poller import JobStatus, StatusReport

logger = get_logger(__name__)

PROVIDER = "Veo"
GCS_DOWNLOAD_BASE = "https://storage.googleapis.com"


def classify_operation(payload: Dict[str, Any]) -> StatusReport:
    """
    Maps a fetchPredictOperation payload onto a StatusReport.

    done=false            -> pending
    done + error          -> failed
    done + filtered media -> moderated
    done + videos[0]      -> ready (result is the gs:// URI)
    done otherwise        -> failed
    """
    if not payload.get("done"):
        return StatusReport(JobStatus.PENDING)

    error = payload.get("error")
    if error:
        return StatusReport(JobStatus.FAILED, detail=error.get("message") or str(error))

    response = payload.get("response") or {}
    videos = response.get("videos") or []
    gcs_uri = videos[0].get("gcsUri") if videos else None
    if gcs_uri:
        return StatusReport(JobStatus.READY, result=gcs_uri)

    if response.get("raiMediaFilteredCount"):
        reasons = response.get("raiMediaFilteredReasons") or []
        return StatusReport(JobStatus.MODERATED, detail="; ".join(reasons) or "Content filtered")

    return StatusReport(JobStatus.FAILED, detail="Operation finished without a video")


def operation_short_id(operation_name: str) -> str:
    """projects/.../operations/<id> -> <id>"""
    return operation_name.rsplit("/", 1)[-1]


def gcs_download_url(gcs_uri: str) -> str:
    if not gcs_uri.startswith("gs://"):
        raise StorageError(f"Not a Cloud Storage URI: {gcs_uri}")
    return f"{GCS_DOWNLOAD_BASE}/{gcs_uri[len('gs://'):]}"


class VeoService:
    """Client for the Vertex AI Veo model endpoints."""

    def __init__(self, client: httpx.AsyncClient, config: Settings):
        self._client = client
        self.project_id = config.GOOGLE_CLOUD_PROJECT_ID
        self.location = config.GOOGLE_CLOUD_LOCATION
        self.model = config.VEO_MODEL
        self.aspect_ratio = config.VEO_ASPECT_RATIO
        self.resolution = config.VEO_RESOLUTION
        self.storage_uri = config.veo_storage_uri

    @property
    def model_url(self) -> str:
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/projects/{self.project_id}"
            f"/locations/{self.location}/publishers/google/models/{self.model}"
        )

    @staticmethod
    def _headers(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def submit_video(
        self,
        access_token: str,
        prompt: str,
        image_base64: str,
        mime_type: str,
    ) -> str:
        """
        Starts a video generation operation.

        Returns:
            The long-running operation name

        Raises:
            ProviderHTTPError: Non-OK response
            ExternalServiceError: Response without an operation name
        """
        body = {
            "instances": [
                {
                    "prompt": prompt,
                    "image": {
                        "bytesBase64Encoded": image_base64,
                        "mimeType": mime_type,
                    },
                }
            ],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": self.aspect_ratio,
                "resolution": self.resolution,
                "storageUri": self.storage_uri,
            },
        }

        logger.info(f"Starting Veo generation ({self.model}, {self.aspect_ratio}, {self.resolution})")
        response = await self._client.post(
            f"{self.model_url}:predictLongRunning",
            json=body,
            headers=self._headers(access_token),
        )
        if response.status_code != 200:
            raise ProviderHTTPError(PROVIDER, response.status_code, response.text)

        name = response.json().get("name")
        if not name:
            raise ExternalServiceError("Failed to start video generation")

        logger.info(f"Veo operation started: {operation_short_id(name)}")
        return name

    async def get_operation(self, access_token: str, operation_name: str) -> Dict[str, Any]:
        """
        Raises:
            ProviderHTTPError: Non-OK response
        """
        response = await self._client.post(
            f"{self.model_url}:fetchPredictOperation",
            json={"operationName": operation_name},
            headers=self._headers(access_token),
        )
        if response.status_code != 200:
            raise ProviderHTTPError(PROVIDER, response.status_code, response.text)
        return response.json()

    async def download_video(self, access_token: str, gcs_uri: str) -> bytes:
        """
        Raises:
            StorageError: If the object cannot be fetched
        """
        url = gcs_download_url(gcs_uri)
        try:
            response = await self._client.get(url, headers=self._headers(access_token))
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download video: {e}") from e

        if response.status_code != 200:
            raise StorageError(
                f"Failed to download video: HTTP {response.status_code}",
                details={"uri": gcs_uri}
            )
        logger.info(f"Downloaded generated video: {len(response.content)} bytes")
        return response.content
