"""
app/services/flux_service.py

Purpose: Image editing via BFL FLUX Kontext

- Submits an edit (prompt + base64 image) and returns the polling locator
- Fetches status from the polling URL
- Maps provider statuses onto JobStatus
"""

from dataclasses import dataclass
from typing import Dict, Any

import httpx

from app.core.config import Settings
from app.core.exceptions import ExternalServiceError, ProviderHTTPError
from app.core.logging import get_logger
from app.jobs.poller import JobStatus, StatusReport

logger = get_logger(__name__)

PROVIDER = "FLUX"

READY_STATUSES = {"Ready"}
FAILED_STATUSES = {"Error", "Failed"}
MODERATED_STATUSES = {"Content Moderated", "Request Moderated"}


@dataclass(frozen=True)
class EditSubmission:
    job_id: str
    polling_url: str


def classify_edit_status(payload: Dict[str, Any]) -> StatusReport:
    """
    Maps a FLUX poll response onto a StatusReport.

    "Ready" without a result sample is a failure: there is nothing to fetch.
    Unknown statuses ("Pending", "Task not found", ...) keep polling.
    """
    status = payload.get("status")

    if status in READY_STATUSES:
        sample = (payload.get("result") or {}).get("sample")
        if not sample:
            return StatusReport(JobStatus.FAILED, detail="No result image received")
        return StatusReport(JobStatus.READY, result=sample)

    if status in FAILED_STATUSES:
        return StatusReport(JobStatus.FAILED, detail=f"Image editing failed: {status}")

    if status in MODERATED_STATUSES:
        return StatusReport(JobStatus.MODERATED, detail=status)

    return StatusReport(JobStatus.PENDING, detail=status)


class FluxService:
    """Client for the FLUX Kontext editing API."""

    def __init__(self, client: httpx.AsyncClient, config: Settings):
        self._client = client
        self._api_key = config.BFL_API_KEY
        self.submit_url = f"{config.BFL_BASE_URL.rstrip('/')}/{config.BFL_MODEL}"
        self.safety_tolerance = config.BFL_SAFETY_TOLERANCE

    @property
    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise ExternalServiceError("BFL_API_KEY is not configured")
        return {"accept": "application/json", "x-key": self._api_key}

    async def submit_edit(self, prompt: str, image_base64: str) -> EditSubmission:
        """
        Creates an edit request.

        Raises:
            ProviderHTTPError: Non-OK response
            ExternalServiceError: Response without id/polling_url
        """
        body = {
            "prompt": prompt,
            "input_image": image_base64,
            "output_format": "jpeg",
            "safety_tolerance": self.safety_tolerance,
        }

        logger.info("Submitting FLUX edit request")
        response = await self._client.post(self.submit_url, json=body, headers=self._headers)

        if response.status_code != 200:
            raise ProviderHTTPError(PROVIDER, response.status_code, response.text)

        data = response.json()
        if not data.get("id") or not data.get("polling_url"):
            raise ExternalServiceError("FLUX response missing id or polling_url", details=data)

        logger.info(f"FLUX request created: {data['id']}")
        return EditSubmission(job_id=data["id"], polling_url=data["polling_url"])

    async def get_status(self, submission: EditSubmission) -> Dict[str, Any]:
        """
        Fetches the current status payload.

        Raises:
            ProviderHTTPError: Non-OK response (drives the poll backoff)
        """
        response = await self._client.get(submission.polling_url, headers=self._headers)
        if response.status_code != 200:
            raise ProviderHTTPError(PROVIDER, response.status_code, response.text)
        return response.json()
