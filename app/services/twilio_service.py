"""
app/services/twilio_service.py

Purpose: Twilio SMS/MMS integration

- Sends text and media messages via the Twilio REST API
- Downloads inbound media attachments (basic auth)
"""

import httpx
from typing import Dict, Any, Optional, Tuple
from app.core.config import Settings
from app.core.exceptions import StorageError
from app.core.logging import get_logger

logger = get_logger(__name__)


class TwilioService:
    """Service for sending messages and fetching media via Twilio"""

    def __init__(self, client: httpx.AsyncClient, config: Settings):
        self._client = client
        self.account_sid = config.TWILIO_ACCOUNT_SID
        self.auth_token = config.TWILIO_AUTH_TOKEN
        self.from_number = config.TWILIO_PHONE_NUMBER
        self.base_url = f"{config.TWILIO_API_BASE_URL}/Accounts/{self.account_sid}"

    @property
    def _auth(self) -> Tuple[str, str]:
        return (self.account_sid or "", self.auth_token or "")

    async def send_message(
        self,
        to_phone: str,
        message: str,
        media_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Sends an SMS, or an MMS when media_url is given.

        Args:
            to_phone: Recipient phone (+15551234567)
            message: Message text
            media_url: Optional public media URL

        Returns:
            {
                "success": True/False,
                "message_sid": "SMxxx...",
                "error": "Optional error message"
            }
        """
        url = f"{self.base_url}/Messages.json"

        data = {
            "From": self.from_number,
            "To": to_phone,
            "Body": message
        }

        if media_url:
            data["MediaUrl"] = media_url

        logger.info(f"📤 Sending Twilio {'MMS' if media_url else 'SMS'} to {to_phone}")

        try:
            response = await self._client.post(url, data=data, auth=self._auth)
        except httpx.TimeoutException:
            logger.error("Twilio API timeout")
            return {
                "success": False,
                "error": "Twilio API timeout"
            }
        except httpx.HTTPError as e:
            logger.error(f"Error sending Twilio message: {e}")
            return {
                "success": False,
                "error": str(e)
            }

        if response.status_code in (200, 201):
            result = response.json()
            logger.info(f"✅ Message sent: SID={result.get('sid')}")
            return {
                "success": True,
                "message_sid": result.get("sid"),
                "status": result.get("status")
            }

        logger.error(f"❌ Twilio API error: {response.status_code} - {response.text[:300]}")
        return {
            "success": False,
            "error": f"Twilio API error: {response.status_code}"
        }

    async def download_media(self, media_url: str) -> Tuple[bytes, Optional[str]]:
        """
        Downloads an inbound attachment.

        Returns:
            (content bytes, content type reported by Twilio)

        Raises:
            StorageError: If the download fails
        """
        try:
            response = await self._client.get(media_url, auth=self._auth)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download media from Twilio: {e}") from e

        if response.status_code != 200:
            raise StorageError(
                f"Failed to download media from Twilio: {response.status_code}",
                details={"url": media_url}
            )

        content_type = response.headers.get("content-type")
        logger.info(f"📥 Downloaded media: {len(response.content)} bytes, type={content_type}")
        return response.content, content_type

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(self.account_sid and self.auth_token and self.from_number)
