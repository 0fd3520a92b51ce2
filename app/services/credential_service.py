"""
app/services/credential_service.py

Purpose: Google service-account credentials

- Builds an RS256-signed JWT assertion from the service account key
- Exchanges it at the OAuth token endpoint for a bearer token
- Has no knowledge of polling cadence; callers decide when to refresh
"""

import json
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional

import httpx
from jose import jwt, JWTError

from app.core.exceptions import CredentialError
from app.core.logging import get_logger

logger = get_logger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float


def load_service_account(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parses the service account key JSON.

    Raises:
        CredentialError: If the key is missing or lacks client_email/private_key
    """
    if not raw:
        raise CredentialError("GOOGLE_CLOUD_SERVICE_ACCOUNT_KEY is not configured")
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CredentialError("Service account key is not valid JSON") from e

    missing = [key for key in ("client_email", "private_key") if not info.get(key)]
    if missing:
        raise CredentialError(f"Service account key missing: {', '.join(missing)}")

    # Keys pasted into env vars often carry literal "\n"
    info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


class CredentialManager:
    """Produces bearer tokens for Google Cloud APIs."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        service_account_key: Optional[str],
        token_url: str,
        scope: str,
    ):
        self._client = client
        self._raw_key = service_account_key
        self._info: Optional[Dict[str, Any]] = None
        self.token_url = token_url
        self.scope = scope

    @property
    def service_account(self) -> Dict[str, Any]:
        if self._info is None:
            self._info = load_service_account(self._raw_key)
        return self._info

    def build_assertion(self, now: Optional[int] = None) -> str:
        """
        Signs the claims set as a compact JWT (header.claims.signature).
        """
        issued_at = int(time.time()) if now is None else now
        claims = {
            "iss": self.service_account["client_email"],
            "scope": self.scope,
            "aud": self.token_url,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(
                claims,
                self.service_account["private_key"],
                algorithm="RS256",
            )
        except JWTError as e:
            raise CredentialError("Could not sign service account assertion") from e

    async def fetch_access_token(self) -> AccessToken:
        """
        Exchanges a fresh assertion for a bearer token.

        Raises:
            CredentialError: On transport failure or a response without access_token
        """
        assertion = self.build_assertion()
        try:
            response = await self._client.post(
                self.token_url,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.HTTPError as e:
            raise CredentialError(f"Token endpoint unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        token = payload.get("access_token")
        if response.status_code != 200 or not token:
            logger.error(
                f"Token exchange failed: {response.status_code} {payload.get('error', '')}"
            )
            raise CredentialError(
                "Token exchange failed",
                details={"status_code": response.status_code, "error": payload.get("error")}
            )

        expires_in = float(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        logger.info("Access token obtained")
        return AccessToken(value=token, expires_at=time.time() + expires_in)
