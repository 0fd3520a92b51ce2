"""
app/core/dependencies.py

Purpose: Explicitly scoped collaborators

- Services container built once at startup from one HTTP client and
  one database handle
- FastAPI dependency returning the container
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx
from fastapi import Request

from app.core.config import Settings
from app.jobs.registry import JobRegistry
from app.services.conversation_service import ConversationRepository
from app.services.credential_service import CredentialManager
from app.services.flux_service import FluxService
from app.services.notifier import Notifier
from app.services.storage_service import StorageService
from app.services.twilio_service import TwilioService
from app.services.veo_service import VeoService


@dataclass
class Services:
    settings: Settings
    http: httpx.AsyncClient
    conversations: ConversationRepository
    storage: StorageService
    twilio: TwilioService
    flux: FluxService
    veo: VeoService
    credentials: CredentialManager
    notifier: Notifier
    jobs: JobRegistry = field(default_factory=JobRegistry)
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep


def create_http_client(config: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=config.HTTP_TIMEOUT, follow_redirects=True)


def build_services(
    config: Settings,
    http: httpx.AsyncClient,
    conversations_collection,
    artifacts_bucket,
    **overrides: Any
) -> Services:
    """
    Wires every collaborator around the shared client and database handles.
    Keyword overrides replace individual components (tests).
    """
    conversations = overrides.pop("conversations", None) or ConversationRepository(conversations_collection)
    storage = overrides.pop("storage", None) or StorageService(artifacts_bucket, http, config.media_base_url)
    twilio = overrides.pop("twilio", None) or TwilioService(http, config)
    credentials = overrides.pop("credentials", None) or CredentialManager(
        http,
        config.GOOGLE_CLOUD_SERVICE_ACCOUNT_KEY,
        config.GOOGLE_OAUTH_TOKEN_URL,
        config.GOOGLE_OAUTH_SCOPE,
    )
    return Services(
        settings=config,
        http=http,
        conversations=conversations,
        storage=storage,
        twilio=twilio,
        flux=overrides.pop("flux", None) or FluxService(http, config),
        veo=overrides.pop("veo", None) or VeoService(http, config),
        credentials=credentials,
        notifier=overrides.pop("notifier", None) or Notifier(twilio, conversations),
        **overrides,
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized. The application lifespan did not run.")
    return services
