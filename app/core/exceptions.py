from typing import Optional, Any


class DreamrError(Exception):
    """
    Base exception for Dreamr application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(DreamrError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(DreamrError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class ExternalServiceError(DreamrError):
    """
    Raised when an external service (Twilio, FLUX, Vertex AI) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None, code: str = "EXTERNAL_SERVICE_ERROR"):
        super().__init__(message, code=code, status_code=502, details=details)


class ProviderHTTPError(ExternalServiceError):
    """
    Raised when a provider answers with a non-OK HTTP status.
    Carries the upstream status code so pollers can pick a backoff.
    """
    def __init__(self, provider: str, status_code: int, body: Optional[str] = None):
        self.provider = provider
        self.upstream_status = status_code
        super().__init__(
            f"{provider} returned HTTP {status_code}",
            details={"status_code": status_code, "body": (body or "")[:500]},
            code="PROVIDER_HTTP_ERROR",
        )


class StorageError(ExternalServiceError):
    """
    Raised when an artifact cannot be downloaded or stored.
    """
    def __init__(self, message: str = "Storage error", details: Optional[Any] = None):
        super().__init__(message, details=details, code="STORAGE_ERROR")


class CredentialError(ExternalServiceError):
    """
    Raised when a bearer token cannot be obtained.
    """
    def __init__(self, message: str = "Could not obtain access token", details: Optional[Any] = None):
        super().__init__(message, details=details, code="CREDENTIAL_ERROR")


class ConcurrentUpdateError(DreamrError):
    """
    Raised when a conversation changed between read and write.
    """
    def __init__(self, conversation_id: str, details: Optional[Any] = None):
        self.conversation_id = conversation_id
        super().__init__(
            f"Conversation {conversation_id} was modified concurrently",
            code="CONCURRENT_UPDATE",
            status_code=409,
            details=details,
        )
