"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, provider credentials, polling cadence)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal, List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="dreamr",
        description="MongoDB database name"
    )

    # Twilio (SMS/MMS gateway)
    TWILIO_ACCOUNT_SID: Optional[str] = Field(
        default=None,
        description="Twilio account SID"
    )
    TWILIO_AUTH_TOKEN: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    TWILIO_PHONE_NUMBER: Optional[str] = Field(
        default=None,
        description="Sender number for outbound messages"
    )
    TWILIO_API_BASE_URL: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL"
    )

    # Image editing (BFL FLUX Kontext)
    BFL_API_KEY: Optional[str] = Field(
        default=None,
        description="BFL API key"
    )
    BFL_BASE_URL: str = Field(
        default="https://api.bfl.ai/v1",
        description="BFL API base URL"
    )
    BFL_MODEL: str = Field(
        default="flux-kontext-pro",
        description="Image editing model endpoint"
    )
    BFL_SAFETY_TOLERANCE: int = Field(
        default=2,
        description="Moderation tolerance passed to the editing model"
    )

    # Video generation (Vertex AI Veo)
    GOOGLE_CLOUD_PROJECT_ID: Optional[str] = Field(
        default=None,
        description="Google Cloud project hosting Vertex AI"
    )
    GOOGLE_CLOUD_LOCATION: str = Field(
        default="us-central1",
        description="Vertex AI region"
    )
    GOOGLE_CLOUD_SERVICE_ACCOUNT_KEY: Optional[str] = Field(
        default=None,
        description="Service account key JSON (client_email, private_key)"
    )
    GOOGLE_OAUTH_TOKEN_URL: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth token endpoint for the signed assertion exchange"
    )
    GOOGLE_OAUTH_SCOPE: str = Field(
        default="https://www.googleapis.com/auth/cloud-platform",
        description="Scope requested for the bearer token"
    )
    VEO_MODEL: str = Field(
        default="veo-3.0-generate-preview",
        description="Video generation model"
    )
    VEO_ASPECT_RATIO: str = Field(default="16:9")
    VEO_RESOLUTION: str = Field(default="720p")
    VEO_STORAGE_URI: Optional[str] = Field(
        default=None,
        description="GCS destination for generated videos (defaults to gs://<project>-dreamr-videos/)"
    )

    # Media
    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build media links sent to users"
    )
    MAX_IMAGE_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted image size"
    )

    # Job polling
    EDIT_POLL_BASE_DELAY: float = Field(
        default=2.0,
        description="Initial and minimum delay between image edit status checks (seconds)"
    )
    EDIT_POLL_MAX_DELAY: float = Field(
        default=10.0,
        description="Ceiling for the adaptive image edit delay (seconds)"
    )
    EDIT_POLL_MAX_ATTEMPTS: int = Field(
        default=60,
        description="Maximum image edit status checks"
    )
    VIDEO_POLL_INTERVAL: float = Field(
        default=30.0,
        description="Fixed delay between video status checks (seconds)"
    )
    VIDEO_POLL_MAX_ATTEMPTS: int = Field(
        default=60,
        description="Maximum video status checks"
    )
    VIDEO_TOKEN_REFRESH_EVERY: int = Field(
        default=10,
        description="Refresh the bearer token before every Nth video status check"
    )

    # Conversation flow
    VIDEO_INTENT_PHRASES: List[str] = Field(
        default=["video", "animate", "yes", "proceed", "proceed to video"],
        description="Phrases that mean 'go ahead and make the video'"
    )
    EDIT_INTENT_PHRASES: List[str] = Field(
        default=["edit", "change", "modify", "make another edit"],
        description="Phrases that mean 'edit the image again'"
    )
    CONVERSATION_UPDATE_RETRIES: int = Field(
        default=3,
        description="Re-read attempts when a conversation update loses a race"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    HTTP_TIMEOUT: float = Field(
        default=30.0,
        description="Timeout for outbound HTTP calls in seconds"
    )

    @validator("TWILIO_AUTH_TOKEN")
    def validate_twilio_token(cls, v, values):
        """Ensure Twilio credentials are set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("TWILIO_AUTH_TOKEN is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def media_base_url(self) -> str:
        """Base URL under which stored artifacts are served."""
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}{self.API_PREFIX}/media"

    @property
    def veo_storage_uri(self) -> str:
        if self.VEO_STORAGE_URI:
            return self.VEO_STORAGE_URI
        return f"gs://{self.GOOGLE_CLOUD_PROJECT_ID}-dreamr-videos/"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if config.EDIT_POLL_BASE_DELAY <= 0 or config.EDIT_POLL_MAX_DELAY < config.EDIT_POLL_BASE_DELAY:
        errors.append("EDIT_POLL_MAX_DELAY must be >= EDIT_POLL_BASE_DELAY > 0")

    if config.VIDEO_TOKEN_REFRESH_EVERY < 1:
        errors.append("VIDEO_TOKEN_REFRESH_EVERY must be at least 1")

    # Production-specific validations
    if config.is_production:
        for key in (
            "TWILIO_ACCOUNT_SID",
            "TWILIO_AUTH_TOKEN",
            "TWILIO_PHONE_NUMBER",
            "BFL_API_KEY",
            "GOOGLE_CLOUD_PROJECT_ID",
            "GOOGLE_CLOUD_SERVICE_ACCOUNT_KEY",
        ):
            if not getattr(config, key):
                errors.append(f"{key} is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
