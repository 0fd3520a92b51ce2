import pytest

from app.core.config import Settings, validate_settings
from utils.media_utils import (
    canonical_image_type,
    encode_base64,
    extension_for,
    format_size,
    is_supported_image_type,
)


@pytest.mark.parametrize("content_type,supported", [
    ("image/jpeg", True),
    ("image/jpg", True),
    ("IMAGE/PNG; charset=binary", True),
    ("image/gif", False),
    ("video/mp4", False),
    (None, False),
])
def test_supported_image_types(content_type, supported):
    assert is_supported_image_type(content_type) is supported


def test_canonical_type_and_extension():
    assert canonical_image_type("image/jpg") == "image/jpeg"
    assert canonical_image_type("image/png") == "image/png"
    assert extension_for("video/mp4") == ".mp4"
    assert extension_for("application/octet-stream") == ""


def test_format_size():
    assert format_size(10 * 1024 * 1024) == "10 MB"
    assert format_size(int(1.5 * 1024 * 1024)) == "1.5 MB"
    assert format_size(2048) == "2 KB"


def test_encode_base64():
    assert encode_base64(b"hello") == "aGVsbG8="


def test_media_base_url_and_storage_uri():
    config = Settings(PUBLIC_BASE_URL="https://dreamr.test/", GOOGLE_CLOUD_PROJECT_ID="p1")
    assert config.media_base_url == "https://dreamr.test/api/v1/media"
    assert config.veo_storage_uri == "gs://p1-dreamr-videos/"


def test_production_requires_provider_credentials():
    config = Settings(ENVIRONMENT="production", TWILIO_AUTH_TOKEN="secret")
    for key in ("TWILIO_ACCOUNT_SID", "TWILIO_PHONE_NUMBER", "BFL_API_KEY",
                "GOOGLE_CLOUD_PROJECT_ID", "GOOGLE_CLOUD_SERVICE_ACCOUNT_KEY"):
        setattr(config, key, None)

    with pytest.raises(ValueError) as exc_info:
        validate_settings(config)
    assert "BFL_API_KEY" in str(exc_info.value)


def test_development_settings_validate(config):
    assert validate_settings(config) is True
