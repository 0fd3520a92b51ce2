"""
app/schemas/webhook.py

Purpose: Twilio messaging webhook payloads

- Validates incoming form fields
- Normalizes them into InboundMessage
- Renders TwiML replies
"""

from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel, Field

TWIML_CONTENT_TYPE = "application/xml"


class InboundMessage(BaseModel):
    """
    Normalized inbound SMS/MMS.
    """
    message_sid: Optional[str] = Field(None, description="Twilio message SID")
    phone: str = Field(..., description="Sender phone number in E.164 format")
    to: Optional[str] = Field(None, description="Our receiving number")
    text: str = Field("", description="Message body (trimmed)")
    num_media: int = Field(0, ge=0)
    media_url: Optional[str] = None
    media_content_type: Optional[str] = None
    stored_image_url: Optional[str] = Field(
        None, description="Artifact URL once the attachment has been stored"
    )
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_image_attachment(self) -> bool:
        return self.num_media > 0 and bool(self.media_url)

    class Config:
        json_schema_extra = {
            "example": {
                "message_sid": "SM1234567890",
                "phone": "+15551234567",
                "to": "+15557654321",
                "text": "make it look like a painting",
                "num_media": 0,
            }
        }


def _parse_count(value: Optional[str]) -> int:
    try:
        return max(int(value or 0), 0)
    except ValueError:
        return 0


def parse_twilio_message(
    from_number: str,
    body: Optional[str] = None,
    to_number: Optional[str] = None,
    message_sid: Optional[str] = None,
    num_media: Optional[str] = None,
    media_url: Optional[str] = None,
    media_content_type: Optional[str] = None,
) -> InboundMessage:
    """
    Parses Twilio webhook form data.

    Twilio format (form data):
    - From: +15551234567
    - Body: message text
    - NumMedia: "1"
    - MediaUrl0 / MediaContentType0: first attachment
    """
    return InboundMessage(
        message_sid=message_sid,
        phone=from_number.strip(),
        to=to_number,
        text=(body or "").strip(),
        num_media=_parse_count(num_media),
        media_url=media_url or None,
        media_content_type=media_content_type or None,
    )


def render_twiml(message: str) -> str:
    """
    Builds a TwiML document with a single reply message.
    """
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<Response>\n"
        f"  <Message>{escape(message)}</Message>\n"
        "</Response>"
    )
