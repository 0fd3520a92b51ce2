"""
app/api/webhook.py

Purpose: Twilio messaging webhook endpoint

- Receives incoming SMS/MMS as form data
- Normalizes the payload and passes control to the flow dispatcher
- Always answers with TwiML, including on internal errors
"""

from fastapi import APIRouter, Depends, Form
from fastapi.responses import Response
from typing import Optional

from app.core.dependencies import Services, get_services
from app.core.logging import get_logger
from app.flow.dispatcher import dispatch_message
from app.schemas.webhook import parse_twilio_message, render_twiml, TWIML_CONTENT_TYPE
from utils.constants import GENERIC_ERROR_MESSAGE

logger = get_logger(__name__)
router = APIRouter()


def twiml_response(message: str) -> Response:
    return Response(content=render_twiml(message), media_type=TWIML_CONTENT_TYPE)


@router.post("/webhook")
async def webhook_handler(
    services: Services = Depends(get_services),
    MessageSid: Optional[str] = Form(None),
    From: Optional[str] = Form(None),
    To: Optional[str] = Form(None),
    Body: Optional[str] = Form(None),
    NumMedia: Optional[str] = Form(None),
    MediaUrl0: Optional[str] = Form(None),
    MediaContentType0: Optional[str] = Form(None),
):
    """
    Inbound message webhook (configure as the number's messaging URL).
    """
    try:
        if not From or not From.strip():
            logger.warning("Webhook called without a From number")
            return twiml_response(GENERIC_ERROR_MESSAGE)

        message = parse_twilio_message(
            from_number=From,
            body=Body,
            to_number=To,
            message_sid=MessageSid,
            num_media=NumMedia,
            media_url=MediaUrl0,
            media_content_type=MediaContentType0,
        )
        logger.info(f"📱 Twilio webhook received from {message.phone}")

        reply = await dispatch_message(message, services)
        return twiml_response(reply)

    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)
        return twiml_response(GENERIC_ERROR_MESSAGE)


@router.get("/webhook")
async def webhook_verification():
    """
    Endpoint liveness check.
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
