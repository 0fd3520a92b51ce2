"""
app/api/media.py

Purpose: Serves stored images and videos

Twilio fetches MMS media from these URLs, and the video job reads
the working image back through them.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.dependencies import Services, get_services

router = APIRouter()


@router.get("/media/{file_id}")
async def get_media(file_id: str, services: Services = Depends(get_services)):
    """
    Returns the artifact bytes with their stored content type.
    Unknown ids raise ResourceNotFoundError (404 JSON).
    """
    data, content_type = await services.storage.open(file_id)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"}
    )
