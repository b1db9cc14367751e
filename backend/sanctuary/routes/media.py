"""
Sanctuary Backend — Sermon Audio Serving
==========================================

What:  GET /mp3/{filename} streams a stored sermon file.
How:   MediaService.path_for() rejects names with directory parts, so only
       files directly inside the upload directory are reachable.
Who:   Audio players following a sermon's mp3Url.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from sanctuary.exceptions import FileStorageError, NotFoundError
from sanctuary.schemas.common import ErrorResponse
from sanctuary.services.media_service import media_service
from sanctuary.services.sermon_service import MEDIA_URL_PREFIX

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Media"])


@router.get(
    f"/{MEDIA_URL_PREFIX}/{{filename}}",
    responses={
        200: {"description": "Audio file", "content": {"audio/mpeg": {}}},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve sermon audio",
)
async def serve_audio(filename: str) -> FileResponse:
    try:
        path = media_service.path_for(filename)
    except FileStorageError:
        raise NotFoundError(resource="audio file", resource_id=filename)
    if not path.is_file():
        raise NotFoundError(resource="audio file", resource_id=filename)

    return FileResponse(
        path=str(path),
        media_type="audio/mpeg",
        headers={"Cache-Control": "public, max-age=86400"},
    )
