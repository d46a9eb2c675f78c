"""
Track routes: multipart upload and recent-track listing.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, File, Form, Query, UploadFile

from moodstream.dependencies import get_ingestion_service, get_token
from moodstream.schemas.track import TrackListResponse, TrackUploadResponse
from moodstream.services.ingestion import TrackIngestionService, UploadContext, UploadedFile

router = APIRouter(prefix="/api", tags=["tracks"])


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Read a multipart file field; an empty field counts as absent."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return UploadedFile(filename=upload.filename, content_type=upload.content_type, data=data)


@router.post("/upload-track", response_model=TrackUploadResponse)
async def upload_track(
    title: Optional[str] = Form(None),
    artist_name: Optional[str] = Form(None),
    artist: Optional[str] = Form(None),
    uploader_name: Optional[str] = Form(None),
    userId: Optional[str] = Form(None),
    audio: Optional[UploadFile] = File(None),
    cover: Optional[UploadFile] = File(None),
    user: Optional[str] = Cookie(None),
    token: Optional[str] = Depends(get_token),
    service: TrackIngestionService = Depends(get_ingestion_service),
):
    """
    Upload an audio file with optional cover art.

    The artist may be sent as ``artist_name`` or ``artist``.
    """
    context = UploadContext(
        token=token,
        uploader_name=uploader_name,
        user_cookie=user,
        legacy_user_id=userId,
    )
    track = await service.submit_track(
        title=title,
        artist_name=artist_name or artist,
        audio=await read_upload(audio),
        cover=await read_upload(cover),
        context=context,
    )
    return {"message": "Track uploaded successfully", "track": track}


@router.get("/tracks", response_model=TrackListResponse)
async def list_tracks(
    limit: int = Query(50, ge=1, le=500),
    service: TrackIngestionService = Depends(get_ingestion_service),
):
    """List the most recently uploaded tracks."""
    return {"tracks": await service.list_tracks(limit)}
