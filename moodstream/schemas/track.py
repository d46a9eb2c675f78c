"""
Pydantic models for track upload and listing.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class TrackSchema(BaseModel):
    """Normalized track as returned to clients and broadcast as new-track."""

    id: int
    title: str
    artist_name: str
    uploader_name: Optional[str] = None
    storage_key: str
    public_url: Optional[str] = None
    cover_path: Optional[str] = None
    cover_url: Optional[str] = None
    size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    auth_subject: Optional[str] = None
    legacy_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TrackUploadResponse(BaseModel):
    message: str = "Track uploaded successfully"
    track: TrackSchema


class TrackListResponse(BaseModel):
    tracks: List[TrackSchema]
