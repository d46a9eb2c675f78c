"""
Pydantic models for playlist requests and responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PlaylistCreate(BaseModel):
    """Schema for creating a playlist. Emptiness is checked by the service."""

    name: Optional[str] = None


class PlaylistSchema(BaseModel):
    """Schema for a created playlist."""

    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class PlaylistTrackEntry(BaseModel):
    """A membership row joined against its track. Track fields may be null."""

    track_id: int
    title: Optional[str] = None
    public_url: Optional[str] = None
    cover_url: Optional[str] = None
    duration: Optional[int] = None


class PlaylistWithTracks(PlaylistSchema):
    tracks: List[PlaylistTrackEntry] = Field(default_factory=list)


class PlaylistListResponse(BaseModel):
    playlists: List[PlaylistWithTracks]
    sample_image: Optional[str] = None


class TrackMembershipRequest(BaseModel):
    """Body of the add/remove track endpoints."""

    trackId: int


class AddTrackResponse(BaseModel):
    success: bool = True
    inserted: bool


class RemoveTrackResponse(BaseModel):
    success: bool = True
    deletedRows: int
