"""
Playlist routes: listing, creation and membership changes.

``/add`` and ``/remove`` are kept for older clients and share the handlers
of ``/add-track`` and ``/remove-track``.
"""

from fastapi import APIRouter, Depends, status

from moodstream.dependencies import get_playlist_service, require_user_id
from moodstream.schemas.playlist import (
    AddTrackResponse,
    PlaylistCreate,
    PlaylistListResponse,
    PlaylistSchema,
    RemoveTrackResponse,
    TrackMembershipRequest,
)
from moodstream.services.ingestion import FALLBACK_ASSET_URL
from moodstream.services.playlists import PlaylistService

router = APIRouter(prefix="/api/playlists", tags=["playlists"])


@router.get("", response_model=PlaylistListResponse)
@router.get("/", response_model=PlaylistListResponse, include_in_schema=False)
async def list_playlists(
    user_id: int = Depends(require_user_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    """List the caller's playlists with their tracks."""
    playlists = await service.list_playlists(user_id)
    return {"playlists": playlists, "sample_image": FALLBACK_ASSET_URL}


@router.post("", response_model=PlaylistSchema, status_code=status.HTTP_201_CREATED)
@router.post(
    "/",
    response_model=PlaylistSchema,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
async def create_playlist(
    data: PlaylistCreate,
    user_id: int = Depends(require_user_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    """Create a playlist owned by the caller."""
    return await service.create_playlist(user_id, data.name)


@router.post("/{playlist_id}/add-track", response_model=AddTrackResponse)
@router.post("/{playlist_id}/add", response_model=AddTrackResponse)
async def add_track(
    playlist_id: int,
    data: TrackMembershipRequest,
    user_id: int = Depends(require_user_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    """Add a track to one of the caller's playlists."""
    result = await service.add_track(user_id, playlist_id, data.trackId)
    return {"success": True, "inserted": result.inserted}


@router.post("/{playlist_id}/remove-track", response_model=RemoveTrackResponse)
@router.post("/{playlist_id}/remove", response_model=RemoveTrackResponse)
async def remove_track(
    playlist_id: int,
    data: TrackMembershipRequest,
    user_id: int = Depends(require_user_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    """Remove a track from one of the caller's playlists."""
    result = await service.remove_track(user_id, playlist_id, data.trackId)
    return {"success": True, "deletedRows": result.deleted_count}
