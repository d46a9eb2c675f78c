"""
Dependency injection functions for the API.

Long-lived collaborators are built once in the application lifespan and
kept on ``app.state``; these helpers hand them to route handlers.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from moodstream.core.exceptions import Unauthorized
from moodstream.core.security import extract_bearer_token
from moodstream.db.session import Database
from moodstream.services.identity import IdentityResolver
from moodstream.services.ingestion import TrackIngestionService
from moodstream.services.playlists import PlaylistService


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_object_store(request: Request):
    return request.app.state.object_store


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


def get_ingestion_service(request: Request) -> TrackIngestionService:
    return request.app.state.ingestion_service


def get_playlist_service(request: Request) -> PlaylistService:
    return request.app.state.playlist_service


async def get_token(
    request: Request, authorization: Optional[str] = Header(None)
) -> Optional[str]:
    """
    Extract the bearer token from the Authorization header or cookies.

    Returns None for anonymous requests.
    """
    return extract_bearer_token(authorization, request.cookies)


async def get_current_user_id(
    token: Optional[str] = Depends(get_token),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Optional[int]:
    """Resolve the caller's local user id, or None if unauthenticated."""
    return await resolver.resolve_user_id(token)


async def require_user_id(
    user_id: Optional[int] = Depends(get_current_user_id),
) -> int:
    """Get the caller's local user id, rejecting anonymous requests."""
    if user_id is None:
        raise Unauthorized()
    return user_id
