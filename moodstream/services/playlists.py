"""
Playlist management: creation, listing and idempotent membership changes.

Membership uniqueness lives in the datastore's primary key on
``(playlist_id, track_id)``; no application locks are taken.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from moodstream.core.exceptions import Forbidden, PersistenceError, Unauthorized, ValidationError
from moodstream.db.models import Playlist, PlaylistTrack, Track
from moodstream.db.session import Database
from moodstream.schemas.playlist import PlaylistSchema, PlaylistTrackEntry, PlaylistWithTracks
from moodstream.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class AddTrackResult:
    inserted: bool


@dataclass
class RemoveTrackResult:
    deleted_count: int


class PlaylistService:
    """Service layer for playlist operations."""

    def __init__(self, database: Database, notifier):
        self.database = database
        self.notifier = notifier

        if database.dialect_name not in _INSERT_BY_DIALECT:
            raise ValueError(f"Unsupported database dialect: {database.dialect_name}")
        self._insert = _INSERT_BY_DIALECT[database.dialect_name]

    async def list_playlists(self, user_id: Optional[int]) -> List[PlaylistWithTracks]:
        """Get all playlists for a user, newest first, with their tracks in insertion order."""
        _require_identity(user_id)

        async with self.database.session() as session:
            result = await session.execute(
                select(Playlist.id, Playlist.name, Playlist.created_at)
                .where(Playlist.user_id == user_id)
                .order_by(Playlist.created_at.desc(), Playlist.id.desc())
            )
            playlists = result.all()

            listed = []
            for playlist in playlists:
                tracks = await self._playlist_tracks(session, playlist.id)
                listed.append(
                    PlaylistWithTracks(
                        id=playlist.id,
                        name=playlist.name,
                        created_at=playlist.created_at,
                        tracks=tracks,
                    )
                )
        return listed

    async def create_playlist(self, user_id: Optional[int], name: Optional[str]) -> PlaylistSchema:
        """Create a new playlist owned by ``user_id``."""
        _require_identity(user_id)

        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ValidationError("Name is required")

        playlist = Playlist(user_id=user_id, name=name)
        async with self.database.session() as session:
            session.add(playlist)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error creating playlist for user {user_id}: {e}")
                raise PersistenceError.from_exception("Failed to create playlist", e)

        created = PlaylistSchema.model_validate(playlist)
        logger.info(f"Playlist created: {created.id} for user {user_id}")

        await self.notifier.broadcast(
            "playlist-created", {"playlist": created.model_dump(), "userId": user_id}
        )
        return created

    async def add_track(
        self, user_id: Optional[int], playlist_id: int, track_id: int
    ) -> AddTrackResult:
        """Add a track to a playlist; adding an existing member is not an error."""
        _require_identity(user_id)

        async with self.database.session() as session:
            await self._check_owner(session, user_id, playlist_id)

            stmt = (
                self._insert(PlaylistTrack)
                .values(playlist_id=playlist_id, track_id=track_id, added_at=utc_now())
                .on_conflict_do_nothing(index_elements=["playlist_id", "track_id"])
                .returning(PlaylistTrack.track_id)
            )
            try:
                result = await session.execute(stmt)
                inserted = result.first() is not None
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error adding track {track_id} to playlist {playlist_id}: {e}")
                raise PersistenceError.from_exception("Failed to add track to playlist", e)

        if inserted:
            logger.info(f"Track {track_id} added to playlist {playlist_id}")
        else:
            logger.info(f"Track {track_id} already in playlist {playlist_id}")

        await self.notifier.broadcast(
            "playlist-updated",
            {"playlistId": playlist_id, "trackId": track_id, "added": inserted},
        )
        return AddTrackResult(inserted=inserted)

    async def remove_track(
        self, user_id: Optional[int], playlist_id: int, track_id: int
    ) -> RemoveTrackResult:
        """Remove a track from a playlist; removing a non-member deletes nothing."""
        _require_identity(user_id)

        async with self.database.session() as session:
            await self._check_owner(session, user_id, playlist_id)

            try:
                result = await session.execute(
                    delete(PlaylistTrack).where(
                        PlaylistTrack.playlist_id == playlist_id,
                        PlaylistTrack.track_id == track_id,
                    )
                )
                deleted_count = result.rowcount or 0
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error removing track {track_id} from playlist {playlist_id}: {e}")
                raise PersistenceError.from_exception("Failed to remove track from playlist", e)

        logger.info(f"Removed {deleted_count} row(s) for track {track_id} from playlist {playlist_id}")

        # Sent even when nothing was deleted
        await self.notifier.broadcast(
            "playlist-updated",
            {"playlistId": playlist_id, "trackId": track_id, "removed": True},
        )
        return RemoveTrackResult(deleted_count=deleted_count)

    async def _check_owner(self, session: AsyncSession, user_id: int, playlist_id: int) -> None:
        result = await session.execute(
            select(Playlist.user_id).where(Playlist.id == playlist_id).limit(1)
        )
        owner_id = result.scalar_one_or_none()
        if owner_id is None or owner_id != user_id:
            raise Forbidden()

    async def _playlist_tracks(
        self, session: AsyncSession, playlist_id: int
    ) -> List[PlaylistTrackEntry]:
        result = await session.execute(
            select(
                PlaylistTrack.track_id,
                Track.title,
                Track.public_url,
                Track.cover_url,
                Track.duration_seconds,
            )
            .select_from(PlaylistTrack)
            .outerjoin(Track, Track.id == PlaylistTrack.track_id)
            .where(PlaylistTrack.playlist_id == playlist_id)
            .order_by(PlaylistTrack.added_at.asc())
        )
        return [
            PlaylistTrackEntry(
                track_id=row.track_id,
                title=row.title,
                public_url=row.public_url,
                cover_url=row.cover_url,
                duration=row.duration_seconds,
            )
            for row in result.all()
        ]


def _require_identity(user_id: Optional[int]) -> None:
    if user_id is None:
        raise Unauthorized()
