"""
Track ingestion: object-store upload with fallback, metadata insert and
the new-track broadcast.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from moodstream.core.exceptions import PersistenceError, UpstreamUnavailable, ValidationError
from moodstream.db.models import Track
from moodstream.db.session import Database
from moodstream.schemas.track import TrackSchema
from moodstream.services.identity import IdentityResolver
from moodstream.services.supabase.storage import STORAGE_BUCKET
from moodstream.utils.datetime_helper import epoch_millis

logger = logging.getLogger(__name__)

FALLBACK_ASSET_URL = os.getenv("FALLBACK_ASSET_URL", "/static/default-cover.png")
DEFAULT_ARTIST = "Unknown Artist"

AUDIO_PREFIX = "tracks"
COVER_PREFIX = "covers"
DEBUG_PREFIX = "debug"


@dataclass
class UploadedFile:
    """Binary payload received from a multipart form field."""

    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadContext:
    """Request-scoped inputs used to work out who uploaded a track."""

    token: Optional[str] = None
    uploader_name: Optional[str] = None
    user_cookie: Optional[str] = None
    legacy_user_id: Optional[str] = None


def make_safe_name(name: Optional[str]) -> str:
    """Collapse whitespace to underscores and keep only ``[A-Za-z0-9_.-]``."""
    name = re.sub(r"\s+", "_", str(name or "file"))
    return re.sub(r"[^a-zA-Z0-9_\-.]", "", name)


def build_storage_key(prefix: str, timestamp: int, filename: Optional[str]) -> str:
    return f"{prefix}/{timestamp}_{make_safe_name(filename)}"


def parse_legacy_user_id(value: Optional[str]) -> Optional[int]:
    """Parse the leading integer of a legacy numeric user id, if any."""
    if value is None:
        return None
    match = re.match(r"\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else None


def name_from_user_cookie(raw: Optional[str]) -> Optional[str]:
    """Read the display name stored by the Google OAuth callback."""
    if not raw:
        return None
    try:
        cookie_user = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Failed to parse user cookie: {e}")
        return None
    if not isinstance(cookie_user, dict):
        return None
    return cookie_user.get("name") or cookie_user.get("email") or None


class TrackIngestionService:
    """Stores uploaded tracks and announces them to realtime subscribers."""

    def __init__(
        self,
        database: Database,
        object_store,
        identity: IdentityResolver,
        notifier,
        bucket: str = STORAGE_BUCKET,
        fallback_asset_url: str = FALLBACK_ASSET_URL,
    ):
        self.database = database
        self.object_store = object_store
        self.identity = identity
        self.notifier = notifier
        self.bucket = bucket
        self.fallback_asset_url = fallback_asset_url

    async def submit_track(
        self,
        title: Optional[str],
        artist_name: Optional[str],
        audio: Optional[UploadedFile],
        cover: Optional[UploadedFile] = None,
        context: Optional[UploadContext] = None,
    ) -> TrackSchema:
        """
        Persist an uploaded track.

        Storage failures fall back to the default asset; only validation and
        the metadata insert can fail the request.

        Raises:
            ValidationError: If the title or audio is missing
            PersistenceError: If the metadata insert fails
        """
        context = context or UploadContext()
        title = (title or "").strip()
        artist = (artist_name or "").strip() or DEFAULT_ARTIST

        if audio is None or not title:
            raise ValidationError("Title and audio file are required.")

        auth_subject, uploader_name = await self._resolve_uploader(context, artist)
        legacy_user_id = parse_legacy_user_id(context.legacy_user_id)

        timestamp = epoch_millis()
        storage_key, public_url = await self._store_audio(audio, timestamp)
        cover_path, cover_url = await self._store_cover(cover, timestamp)

        track = Track(
            title=title,
            artist_name=artist,
            uploader_name=uploader_name,
            storage_key=storage_key,
            public_url=public_url,
            cover_path=cover_path,
            cover_url=cover_url,
            size_bytes=audio.size,
            mime_type=audio.content_type or None,
            auth_subject=auth_subject,
            legacy_user_id=legacy_user_id,
        )

        async with self.database.session() as session:
            session.add(track)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"DB insert error for {storage_key}: {e}")
                raise PersistenceError.from_exception("Database insert failed", e)

        created = TrackSchema.model_validate(track)
        logger.info(f"Track {created.id} uploaded as {created.storage_key}")

        await self.notifier.broadcast("new-track", created.model_dump())
        return created

    async def list_tracks(self, limit: int = 50) -> List[TrackSchema]:
        """Return the newest tracks with fallback URLs filled in."""
        async with self.database.session() as session:
            result = await session.execute(
                select(Track).order_by(Track.created_at.desc(), Track.id.desc()).limit(limit)
            )
            rows = result.scalars().all()

        tracks = []
        for row in rows:
            track = TrackSchema.model_validate(row)
            track.public_url = track.public_url or self.fallback_asset_url
            track.cover_url = track.cover_url or self.fallback_asset_url
            tracks.append(track)
        return tracks

    async def _resolve_uploader(self, context: UploadContext, artist: str):
        """Return ``(auth_subject, uploader_name)``.

        Name order: explicit form field, identity profile, legacy cookie,
        then the artist name.
        """
        uploader_name = (context.uploader_name or "").strip() or None

        profile = await self.identity.identify(context.token)
        auth_subject = profile.subject if profile else None
        if not uploader_name and profile:
            uploader_name = profile.best_name

        if not uploader_name:
            uploader_name = name_from_user_cookie(context.user_cookie)

        return auth_subject, uploader_name or artist

    async def _store_audio(self, audio: UploadedFile, timestamp: int):
        storage_key = build_storage_key(AUDIO_PREFIX, timestamp, audio.filename)
        try:
            public_url = await self.object_store.put_object(
                self.bucket, storage_key, audio.data, audio.content_type
            )
        except Exception as e:
            logger.error(f"Audio upload error: {_describe(e)}")
            return (
                build_storage_key(DEBUG_PREFIX, timestamp, audio.filename),
                self.fallback_asset_url,
            )
        return storage_key, public_url or self.fallback_asset_url

    async def _store_cover(self, cover: Optional[UploadedFile], timestamp: int):
        if cover is None:
            return None, self.fallback_asset_url

        cover_path = build_storage_key(COVER_PREFIX, timestamp, cover.filename)
        try:
            cover_url = await self.object_store.put_object(
                self.bucket, cover_path, cover.data, cover.content_type
            )
        except Exception as e:
            logger.warning(f"Cover upload error: {_describe(e)}")
            return (
                build_storage_key(f"{DEBUG_PREFIX}/{COVER_PREFIX}", timestamp, cover.filename),
                self.fallback_asset_url,
            )
        return cover_path, cover_url or self.fallback_asset_url


def _describe(error: Exception) -> str:
    if isinstance(error, UpstreamUnavailable):
        return f"{error.message} ({error.detail})"
    return repr(error)
