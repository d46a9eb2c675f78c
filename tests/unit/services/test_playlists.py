"""Unit tests for PlaylistService."""

import pytest
from sqlalchemy import func, select

from moodstream.core.exceptions import Forbidden, Unauthorized, ValidationError
from moodstream.db.models import PlaylistTrack, Track, User
from moodstream.services.playlists import PlaylistService


@pytest.fixture
async def owners(database):
    """Create two users and return their ids."""
    async with database.session() as session:
        alice = User(name="Alice", auth_subject="sub-alice")
        bob = User(name="Bob", auth_subject="sub-bob")
        session.add_all([alice, bob])
        await session.commit()
        return alice.id, bob.id


async def add_stored_track(database, title):
    async with database.session() as session:
        track = Track(
            title=title,
            storage_key=f"tracks/1_{title}.mp3",
            public_url=f"https://storage.test/{title}.mp3",
            cover_url="https://storage.test/cover.png",
            duration_seconds=215,
        )
        session.add(track)
        await session.commit()
        return track.id


async def membership_count(database, playlist_id, track_id):
    async with database.session() as session:
        return await session.scalar(
            select(func.count())
            .select_from(PlaylistTrack)
            .where(PlaylistTrack.playlist_id == playlist_id, PlaylistTrack.track_id == track_id)
        )


class TestCreatePlaylist:
    """Tests for playlist creation."""

    @pytest.mark.asyncio
    async def test_create(self, playlist_service, owners, emitted):
        alice_id, _ = owners
        playlist = await playlist_service.create_playlist(alice_id, "  Focus  ")

        assert playlist.id is not None
        assert playlist.name == "Focus"
        assert playlist.created_at is not None

        event, payload = emitted()[0]
        assert event == "playlist-created"
        assert payload["userId"] == alice_id
        assert payload["playlist"]["id"] == playlist.id
        assert payload["playlist"]["name"] == "Focus"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    async def test_name_required(self, playlist_service, owners, name):
        alice_id, _ = owners
        with pytest.raises(ValidationError, match="Name is required"):
            await playlist_service.create_playlist(alice_id, name)

    @pytest.mark.asyncio
    async def test_requires_identity(self, playlist_service):
        with pytest.raises(Unauthorized):
            await playlist_service.create_playlist(None, "Focus")


class TestAddTrack:
    """Tests for idempotent membership inserts."""

    @pytest.mark.asyncio
    async def test_add_twice_is_idempotent(self, playlist_service, database, owners, emitted):
        alice_id, _ = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")

        first = await playlist_service.add_track(alice_id, playlist.id, 7)
        second = await playlist_service.add_track(alice_id, playlist.id, 7)

        assert first.inserted is True
        assert second.inserted is False
        assert await membership_count(database, playlist.id, 7) == 1

        updates = [payload for event, payload in emitted() if event == "playlist-updated"]
        assert updates == [
            {"playlistId": playlist.id, "trackId": 7, "added": True},
            {"playlistId": playlist.id, "trackId": 7, "added": False},
        ]

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, playlist_service, database, owners):
        alice_id, bob_id = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")

        with pytest.raises(Forbidden):
            await playlist_service.add_track(bob_id, playlist.id, 7)
        assert await membership_count(database, playlist.id, 7) == 0

    @pytest.mark.asyncio
    async def test_missing_playlist_is_forbidden(self, playlist_service, owners):
        alice_id, _ = owners
        with pytest.raises(Forbidden):
            await playlist_service.add_track(alice_id, 424242, 7)

    @pytest.mark.asyncio
    async def test_requires_identity(self, playlist_service):
        with pytest.raises(Unauthorized):
            await playlist_service.add_track(None, 1, 7)


class TestRemoveTrack:
    """Tests for idempotent membership deletes."""

    @pytest.mark.asyncio
    async def test_remove_member(self, playlist_service, database, owners):
        alice_id, _ = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")
        await playlist_service.add_track(alice_id, playlist.id, 7)

        result = await playlist_service.remove_track(alice_id, playlist.id, 7)

        assert result.deleted_count == 1
        assert await membership_count(database, playlist.id, 7) == 0

    @pytest.mark.asyncio
    async def test_remove_non_member(self, playlist_service, owners, emitted):
        alice_id, _ = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")

        result = await playlist_service.remove_track(alice_id, playlist.id, 7)

        assert result.deleted_count == 0
        # The event does not distinguish a real removal from a no-op
        assert emitted()[-1] == (
            "playlist-updated",
            {"playlistId": playlist.id, "trackId": 7, "removed": True},
        )

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, playlist_service, database, owners):
        alice_id, bob_id = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")
        await playlist_service.add_track(alice_id, playlist.id, 7)

        with pytest.raises(Forbidden):
            await playlist_service.remove_track(bob_id, playlist.id, 7)
        assert await membership_count(database, playlist.id, 7) == 1


class TestListPlaylists:
    """Tests for playlist listing."""

    @pytest.mark.asyncio
    async def test_requires_identity(self, playlist_service):
        with pytest.raises(Unauthorized):
            await playlist_service.list_playlists(None)

    @pytest.mark.asyncio
    async def test_only_own_playlists_newest_first(self, playlist_service, owners):
        alice_id, bob_id = owners
        older = await playlist_service.create_playlist(alice_id, "Older")
        newer = await playlist_service.create_playlist(alice_id, "Newer")
        await playlist_service.create_playlist(bob_id, "Bob's")

        playlists = await playlist_service.list_playlists(alice_id)

        assert [p.id for p in playlists] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_tracks_in_insertion_order(self, playlist_service, database, owners):
        alice_id, _ = owners
        first = await add_stored_track(database, "first")
        second = await add_stored_track(database, "second")
        playlist = await playlist_service.create_playlist(alice_id, "Focus")

        await playlist_service.add_track(alice_id, playlist.id, second)
        await playlist_service.add_track(alice_id, playlist.id, first)

        [listed] = await playlist_service.list_playlists(alice_id)

        assert [t.track_id for t in listed.tracks] == [second, first]
        entry = listed.tracks[0]
        assert entry.title == "second"
        assert entry.public_url == "https://storage.test/second.mp3"
        assert entry.cover_url == "https://storage.test/cover.png"
        assert entry.duration == 215

    @pytest.mark.asyncio
    async def test_focus_scenario_single_membership(self, playlist_service, owners):
        alice_id, _ = owners
        playlist = await playlist_service.create_playlist(alice_id, "Focus")
        await playlist_service.add_track(alice_id, playlist.id, 7)
        await playlist_service.add_track(alice_id, playlist.id, 7)

        [listed] = await playlist_service.list_playlists(alice_id)

        assert listed.name == "Focus"
        assert [t.track_id for t in listed.tracks] == [7]
        # Track 7 does not exist, so its fields degrade to null
        assert listed.tracks[0].title is None
        assert listed.tracks[0].public_url is None


def test_unsupported_dialect():
    class FakeDatabase:
        dialect_name = "oracle"

    with pytest.raises(ValueError, match="Unsupported database dialect"):
        PlaylistService(FakeDatabase(), notifier=None)
