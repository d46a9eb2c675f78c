"""
Test configuration and fixtures for pytest.

Tests run against a throwaway SQLite database with in-memory stand-ins for
the identity provider and object store. The Socket.io server is real but
its emit is replaced with a mock so broadcasts can be inspected.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from moodstream.core.exceptions import UpstreamUnavailable
from moodstream.db.session import Database
from moodstream.main import create_app
from moodstream.schemas.identity import IdentityProfile
from moodstream.services.identity import IdentityResolver
from moodstream.services.ingestion import TrackIngestionService
from moodstream.services.playlists import PlaylistService
from moodstream.services.socketio import SocketIOServer

FALLBACK_URL = "/static/test-fallback.png"


class FakeIdentityProvider:
    """Maps known tokens to profiles; unknown tokens are invalid."""

    def __init__(self):
        self.profiles = {}
        self.error = None
        self.calls = []

    def register(self, token, subject, email=None, display_name=None):
        self.profiles[token] = IdentityProfile(
            subject=subject, email=email, display_name=display_name
        )

    async def verify_token(self, token):
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        return self.profiles.get(token)


class FakeObjectStore:
    """Keeps uploaded objects in a dict; can be switched to fail."""

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.fail = False

    def get_public_url(self, bucket, key):
        return f"https://storage.test/{bucket}/{key}"

    async def put_object(self, bucket, key, data, content_type):
        self.calls.append((bucket, key, content_type))
        if self.fail:
            raise UpstreamUnavailable("Object store unreachable", detail="simulated outage")
        self.objects[(bucket, key)] = data
        return self.get_public_url(bucket, key)

    async def list_objects(self, bucket, prefix="", limit=100):
        if self.fail:
            raise UpstreamUnavailable("Object store unreachable", detail="simulated outage")
        names = [key for (b, key) in self.objects if b == bucket and key.startswith(prefix)]
        return [{"name": name} for name in names[:limit]]


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'moodstream-test.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    """Create a database with all tables for a test."""
    db = Database(database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def identity_provider():
    provider = FakeIdentityProvider()
    provider.register("token-alice", "sub-alice", email="alice@example.com", display_name="Alice")
    provider.register("token-bob", "sub-bob", email="bob@example.com")
    return provider


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def notifier():
    server = SocketIOServer(cors_origins=[], redis_url=None)
    server.sio.emit = AsyncMock()
    return server


@pytest.fixture
def resolver(database, identity_provider):
    return IdentityResolver(database, identity_provider)


@pytest.fixture
def ingestion_service(database, object_store, resolver, notifier):
    return TrackIngestionService(
        database,
        object_store,
        resolver,
        notifier,
        bucket="Tracks",
        fallback_asset_url=FALLBACK_URL,
    )


@pytest.fixture
def playlist_service(database, notifier):
    return PlaylistService(database, notifier)


@pytest.fixture
def app(database_url, identity_provider, object_store, notifier):
    return create_app(
        database_url=database_url,
        identity_provider=identity_provider,
        object_store=object_store,
        notifier=notifier,
        create_tables=True,
    )


@pytest.fixture
def client(app):
    """Create a test client; entering it runs the application lifespan."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def alice_headers():
    return {"Authorization": "Bearer token-alice"}


@pytest.fixture
def bob_headers():
    return {"Authorization": "Bearer token-bob"}


@pytest.fixture
def fallback_url():
    return FALLBACK_URL


@pytest.fixture
def emitted(notifier):
    """Return a callable listing ``(event, payload)`` pairs sent so far."""

    def events():
        return [(call.args[0], call.args[1]) for call in notifier.sio.emit.call_args_list]

    return events
