"""
Tests for the Supabase Auth and Storage clients.

HTTP traffic is served by ``httpx.MockTransport`` so no network is used.
"""

import json

import httpx
import pytest

from moodstream.core.exceptions import UpstreamUnavailable
from moodstream.core.security import create_token
from moodstream.services.supabase import auth as supabase_auth
from moodstream.services.supabase.auth import (
    JWTAuthVerifier,
    SupabaseAuthClient,
    build_identity_provider,
    profile_from_claims,
)
from moodstream.services.supabase.storage import SupabaseStorage

BASE_URL = "https://project.supabase.test"
SECRET = "test-jwt-secret"


@pytest.fixture
def mock_http(monkeypatch):
    """Route every httpx.AsyncClient through a handler set by the test."""
    state = {"handler": None, "requests": []}
    real_client = httpx.AsyncClient

    def handler(request):
        state["requests"].append(request)
        return state["handler"](request)

    def client_factory(*args, **kwargs):
        return real_client(transport=httpx.MockTransport(handler))

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    return state


class TestProfileFromClaims:
    """Tests for building profiles from provider payloads."""

    def test_supabase_user_object(self):
        profile = profile_from_claims(
            {"id": "abc", "email": "a@example.com", "user_metadata": {"full_name": "Ada"}}
        )
        assert profile.subject == "abc"
        assert profile.email == "a@example.com"
        assert profile.display_name == "Ada"

    def test_jwt_claims(self):
        profile = profile_from_claims({"sub": "abc"})
        assert profile.subject == "abc"
        assert profile.email is None
        assert profile.display_name is None

    def test_no_subject(self):
        assert profile_from_claims({"email": "a@example.com"}) is None


class TestSupabaseAuthClient:
    """Tests for remote token verification."""

    @pytest.mark.asyncio
    async def test_valid_token(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(
            200,
            json={"id": "sub-1", "email": "u@example.com", "user_metadata": {"name": "U"}},
        )
        client = SupabaseAuthClient(BASE_URL, "anon-key")

        profile = await client.verify_token("tok")

        assert profile.subject == "sub-1"
        assert profile.best_name == "U"
        request = mock_http["requests"][0]
        assert request.url == f"{BASE_URL}/auth/v1/user"
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 404])
    async def test_rejected_token(self, mock_http, status):
        mock_http["handler"] = lambda request: httpx.Response(status, json={"msg": "bad jwt"})
        client = SupabaseAuthClient(BASE_URL, "anon-key")

        assert await client.verify_token("tok") is None

    @pytest.mark.asyncio
    async def test_server_error(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(500, text="boom")
        client = SupabaseAuthClient(BASE_URL, "anon-key")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.verify_token("tok")
        assert exc_info.value.code == "500"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>maintenance</html>"),
            httpx.Response(200, json=[{"id": "sub-1"}]),
        ],
        ids=["html", "list"],
    )
    async def test_malformed_body(self, mock_http, response):
        mock_http["handler"] = lambda request: response
        client = SupabaseAuthClient(BASE_URL, "anon-key")

        with pytest.raises(UpstreamUnavailable, match="malformed body"):
            await client.verify_token("tok")

    @pytest.mark.asyncio
    async def test_unreachable(self, mock_http):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        mock_http["handler"] = refuse
        client = SupabaseAuthClient(BASE_URL, "anon-key")

        with pytest.raises(UpstreamUnavailable, match="unreachable"):
            await client.verify_token("tok")


class TestJWTAuthVerifier:
    """Tests for local token verification."""

    @pytest.mark.asyncio
    async def test_valid_token(self):
        token = create_token(
            {"sub": "sub-jwt", "aud": "authenticated", "email": "j@example.com"}, SECRET
        )
        profile = await JWTAuthVerifier(SECRET).verify_token(token)

        assert profile.subject == "sub-jwt"
        assert profile.email == "j@example.com"

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        token = create_token({"sub": "sub-jwt", "aud": "authenticated"}, "other-secret")
        assert await JWTAuthVerifier(SECRET).verify_token(token) is None


class TestBuildIdentityProvider:
    """Tests for provider selection."""

    def test_uses_jwt_when_secret_configured(self, monkeypatch):
        monkeypatch.setattr(supabase_auth, "SUPABASE_JWT_SECRET", SECRET)
        provider = build_identity_provider()
        assert isinstance(provider, JWTAuthVerifier)
        assert provider.secret == SECRET

    def test_falls_back_to_remote(self, monkeypatch):
        monkeypatch.setattr(supabase_auth, "SUPABASE_JWT_SECRET", None)
        assert isinstance(build_identity_provider(), SupabaseAuthClient)


class TestSupabaseStorage:
    """Tests for object uploads."""

    def test_public_url(self):
        storage = SupabaseStorage(BASE_URL + "/", "service-key")
        assert (
            storage.get_public_url("Tracks", "tracks/1_a.mp3")
            == f"{BASE_URL}/storage/v1/object/public/Tracks/tracks/1_a.mp3"
        )

    @pytest.mark.asyncio
    async def test_put_object(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(200, json={"Key": "Tracks/x"})
        storage = SupabaseStorage(BASE_URL, "service-key")

        url = await storage.put_object("Tracks", "tracks/1_a.mp3", b"abc", "audio/mpeg")

        assert url == storage.get_public_url("Tracks", "tracks/1_a.mp3")
        request = mock_http["requests"][0]
        assert request.method == "POST"
        assert request.url == f"{BASE_URL}/storage/v1/object/Tracks/tracks/1_a.mp3"
        assert request.headers["x-upsert"] == "false"
        assert request.headers["Content-Type"] == "audio/mpeg"
        assert request.content == b"abc"

    @pytest.mark.asyncio
    async def test_put_object_default_content_type(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(200, json={})
        storage = SupabaseStorage(BASE_URL, "service-key")

        await storage.put_object("Tracks", "covers/1_c", b"abc", None)

        assert mock_http["requests"][0].headers["Content-Type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_put_object_rejected(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(
            409, text=json.dumps({"error": "Duplicate"})
        )
        storage = SupabaseStorage(BASE_URL, "service-key")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await storage.put_object("Tracks", "tracks/1_a.mp3", b"abc", "audio/mpeg")
        assert exc_info.value.code == "409"
        assert "Duplicate" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_put_object_non_ascii_content_type(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(200, json={})
        storage = SupabaseStorage(BASE_URL, "service-key")

        with pytest.raises(UpstreamUnavailable, match="upload failed"):
            await storage.put_object("Tracks", "tracks/1_a.mp3", b"x", "audio/mpég")

    @pytest.mark.asyncio
    async def test_list_objects(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(200, json=[{"name": "tracks/1_a.mp3"}])
        storage = SupabaseStorage(BASE_URL, "service-key")

        files = await storage.list_objects("Tracks")

        assert files == [{"name": "tracks/1_a.mp3"}]
        request = mock_http["requests"][0]
        assert request.url == f"{BASE_URL}/storage/v1/object/list/Tracks"
        assert json.loads(request.content)["prefix"] == ""

    @pytest.mark.asyncio
    async def test_list_objects_rejected(self, mock_http):
        mock_http["handler"] = lambda request: httpx.Response(400, text="Bucket not found")
        storage = SupabaseStorage(BASE_URL, "service-key")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await storage.list_objects("Missing")
        assert exc_info.value.code == "400"
