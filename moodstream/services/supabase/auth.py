"""
Identity providers: exchange a bearer token for the principal behind it.
"""

import logging
import os
from typing import Optional

import httpx

from moodstream.core.exceptions import UpstreamUnavailable
from moodstream.core.security import decode_token
from moodstream.schemas.identity import IdentityProfile

logger = logging.getLogger(__name__)

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")


def profile_from_claims(user: dict) -> Optional[IdentityProfile]:
    """Build a profile from a Supabase user object or JWT claims."""
    subject = user.get("id") or user.get("sub")
    if not subject:
        return None

    metadata = user.get("user_metadata") or {}
    return IdentityProfile(
        subject=str(subject),
        email=user.get("email") or None,
        display_name=metadata.get("name") or metadata.get("full_name") or None,
    )


class SupabaseAuthClient:
    """Asks Supabase Auth who a token belongs to."""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        api_key: str = SUPABASE_ANON_KEY,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def verify_token(self, token: str) -> Optional[IdentityProfile]:
        """
        Resolve a token to its principal.

        Returns:
            The profile, or None if Supabase rejects the token

        Raises:
            UpstreamUnavailable: If Supabase cannot be reached or errors
        """
        headers = {"Authorization": f"Bearer {token}", "apikey": self.api_key}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}/auth/v1/user",
                    headers=headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("Identity provider unreachable", detail=str(e))

        if response.status_code in (401, 403, 404):
            logger.info(f"Supabase rejected token ({response.status_code})")
            return None

        if response.is_error:
            raise UpstreamUnavailable(
                "Identity provider error", detail=response.text, code=str(response.status_code)
            )

        try:
            user = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Identity provider returned malformed body", detail=str(e))
        if not isinstance(user, dict):
            raise UpstreamUnavailable(
                "Identity provider returned malformed body", detail=type(user).__name__
            )

        return profile_from_claims(user)


class JWTAuthVerifier:
    """Verifies Supabase access tokens locally with the project's JWT secret."""

    def __init__(self, secret: str, audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.audience = audience

    async def verify_token(self, token: str) -> Optional[IdentityProfile]:
        try:
            claims = decode_token(token, self.secret, audience=self.audience)
        except ValueError as e:
            logger.info(f"JWT rejected: {e}")
            return None
        return profile_from_claims(claims)


def build_identity_provider():
    """Prefer local verification when the JWT secret is configured."""
    if SUPABASE_JWT_SECRET:
        return JWTAuthVerifier(SUPABASE_JWT_SECRET)
    return SupabaseAuthClient()
