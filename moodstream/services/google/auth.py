import os
from typing import Optional
from urllib.parse import urlencode

import httpx

from moodstream.schemas.auth import GoogleTokenSchema, GoogleUserProfile

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REDIRECT_URI = os.getenv(
    "GOOGLE_REDIRECT_URI", "http://localhost:4000/auth/google/callback"
)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_SCOPES = ["openid", "email", "profile"]


class GoogleAuthService:
    """Service for the Google OAuth login flow."""

    @staticmethod
    def get_auth_url(scopes: list[str] = GOOGLE_SCOPES, state: Optional[str] = None) -> str:
        """Generate the Google consent URL."""
        params = {
            "client_id": GOOGLE_CLIENT_ID,
            "redirect_uri": GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": " ".join(scopes),
        }

        if state:
            params["state"] = state

        return f"{AUTH_URL}?{urlencode(params)}"

    @staticmethod
    async def get_tokens(code: str) -> GoogleTokenSchema:
        """Exchange the authorization code for an access token."""
        data = {
            "code": code,
            "client_id": GOOGLE_CLIENT_ID,
            "client_secret": GOOGLE_CLIENT_SECRET,
            "redirect_uri": GOOGLE_REDIRECT_URI,
            "grant_type": "authorization_code",
        }

        async with httpx.AsyncClient() as client:
            response = await client.post(TOKEN_URL, data=data, timeout=10.0)
            response.raise_for_status()
            return GoogleTokenSchema(**response.json())

    @staticmethod
    async def get_user_profile(access_token: str) -> GoogleUserProfile:
        """Fetch the signed-in user's Google profile."""
        headers = {"Authorization": f"Bearer {access_token}"}

        async with httpx.AsyncClient() as client:
            response = await client.get(USERINFO_URL, headers=headers, timeout=10.0)
            response.raise_for_status()
            return GoogleUserProfile(**response.json())
