"""
Authentication routes for Google OAuth.

The callback stores the Google profile in a readable ``user`` cookie that
the upload route falls back to for the uploader's display name.
"""

import json
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Cookie, Response
from fastapi.responses import PlainTextResponse, RedirectResponse

from moodstream.services.google.auth import FRONTEND_URL, GoogleAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

USER_COOKIE = "user"


@router.get("/google")
async def google_login():
    """Redirect to the Google consent screen."""
    return RedirectResponse(url=GoogleAuthService.get_auth_url(), status_code=302)


@router.get("/google/callback")
async def google_callback(code: Optional[str] = None):
    """
    Handle the Google OAuth callback.

    Exchanges the code for a token, fetches the profile and stores it in
    the ``user`` cookie before sending the browser back to the frontend.
    """
    if not code:
        return PlainTextResponse("Missing code parameter", status_code=400)

    try:
        token_data = await GoogleAuthService.get_tokens(code)
        profile = await GoogleAuthService.get_user_profile(token_data.access_token)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Google callback error: {e}")
        return PlainTextResponse("Authentication failed", status_code=500)

    response = RedirectResponse(url=f"{FRONTEND_URL}/?login=success", status_code=302)
    response.set_cookie(
        key=USER_COOKIE,
        value=json.dumps(profile.model_dump(exclude_none=True)),
        httponly=False,
        samesite="lax",
    )
    return response


@router.get("/me")
async def me(user: Optional[str] = Cookie(None)):
    """Return the profile stored in the ``user`` cookie, if any."""
    if not user:
        return {"user": None}
    try:
        return {"user": json.loads(user)}
    except ValueError:
        return {"user": None}


@router.post("/logout")
async def logout(response: Response):
    """Clear the ``user`` cookie."""
    response.delete_cookie(key=USER_COOKIE)
    return {"message": "Logged out"}
