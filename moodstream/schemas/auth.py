"""
Google OAuth schema models using Pydantic.
"""

from typing import Optional

from pydantic import BaseModel


class GoogleTokenSchema(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


class GoogleUserProfile(BaseModel):
    """Profile stored in the ``user`` cookie after the OAuth callback."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
