"""
Security utilities for bearer token extraction and JWT verification.
"""

from typing import Any, Dict, Mapping, Optional

from jose import jwt

# Supabase signs access tokens with HS256 and audience "authenticated"
ALGORITHM = "HS256"
DEFAULT_AUDIENCE = "authenticated"

TOKEN_COOKIE_NAMES = ("authorization", "token")


def extract_bearer_token(
    authorization: Optional[str], cookies: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """
    Pull the bearer credential out of a request.

    The ``Authorization`` header wins; the ``authorization`` and ``token``
    cookies are consulted when it is absent. Both ``Bearer <token>`` and a
    raw token value are accepted.

    Args:
        authorization: Raw Authorization header value
        cookies: Request cookies

    Returns:
        The token, or None if the request carries no credential
    """
    raw = authorization
    if not raw and cookies:
        for name in TOKEN_COOKIE_NAMES:
            if cookies.get(name):
                raw = cookies[name]
                break

    if not raw:
        return None

    parts = raw.strip().split()
    if not parts:
        return None
    if len(parts) > 1:
        return parts[1]
    return parts[0]


def decode_token(
    token: str, secret: str, audience: Optional[str] = DEFAULT_AUDIENCE
) -> Dict[str, Any]:
    """
    Decode and verify a JWT signed with a shared secret.

    Raises:
        ValueError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except jwt.JWTError:
        raise ValueError("Invalid token")

    if not payload.get("sub"):
        raise ValueError("Token has no subject")

    return payload


def create_token(claims: Dict[str, Any], secret: str) -> str:
    """Encode claims into an HS256 JWT."""
    return jwt.encode(claims, secret, algorithm=ALGORITHM)
