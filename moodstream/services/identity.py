"""
Identity resolution: map an external bearer token onto a local user id.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from moodstream.core.exceptions import DuplicateIdentity, PersistenceError, UpstreamUnavailable
from moodstream.db.models import User
from moodstream.db.session import Database
from moodstream.schemas.identity import IdentityProfile

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves tokens through the identity provider and the users table."""

    def __init__(self, database: Database, provider):
        self.database = database
        self.provider = provider

    async def identify(self, token: Optional[str]) -> Optional[IdentityProfile]:
        """
        Exchange a token for the provider's profile.

        Provider failures degrade to None; they never reach the caller.
        """
        if not token:
            return None

        try:
            profile = await self.provider.verify_token(token)
        except UpstreamUnavailable as e:
            logger.warning(f"Identity provider unavailable: {e.message} ({e.detail})")
            return None
        except Exception as e:
            logger.warning(f"Identity provider failed: {e!r}")
            return None

        if profile is None or not profile.subject:
            return None
        return profile

    async def resolve_user_id(self, token: Optional[str]) -> Optional[int]:
        """
        Return the local user id for a token, creating the user on first sight.

        Returns:
            The local integer id, or None when the request is unauthenticated
        """
        profile = await self.identify(token)
        if profile is None:
            return None

        async with self.database.session() as session:
            user_id = await self._find_user_id(session, profile.subject)
            if user_id is not None:
                return user_id

            try:
                return await self._create_user(session, profile)
            except DuplicateIdentity:
                logger.info(f"Concurrent creation for subject {profile.subject}, re-resolving")
                user_id = await self._find_user_id(session, profile.subject)
                if user_id is None:
                    raise PersistenceError("Failed to resolve user after duplicate insert")
                return user_id

    async def _find_user_id(self, session: AsyncSession, subject: str) -> Optional[int]:
        result = await session.execute(
            select(User.id).where(User.auth_subject == subject).limit(1)
        )
        return result.scalar_one_or_none()

    async def _create_user(self, session: AsyncSession, profile: IdentityProfile) -> int:
        user = User(
            name=profile.display_name,
            email=profile.email,
            auth_subject=profile.subject,
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise DuplicateIdentity(detail=str(e.orig))
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError.from_exception("Failed to create user", e)

        logger.info(f"Created local user {user.id} for subject {profile.subject}")
        return user.id
