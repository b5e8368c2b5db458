"""User provisioning: one User row per identity-provider id, whichever path gets there first.

Two paths create users: the identity provider's asynchronous ``user.created``
webhook and lazy provisioning on a user's first authenticated request. Both go
through insert statements keyed on the unique ``external_id`` so concurrent
attempts converge on a single row instead of failing.
"""

import json
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession

from laterstack.errors import UserProvisioningFailed
from laterstack.models.saved_item import get_session_factory
from laterstack.models.user import DEFAULT_READING_SPEED, User
from laterstack.services.identity import IdentityProfile, get_identity_service
from laterstack.validation import Preferences

logger = logging.getLogger(__name__)

ProfileFetcher = Callable[[str], Awaitable[IdentityProfile]]


async def _select_user(session: AsyncSession, external_id: str) -> User | None:
    result = await session.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def insert_user_if_absent(
    session: AsyncSession, external_id: str, profile: IdentityProfile
) -> bool:
    """Insert a user with default preferences unless one exists. Returns True if inserted."""
    stmt = (
        insert(User)
        .values(
            external_id=external_id,
            email=profile.email,
            name=profile.name,
            interests="[]",
            goals="",
            reading_speed=DEFAULT_READING_SPEED,
        )
        .on_conflict_do_nothing(index_elements=[User.external_id])
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def upsert_user_profile(
    session: AsyncSession, external_id: str, profile: IdentityProfile
) -> None:
    """Insert a user, or overwrite email/name on an existing one. Preferences are kept."""
    stmt = insert(User).values(
        external_id=external_id,
        email=profile.email,
        name=profile.name,
        interests="[]",
        goals="",
        reading_speed=DEFAULT_READING_SPEED,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.external_id],
        set_={
            "email": stmt.excluded.email,
            "name": stmt.excluded.name,
            "updated_at": func.now(),
        },
    )
    await session.execute(stmt)


class UserProvisioner:
    """Resolves the durable User row for an identity-provider id."""

    def __init__(self, profile_fetcher: ProfileFetcher | None = None):
        self._profile_fetcher = profile_fetcher

    def _default_fetcher(self) -> ProfileFetcher:
        if self._profile_fetcher is None:
            self._profile_fetcher = get_identity_service().get_profile
        return self._profile_fetcher

    async def find_user(self, external_id: str) -> User | None:
        """Look up a user without creating one."""
        factory = await get_session_factory()
        async with factory() as session:
            return await _select_user(session, external_id)

    async def resolve_user(
        self, external_id: str, profile_fetcher: ProfileFetcher | None = None
    ) -> User:
        """Return the user for external_id, creating it with defaults if needed.

        Safe to call concurrently for the same id, including concurrently with
        the webhook path.

        Raises:
            UserProvisioningFailed: the profile could not be fetched, the insert
                failed for a reason other than the row already existing, or the
                row is still missing afterwards.
        """
        try:
            factory = await get_session_factory()
            async with factory() as session:
                user = await _select_user(session, external_id)
                if user is not None:
                    return user

                fetch = profile_fetcher or self._default_fetcher()
                profile = await fetch(external_id)

                inserted = await insert_user_if_absent(session, external_id, profile)
                await session.commit()
                if inserted:
                    logger.info("Provisioned user %s", external_id)
                else:
                    logger.info("User %s created concurrently, using existing row", external_id)

                user = await _select_user(session, external_id)
        except UserProvisioningFailed:
            raise
        except Exception as e:
            logger.exception("Failed to provision user %s", external_id)
            raise UserProvisioningFailed() from e

        if user is None:
            logger.error("User %s missing after provisioning", external_id)
            raise UserProvisioningFailed()
        return user

    async def sync_from_identity_event(self, external_id: str, profile: IdentityProfile) -> User:
        """Apply an identity-provider created/updated event.

        Upserts the profile fields; if lazy provisioning already created the
        row, the event's email and name replace what it stored.
        """
        factory = await get_session_factory()
        async with factory() as session:
            await upsert_user_profile(session, external_id, profile)
            await session.commit()
            user = await _select_user(session, external_id)
        if user is None:
            raise UserProvisioningFailed()
        return user

    async def update_preferences(self, external_id: str, preferences: Preferences) -> User:
        """Store validated interests, goals and reading speed for a user."""
        user = await self.resolve_user(external_id)
        factory = await get_session_factory()
        async with factory() as session:
            db_user = await session.get(User, user.id)
            if db_user is None:
                raise UserProvisioningFailed()
            db_user.interests = json.dumps(preferences.interests)
            db_user.goals = preferences.goals
            db_user.reading_speed = preferences.reading_speed
            await session.commit()
            await session.refresh(db_user)
            logger.info("Updated preferences for user %s", external_id)
            return db_user


# Singleton instance
_provisioner: UserProvisioner | None = None


def get_user_provisioner() -> UserProvisioner:
    """Get or create the user provisioner singleton."""
    global _provisioner
    if _provisioner is None:
        _provisioner = UserProvisioner()
    return _provisioner
