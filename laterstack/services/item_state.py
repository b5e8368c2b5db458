"""Read/unread and archived/unarchived transitions for saved items.

The two dimensions are independent timestamps: archiving never touches
``read_at`` and marking unread never touches ``archived_at``.
"""

import logging
from datetime import datetime
from enum import Enum

from sqlalchemy import update

from laterstack.auth import CallerSession, require_session
from laterstack.errors import NotFound, Unauthorized
from laterstack.models.saved_item import SavedItem, get_session_factory
from laterstack.services.users import UserProvisioner, get_user_provisioner

logger = logging.getLogger(__name__)


class ItemStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


def item_status(item: SavedItem) -> ItemStatus:
    """Archived wins over read; otherwise read if read_at is set."""
    if item.archived_at is not None:
        return ItemStatus.ARCHIVED
    if item.read_at is not None:
        return ItemStatus.READ
    return ItemStatus.UNREAD


class ItemStateService:
    """Ownership-checked state transitions."""

    def __init__(self, provisioner: UserProvisioner | None = None):
        self._provisioner = provisioner or get_user_provisioner()

    async def mark_read(self, session: CallerSession | None, item_id: int) -> None:
        await self._apply(session, item_id, read_at=datetime.now())

    async def mark_unread(self, session: CallerSession | None, item_id: int) -> None:
        await self._apply(session, item_id, read_at=None)

    async def archive(self, session: CallerSession | None, item_id: int) -> None:
        await self._apply(session, item_id, archived_at=datetime.now())

    async def unarchive(self, session: CallerSession | None, item_id: int) -> None:
        await self._apply(session, item_id, archived_at=None)

    async def _apply(
        self, session: CallerSession | None, item_id: int, **values: datetime | None
    ) -> None:
        """Authenticate, check the item exists and belongs to the caller, then write.

        Raises:
            Unauthenticated: no caller session.
            NotFound: no item with this id.
            Unauthorized: the item belongs to someone else (or the caller has no account).
        """
        caller = require_session(session)
        user = await self._provisioner.find_user(caller.external_id)

        factory = await get_session_factory()
        async with factory() as db:
            item = await db.get(SavedItem, item_id)
            if item is None:
                raise NotFound()
            if user is None or item.user_id != user.id:
                logger.warning(
                    "Caller %s attempted to modify item %s it does not own",
                    caller.external_id,
                    item_id,
                )
                raise Unauthorized()

            # Ownership is re-checked in the UPDATE itself
            result = await db.execute(
                update(SavedItem)
                .where(SavedItem.id == item_id, SavedItem.user_id == user.id)
                .values(**values)
            )
            if result.rowcount != 1:
                await db.rollback()
                raise NotFound()
            await db.commit()

        logger.info("Item %s updated: %s", item_id, ", ".join(values))


# Singleton instance
_service: ItemStateService | None = None


def get_item_state_service() -> ItemStateService:
    """Get or create the item state service singleton."""
    global _service
    if _service is None:
        _service = ItemStateService()
    return _service
