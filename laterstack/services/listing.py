"""Filtered listing of a user's saved items with per-filter counts."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import ColumnElement, func, select, true

from laterstack.auth import CallerSession, require_session
from laterstack.errors import InvalidInput
from laterstack.models.saved_item import SavedItem, get_session_factory
from laterstack.services.item_state import ItemStatus, item_status
from laterstack.services.users import UserProvisioner, get_user_provisioner

logger = logging.getLogger(__name__)

LIST_LIMIT = 50

# Items shorter than this many minutes count as quick reads
QUICK_READ_MINUTES = 5


class ItemFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"
    QUICK_READ = "quick-read"


def filter_clause(item_filter: ItemFilter) -> ColumnElement[bool]:
    """SQL condition selecting the items that belong under a filter tab."""
    if item_filter == ItemFilter.UNREAD:
        return SavedItem.read_at.is_(None) & SavedItem.archived_at.is_(None)
    if item_filter == ItemFilter.READ:
        return SavedItem.read_at.is_not(None) & SavedItem.archived_at.is_(None)
    if item_filter == ItemFilter.ARCHIVED:
        return SavedItem.archived_at.is_not(None)
    if item_filter == ItemFilter.QUICK_READ:
        return (SavedItem.estimated_time < QUICK_READ_MINUTES) & SavedItem.archived_at.is_(None)
    return true()


def parse_filter(raw: str | None) -> ItemFilter:
    try:
        return ItemFilter(raw or ItemFilter.ALL.value)
    except ValueError as e:
        raise InvalidInput(f"Unknown filter: {raw}") from e


@dataclass
class ItemListing:
    """One page of items plus the badge counts for every filter."""

    filter: ItemFilter
    items: list[SavedItem]
    counts: dict[ItemFilter, int]
    groups: dict[ItemStatus, list[SavedItem]] | None = field(default=None)


def group_by_status(items: list[SavedItem]) -> dict[ItemStatus, list[SavedItem]]:
    """Split items into unread/read/archived, preserving order within each group."""
    groups: dict[ItemStatus, list[SavedItem]] = {status: [] for status in ItemStatus}
    for item in items:
        groups[item_status(item)].append(item)
    return groups


async def count_items(user_id: int, item_filter: ItemFilter) -> int:
    """Count a user's items under one filter. Uses its own session so counts can run in parallel."""
    factory = await get_session_factory()
    async with factory() as session:
        result = await session.execute(
            select(func.count(SavedItem.id))
            .where(SavedItem.user_id == user_id)
            .where(filter_clause(item_filter))
        )
        return result.scalar() or 0


async def count_all_filters(user_id: int) -> dict[ItemFilter, int]:
    filters = list(ItemFilter)
    counts = await asyncio.gather(*(count_items(user_id, f) for f in filters))
    return dict(zip(filters, counts))


class ListingService:
    """Builds the dashboard listing for the calling user."""

    def __init__(self, provisioner: UserProvisioner | None = None):
        self._provisioner = provisioner or get_user_provisioner()

    async def list_items(
        self, session: CallerSession | None, item_filter: ItemFilter = ItemFilter.ALL
    ) -> ItemListing:
        """Top items by relevance then recency, plus per-filter counts.

        The caller is provisioned on first visit, like saving an article.
        """
        caller = require_session(session)
        user = await self._provisioner.resolve_user(caller.external_id)

        factory = await get_session_factory()
        async with factory() as db:
            result = await db.execute(
                select(SavedItem)
                .where(SavedItem.user_id == user.id)
                .where(filter_clause(item_filter))
                .order_by(SavedItem.relevance_score.desc(), SavedItem.saved_at.desc())
                .limit(LIST_LIMIT)
            )
            items = list(result.scalars().all())

        counts = await count_all_filters(user.id)

        return ItemListing(
            filter=item_filter,
            items=items,
            counts=counts,
            groups=group_by_status(items) if item_filter == ItemFilter.ALL else None,
        )


# Singleton instance
_service: ListingService | None = None


def get_listing_service() -> ListingService:
    """Get or create the listing service singleton."""
    global _service
    if _service is None:
        _service = ListingService()
    return _service
