"""Tests for filtered listings and counts."""

from datetime import datetime, timedelta

import pytest

from laterstack.auth import CallerSession
from laterstack.errors import InvalidInput, Unauthenticated
from laterstack.services.item_state import ItemStatus
from laterstack.services.listing import (
    LIST_LIMIT,
    ItemFilter,
    ListingService,
    count_items,
    parse_filter,
)
from laterstack.services.users import UserProvisioner
from tests.factories import make_item

ALICE = CallerSession(external_id="user_alice")
BASE = datetime(2026, 2, 1, 8, 0, 0)


@pytest.fixture
def service(patched_db, fake_identity) -> ListingService:
    return ListingService(provisioner=UserProvisioner(profile_fetcher=fake_identity.get_profile))


@pytest.fixture
async def seeded(patched_db, alice, bob):
    """Six items for alice covering every state, plus one for bob."""
    items = [
        make_item(user_id=alice.id, url="https://a.example/1", title="unread-high",
                  relevance_score=0.9, estimated_time=3, saved_at=BASE),
        make_item(user_id=alice.id, url="https://a.example/2", title="unread-long",
                  relevance_score=0.5, estimated_time=12, saved_at=BASE + timedelta(hours=1)),
        make_item(user_id=alice.id, url="https://a.example/3", title="read-quick",
                  relevance_score=0.7, estimated_time=4, saved_at=BASE,
                  read_at=BASE + timedelta(days=1)),
        make_item(user_id=alice.id, url="https://a.example/4", title="archived-quick",
                  relevance_score=0.95, estimated_time=2, saved_at=BASE,
                  archived_at=BASE + timedelta(days=1)),
        make_item(user_id=alice.id, url="https://a.example/5", title="read-archived",
                  relevance_score=0.3, estimated_time=8, saved_at=BASE,
                  read_at=BASE + timedelta(days=1), archived_at=BASE + timedelta(days=2)),
        make_item(user_id=alice.id, url="https://a.example/6", title="unread-tie-newer",
                  relevance_score=0.5, estimated_time=5, saved_at=BASE + timedelta(hours=2)),
        make_item(user_id=bob.id, url="https://b.example/1", title="bobs",
                  relevance_score=1.0, estimated_time=1),
    ]
    async with patched_db() as sess:
        sess.add_all(items)
        await sess.commit()
    return items


def _titles(items) -> list[str]:
    return [i.title for i in items]


# ---------------------------------------------------------------------------
# 1. Filter parsing
# ---------------------------------------------------------------------------


class TestParseFilter:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, ItemFilter.ALL),
            ("", ItemFilter.ALL),
            ("all", ItemFilter.ALL),
            ("unread", ItemFilter.UNREAD),
            ("read", ItemFilter.READ),
            ("archived", ItemFilter.ARCHIVED),
            ("quick-read", ItemFilter.QUICK_READ),
        ],
    )
    def test_known_filters(self, raw, expected):
        assert parse_filter(raw) == expected

    def test_unknown_filter(self):
        with pytest.raises(InvalidInput):
            parse_filter("favorites")


# ---------------------------------------------------------------------------
# 2. Listing by filter
# ---------------------------------------------------------------------------


class TestListItems:
    async def test_all_ordered_by_relevance_then_recency(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.ALL)
        assert _titles(listing.items) == [
            "archived-quick",
            "unread-high",
            "read-quick",
            "unread-tie-newer",
            "unread-long",
            "read-archived",
        ]

    async def test_unread(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.UNREAD)
        assert _titles(listing.items) == ["unread-high", "unread-tie-newer", "unread-long"]

    async def test_read_excludes_archived(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.READ)
        assert _titles(listing.items) == ["read-quick"]

    async def test_archived_regardless_of_read(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.ARCHIVED)
        assert _titles(listing.items) == ["archived-quick", "read-archived"]

    async def test_quick_read_under_five_minutes_not_archived(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.QUICK_READ)
        assert _titles(listing.items) == ["unread-high", "read-quick"]

    async def test_counts_cover_every_filter(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.READ)
        assert listing.counts == {
            ItemFilter.ALL: 6,
            ItemFilter.UNREAD: 3,
            ItemFilter.READ: 1,
            ItemFilter.ARCHIVED: 2,
            ItemFilter.QUICK_READ: 2,
        }

    async def test_groups_only_for_all(self, service, seeded):
        listing = await service.list_items(ALICE, ItemFilter.ALL)
        assert _titles(listing.groups[ItemStatus.UNREAD]) == [
            "unread-high",
            "unread-tie-newer",
            "unread-long",
        ]
        assert _titles(listing.groups[ItemStatus.READ]) == ["read-quick"]
        assert _titles(listing.groups[ItemStatus.ARCHIVED]) == ["archived-quick", "read-archived"]

        unread = await service.list_items(ALICE, ItemFilter.UNREAD)
        assert unread.groups is None

    async def test_limit(self, service, patched_db, alice):
        async with patched_db() as sess:
            sess.add_all(
                make_item(user_id=alice.id, url=f"https://many.example/{i}", relevance_score=i / 100)
                for i in range(LIST_LIMIT + 5)
            )
            await sess.commit()

        listing = await service.list_items(ALICE, ItemFilter.ALL)

        assert len(listing.items) == LIST_LIMIT
        assert listing.items[0].relevance_score == pytest.approx((LIST_LIMIT + 4) / 100)
        assert listing.counts[ItemFilter.ALL] == LIST_LIMIT + 5

    async def test_new_user_gets_empty_listing(self, service, patched_db, fake_identity):
        listing = await service.list_items(CallerSession(external_id="user_bob"))
        assert listing.items == []
        assert listing.counts[ItemFilter.ALL] == 0
        assert fake_identity.calls == ["user_bob"]

    async def test_unauthenticated(self, service):
        with pytest.raises(Unauthenticated):
            await service.list_items(None)


class TestCountItems:
    async def test_scoped_to_user(self, seeded, bob):
        assert await count_items(bob.id, ItemFilter.ALL) == 1
        assert await count_items(bob.id, ItemFilter.ARCHIVED) == 0
