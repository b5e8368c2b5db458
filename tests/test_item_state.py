"""Tests for read/archive state transitions."""

from datetime import datetime

import pytest

from laterstack.auth import CallerSession
from laterstack.errors import NotFound, Unauthenticated, Unauthorized
from laterstack.models import SavedItem
from laterstack.services.item_state import ItemStateService, ItemStatus, item_status
from laterstack.services.users import UserProvisioner
from tests.factories import make_item

ALICE = CallerSession(external_id="user_alice")
BOB = CallerSession(external_id="user_bob")
STRANGER = CallerSession(external_id="user_nobody")
NOW = datetime(2026, 3, 1, 9, 30)


@pytest.fixture
def service(patched_db) -> ItemStateService:
    return ItemStateService(provisioner=UserProvisioner())


@pytest.fixture
async def item(patched_db, alice) -> SavedItem:
    async with patched_db() as sess:
        saved = make_item(user_id=alice.id)
        sess.add(saved)
        await sess.commit()
        await sess.refresh(saved)
    return saved


async def _reload(factory, item_id: int) -> SavedItem:
    async with factory() as sess:
        return await sess.get(SavedItem, item_id)


# ---------------------------------------------------------------------------
# 1. Derived status
# ---------------------------------------------------------------------------


class TestItemStatus:
    def test_unread(self):
        assert item_status(make_item(user_id=1)) == ItemStatus.UNREAD

    def test_read(self):
        read = make_item(user_id=1, read_at=NOW)
        assert item_status(read) == ItemStatus.READ

    def test_archived_wins_over_read(self):
        both = make_item(user_id=1, read_at=NOW, archived_at=NOW)
        assert item_status(both) == ItemStatus.ARCHIVED


# ---------------------------------------------------------------------------
# 2. Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    async def test_mark_read_and_unread(self, service, patched_db, item):
        await service.mark_read(ALICE, item.id)
        assert (await _reload(patched_db, item.id)).read_at is not None

        await service.mark_unread(ALICE, item.id)
        assert (await _reload(patched_db, item.id)).read_at is None

    async def test_archive_and_unarchive(self, service, patched_db, item):
        await service.archive(ALICE, item.id)
        assert (await _reload(patched_db, item.id)).archived_at is not None

        await service.unarchive(ALICE, item.id)
        assert (await _reload(patched_db, item.id)).archived_at is None

    async def test_dimensions_are_independent(self, service, patched_db, item):
        await service.mark_read(ALICE, item.id)
        await service.archive(ALICE, item.id)
        archived = await _reload(patched_db, item.id)
        assert archived.read_at is not None
        assert item_status(archived) == ItemStatus.ARCHIVED

        await service.unarchive(ALICE, item.id)
        restored = await _reload(patched_db, item.id)
        assert restored.read_at == archived.read_at
        assert item_status(restored) == ItemStatus.READ

        await service.archive(ALICE, item.id)
        await service.mark_unread(ALICE, item.id)
        unread_archived = await _reload(patched_db, item.id)
        assert unread_archived.archived_at is not None
        assert unread_archived.read_at is None

    async def test_repeated_transitions_are_harmless(self, service, patched_db, item):
        await service.mark_unread(ALICE, item.id)
        await service.unarchive(ALICE, item.id)
        reloaded = await _reload(patched_db, item.id)
        assert reloaded.read_at is None
        assert reloaded.archived_at is None

        await service.mark_read(ALICE, item.id)
        await service.mark_read(ALICE, item.id)
        assert (await _reload(patched_db, item.id)).read_at is not None

    async def test_other_fields_untouched(self, service, patched_db, item):
        await service.archive(ALICE, item.id)
        reloaded = await _reload(patched_db, item.id)
        assert reloaded.title == item.title
        assert reloaded.relevance_score == item.relevance_score
        assert reloaded.saved_at == item.saved_at


# ---------------------------------------------------------------------------
# 3. Access control
# ---------------------------------------------------------------------------


class TestAccessControl:
    async def test_unauthenticated(self, service, item):
        with pytest.raises(Unauthenticated):
            await service.mark_read(None, item.id)

    async def test_missing_item(self, service, alice):
        with pytest.raises(NotFound) as exc_info:
            await service.archive(ALICE, 9999)
        assert exc_info.value.message == "Article not found"

    async def test_other_users_item(self, service, patched_db, item, bob):
        with pytest.raises(Unauthorized):
            await service.mark_read(BOB, item.id)

        reloaded = await _reload(patched_db, item.id)
        assert reloaded.read_at is None

    async def test_caller_without_account(self, service, patched_db, item):
        with pytest.raises(Unauthorized):
            await service.archive(STRANGER, item.id)
        assert (await _reload(patched_db, item.id)).archived_at is None
