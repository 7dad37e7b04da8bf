"""
Tests for FileDialogueStore

Covers append-only persistence, ordering and pagination, ownership checks
on removal, and reload from disk.
"""

from datetime import timedelta

import pytest

from sitechat.core.base import DialogueRecord, NotFoundError, AuthorizationError, StorageError
from sitechat.storage.dialogue_store import FileDialogueStore


def record(user_id="alice", website_id="site", question="q", **kwargs):
    return DialogueRecord(user_id=user_id, website_id=website_id, question=question,
                          answer="a", **kwargs)


class TestFileDialogueStore:
    """Test suite for FileDialogueStore"""

    @pytest.fixture
    def store(self, base_config):
        return FileDialogueStore(base_config)

    @pytest.mark.asyncio
    async def test_append_and_count(self, store):
        await store.initialize()
        await store.append(record())
        await store.append(record())
        await store.append(record(user_id="bob"))

        assert await store.count_by_user("alice") == 2
        assert await store.count_by_user("bob") == 1
        assert await store.count_by_user("carol") == 0

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store):
        await store.initialize()
        first = record()
        await store.append(first)

        with pytest.raises(StorageError):
            await store.append(first)

    @pytest.mark.asyncio
    async def test_list_most_recent_first(self, store):
        await store.initialize()
        first = record(question="first")
        second = record(question="second")
        second.created_at = first.created_at + timedelta(seconds=1)
        await store.append(second)
        await store.append(first)

        page = await store.list_by_user("alice")

        assert [r.question for r in page.items] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_equal_timestamps_keep_latest_insert_first(self, store):
        await store.initialize()
        first = record(question="first")
        second = record(question="second", created_at=first.created_at)
        await store.append(first)
        await store.append(second)

        page = await store.list_by_user("alice")

        assert [r.question for r in page.items] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_pagination(self, store):
        await store.initialize()
        base = record().created_at
        for i in range(5):
            await store.append(record(question=f"q{i}", created_at=base + timedelta(seconds=i)))

        page = await store.list_by_user("alice", page=2, page_size=2)

        assert [r.question for r in page.items] == ["q2", "q1"]
        assert page.total == 5
        assert page.pages == 3
        assert page.has_next
        assert page.has_prev

        last = await store.list_by_user("alice", page=3, page_size=2)
        assert [r.question for r in last.items] == ["q0"]
        assert not last.has_next

    @pytest.mark.asyncio
    async def test_page_beyond_range_is_empty(self, store):
        await store.initialize()
        await store.append(record())

        page = await store.list_by_user("alice", page=4, page_size=10)

        assert page.items == []
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_invalid_page_arguments(self, store):
        with pytest.raises(ValueError):
            await store.list_by_user("alice", page=0)
        with pytest.raises(ValueError):
            await store.list_by_user("alice", page_size=0)

    @pytest.mark.asyncio
    async def test_filter_by_website(self, store):
        await store.initialize()
        await store.append(record(website_id="site"))
        await store.append(record(website_id="deep"))

        page = await store.list_by_user("alice", website_id="deep")

        assert [r.website_id for r in page.items] == ["deep"]

    @pytest.mark.asyncio
    async def test_remove_own_record(self, store):
        await store.initialize()
        mine = record()
        await store.append(mine)

        await store.remove(mine.id, "alice")

        assert await store.count_by_user("alice") == 0

    @pytest.mark.asyncio
    async def test_remove_unknown_record(self, store):
        await store.initialize()

        with pytest.raises(NotFoundError):
            await store.remove("missing", "alice")

    @pytest.mark.asyncio
    async def test_remove_foreign_record(self, store):
        await store.initialize()
        theirs = record(user_id="bob")
        await store.append(theirs)

        with pytest.raises(AuthorizationError):
            await store.remove(theirs.id, "alice")
        assert await store.count_by_user("bob") == 1

    @pytest.mark.asyncio
    async def test_reload_applies_tombstones(self, store, base_config):
        await store.initialize()
        kept = record(question="kept")
        removed = record(question="removed")
        await store.append(kept)
        await store.append(removed)
        await store.remove(removed.id, "alice")

        reopened = FileDialogueStore(base_config)
        await reopened.initialize()
        page = await reopened.list_by_user("alice")

        assert [r.id for r in page.items] == [kept.id]
        assert page.items[0].to_dict() == kept.to_dict()

    @pytest.mark.asyncio
    async def test_lazy_initialization(self, store):
        await store.append(record())

        assert store.is_initialized()
        assert await store.count_by_user("alice") == 1


class TestDialogueRecord:
    """Validation of record fields"""

    def test_negative_response_time_rejected(self):
        with pytest.raises(ValueError):
            record(response_time_ms=-1)

    def test_relevance_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            record(relevance_score=1.5)
