"""
Tests for FileContentStore

Covers saving and listing documents, generation staging with atomic
activation, and deletion.
"""

import json
from datetime import timedelta

import pytest

from sitechat.core.base import StorageError
from sitechat.storage.content_store import FileContentStore, ACTIVE_POINTER


class TestFileContentStore:
    """Test suite for FileContentStore"""

    @pytest.fixture
    def store(self, base_config):
        return FileContentStore(base_config)

    @pytest.mark.asyncio
    async def test_save_without_generation_creates_active_one(self, store, make_document):
        await store.initialize()
        document = make_document()

        document_id = await store.save(document)

        assert document_id == document.id
        assert document.generation == store.active_generation("site")
        assert await store.count_for_website("site") == 1

    @pytest.mark.asyncio
    async def test_find_by_website_most_recent_first(self, store, make_document):
        await store.initialize()
        older = make_document(url="https://example.com/a", title="A")
        newer = make_document(url="https://example.com/b", title="B")
        newer.created_at = older.created_at + timedelta(seconds=5)
        await store.save(older)
        await store.save(newer)

        documents = await store.find_by_website("site", limit=5)

        assert [d.title for d in documents] == ["B", "A"]
        assert documents[0].id == newer.id

    @pytest.mark.asyncio
    async def test_find_by_website_respects_limit(self, store, make_document):
        await store.initialize()
        for i in range(4):
            await store.save(make_document(url=f"https://example.com/{i}"))

        assert len(await store.find_by_website("site", limit=2)) == 2
        assert await store.find_by_website("site", limit=0) == []

    @pytest.mark.asyncio
    async def test_unknown_website_is_empty(self, store):
        await store.initialize()

        assert await store.find_by_website("missing", limit=5) == []
        assert await store.count_for_website("missing") == 0

    @pytest.mark.asyncio
    async def test_round_trips_document_fields(self, store, make_document):
        await store.initialize()
        document = make_document(text="Some   body")
        document.links = ["https://example.com/next"]
        document.metadata.keywords = ["a", "b"]
        await store.save(document)

        stored = (await store.find_by_website("site", limit=1))[0]

        assert stored.to_dict() == document.to_dict()

    @pytest.mark.asyncio
    async def test_staged_documents_invisible_until_activated(self, store, make_document):
        await store.initialize()
        await store.save(make_document(title="Old"))

        generation = await store.begin_generation("site")
        await store.save(make_document(title="New", generation=generation))

        assert [d.title for d in await store.find_by_website("site", 5)] == ["Old"]

        await store.activate_generation("site", generation)

        assert [d.title for d in await store.find_by_website("site", 5)] == ["New"]
        assert store.active_generation("site") == generation

    @pytest.mark.asyncio
    async def test_activation_removes_previous_generations(self, store, make_document):
        await store.initialize()
        await store.save(make_document(title="Old"))
        old_generation = store.active_generation("site")

        generation = await store.begin_generation("site")
        await store.activate_generation("site", generation)

        assert not (store.root / "site" / old_generation).exists()
        assert (store.root / "site" / ACTIVE_POINTER).read_text(encoding='utf-8') == generation

    @pytest.mark.asyncio
    async def test_discard_keeps_active_set(self, store, make_document):
        await store.initialize()
        await store.save(make_document(title="Old"))

        generation = await store.begin_generation("site")
        await store.save(make_document(title="Partial", generation=generation))
        await store.discard_generation("site", generation)

        assert [d.title for d in await store.find_by_website("site", 5)] == ["Old"]
        assert not (store.root / "site" / generation).exists()

    @pytest.mark.asyncio
    async def test_discard_refuses_active_generation(self, store, make_document):
        await store.initialize()
        await store.save(make_document())

        with pytest.raises(StorageError):
            await store.discard_generation("site", store.active_generation("site"))

    @pytest.mark.asyncio
    async def test_activate_unknown_generation_fails(self, store):
        await store.initialize()

        with pytest.raises(StorageError):
            await store.activate_generation("site", "does-not-exist")

    @pytest.mark.asyncio
    async def test_save_into_missing_generation_fails(self, store, make_document):
        await store.initialize()

        with pytest.raises(StorageError):
            await store.save(make_document(generation="does-not-exist"))

    @pytest.mark.asyncio
    async def test_same_url_overwrites_within_generation(self, store, make_document):
        await store.initialize()
        await store.save(make_document(title="First"))
        await store.save(make_document(title="Second"))

        documents = await store.find_by_website("site", 5)

        assert len(documents) == 1
        assert documents[0].title == "Second"

    @pytest.mark.asyncio
    async def test_delete_all_for_website(self, store, make_document):
        await store.initialize()
        await store.save(make_document(url="https://example.com/a"))
        await store.save(make_document(url="https://example.com/b"))
        await store.save(make_document(website_id="other", url="https://other.example.com/"))

        assert await store.delete_all_for_website("site") == 2
        assert await store.count_for_website("site") == 0
        assert await store.count_for_website("other") == 1

    @pytest.mark.asyncio
    async def test_corrupt_document_file_raises(self, store, make_document):
        await store.initialize()
        await store.save(make_document())
        generation_dir = store.root / "site" / store.active_generation("site")
        (generation_dir / "broken.json").write_text("{not json", encoding='utf-8')

        with pytest.raises(StorageError):
            await store.find_by_website("site", 5)

    @pytest.mark.asyncio
    async def test_document_files_are_json(self, store, make_document):
        await store.initialize()
        document = make_document()
        await store.save(document)

        files = list((store.root / "site" / document.generation).glob("*.json"))

        assert len(files) == 1
        assert json.loads(files[0].read_text(encoding='utf-8'))['id'] == document.id
