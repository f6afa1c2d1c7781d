"""
Tests for verses/service.py - CRUD, listing and statistics.
"""
import pytest

from core.errors import DuplicateKeyError, InvalidArgument, ValidationError
from tests.conftest import make_verse


async def _seed(service, pairs, **overrides):
    created = []
    for chapter, verse in pairs:
        created.append(await service.create(make_verse(chapter, verse, **overrides)))
    return created


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_then_fetch_round_trip(self, service):
        created = await service.create(make_verse(2, 47, tags=["karma-yoga"]))
        fetched = await service.get_by_chapter_verse(2, 47, variant="full")

        for field in ("chapter", "verse", "original_text", "transliteration", "commentary_sources", "tags"):
            assert fetched[field] == created[field]
        assert fetched["reference"] == "2.47"
        assert fetched["translation"] == "Translation 2.47"
        assert fetched["created_at"] is not None

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, service):
        await service.create(make_verse(1, 1))

        with pytest.raises(DuplicateKeyError):
            await service.create(make_verse(1, 1))

    @pytest.mark.asyncio
    async def test_duplicate_of_inactive_rejected(self, service):
        created = await service.create(make_verse(1, 1))
        await service.soft_delete(created["id"])

        with pytest.raises(DuplicateKeyError):
            await service.create(make_verse(1, 1))

    @pytest.mark.asyncio
    async def test_store_constraint_is_final_word(self, service, repository, monkeypatch):
        await service.create(make_verse(1, 1))

        async def _no_precheck(*args, **kwargs):
            return None

        monkeypatch.setattr(repository, "get_by_key", _no_precheck)
        with pytest.raises(DuplicateKeyError):
            await service.create(make_verse(1, 1))

    @pytest.mark.asyncio
    async def test_validation_before_store(self, service, repository):
        with pytest.raises(ValidationError):
            await service.create(make_verse(1, 48))

        assert repository.rows == {}

    @pytest.mark.asyncio
    async def test_client_timestamps_ignored(self, service):
        created = await service.create(make_verse(1, 1, created_at="1999-01-01", id=999))

        assert created["id"] != 999
        assert created["created_at"] != "1999-01-01"


class TestRead:

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, service):
        assert await service.get_by_id(404) is None

    @pytest.mark.asyncio
    async def test_get_by_chapter_sorted_and_active(self, service):
        created = await _seed(service, [(3, 5), (3, 1), (3, 2), (4, 1)])
        await service.soft_delete(created[2]["id"])

        result = await service.get_by_chapter(3)

        assert result["chapter"] == 3
        assert result["count"] == 2
        assert [v["verse"] for v in result["verses"]] == [1, 5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chapter", [0, 19])
    async def test_get_by_chapter_out_of_range(self, service, repository, chapter):
        async def _boom(*args, **kwargs):
            raise AssertionError("store must not be called")

        repository.list_by_chapter = _boom
        with pytest.raises(InvalidArgument):
            await service.get_by_chapter(chapter)

    @pytest.mark.asyncio
    async def test_simplified_shape(self, service):
        await service.create(make_verse(2, 47, tags=["custom"]))

        verse = await service.get_by_chapter_verse(2, 47)

        assert verse["tags"] == ["chapter-2", "verse-47"]
        assert verse["translation"] == "Translation 2.47"
        assert verse["meaning"] == "Meaning not available"
        assert verse["commentary"] == "Commentary not available"
        assert "commentary_sources" not in verse

    @pytest.mark.asyncio
    async def test_full_shape(self, service):
        await service.create(make_verse(2, 47, tags=["custom"]))

        verse = await service.get_by_chapter_verse(2, 47, variant="full")

        assert verse["tags"] == ["custom"]
        assert verse["commentary_sources"]["tej"]["author"] == "Swami Tejomayananda"

    @pytest.mark.asyncio
    async def test_unknown_variant(self, service):
        with pytest.raises(InvalidArgument):
            await service.get_by_chapter_verse(1, 1, variant="brief")

    @pytest.mark.asyncio
    async def test_chapter_verse_honours_active(self, service):
        created = await service.create(make_verse(1, 1))
        await service.soft_delete(created["id"])

        assert await service.get_by_chapter_verse(1, 1) is None


class TestList:

    @pytest.mark.asyncio
    async def test_pagination_windows(self, service):
        pairs = [(chapter, verse) for chapter in (2, 1) for verse in range(13, 0, -1)][:25]
        await _seed(service, pairs)

        page1 = await service.list_verses(page=1, limit=10)
        page3 = await service.list_verses(page=3, limit=10)
        page4 = await service.list_verses(page=4, limit=10)

        ordered = sorted(pairs)
        assert [(v["chapter"], v["verse"]) for v in page1["verses"]] == ordered[:10]
        assert [(v["chapter"], v["verse"]) for v in page3["verses"]] == ordered[20:25]
        assert page4["verses"] == []
        assert page4["pagination"] == {
            "current_page": 4,
            "total_pages": 3,
            "total_items": 25,
            "items_per_page": 10,
        }

    @pytest.mark.asyncio
    async def test_search(self, service):
        await service.create(make_verse(2, 47, original_text="Karmaṇy evādhikāras te"))
        await service.create(make_verse(2, 48, original_text="yoga-sthaḥ", transliteration="yogasthah"))

        result = await service.list_verses(search="karma")

        assert [v["reference"] for v in result["verses"]] == ["2.47"]

    @pytest.mark.asyncio
    async def test_chapter_and_tags(self, service):
        await service.create(make_verse(1, 1, tags=["opening", "dharma"]))
        await service.create(make_verse(1, 2, tags=["army"]))
        await service.create(make_verse(4, 7, tags=["dharma"]))

        result = await service.list_verses(chapter="1", tags="dharma,avatar")

        assert [v["reference"] for v in result["verses"]] == ["1.1"]

    @pytest.mark.asyncio
    async def test_inactive_hidden_unless_requested(self, service):
        created = await _seed(service, [(1, 1), (1, 2)])
        await service.soft_delete(created[0]["id"])

        assert (await service.list_verses())["pagination"]["total_items"] == 1
        assert (await service.list_verses(include_inactive=True))["pagination"]["total_items"] == 2

    @pytest.mark.asyncio
    async def test_records_carry_derived_fields(self, service):
        await service.create(make_verse(1, 1))

        verse = (await service.list_verses())["verses"][0]

        assert verse["reference"] == "1.1"
        assert verse["translation"] == "Translation 1.1"

    @pytest.mark.asyncio
    async def test_summary_view(self, service):
        await service.create(make_verse(1, 1))

        verse = (await service.list_verses(view="summary"))["verses"][0]

        assert set(verse) == {"id", "reference", "original_text", "translation", "tags"}

    @pytest.mark.asyncio
    async def test_limit_capped(self, repository):
        from verses.service import VerseService

        service = VerseService(repository, max_page_limit=5)
        await _seed(service, [(1, v) for v in range(1, 8)])

        result = await service.list_verses(limit=50)

        assert len(result["verses"]) == 5
        assert result["pagination"]["items_per_page"] == 5


class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update(self, service):
        created = await service.create(make_verse(1, 1))

        updated = await service.update(created["id"], {"tags": ["new"], "_id": "x", "created_at": "y"})

        assert updated["tags"] == ["new"]
        assert updated["original_text"] == created["original_text"]
        assert updated["created_at"] == created["created_at"]

    @pytest.mark.asyncio
    async def test_partial_update_revalidates_ceiling(self, service):
        created = await service.create(make_verse(3, 60))

        with pytest.raises(ValidationError, match="Chapter 2 cannot have more than 72 verses"):
            await service.update(created["id"], {"chapter": 2, "verse": 73})
        with pytest.raises(ValidationError, match="Chapter 1 cannot have more than 47 verses"):
            await service.update(created["id"], {"chapter": 1})

    @pytest.mark.asyncio
    async def test_update_to_taken_key(self, service):
        await service.create(make_verse(1, 1))
        second = await service.create(make_verse(1, 2))

        with pytest.raises(DuplicateKeyError):
            await service.update(second["id"], {"verse": 1})

    @pytest.mark.asyncio
    async def test_update_missing(self, service):
        assert await service.update(99, {"tags": []}) is None
        assert await service.replace(99, make_verse()) is None

    @pytest.mark.asyncio
    async def test_replace_requires_full_record(self, service):
        created = await service.create(make_verse(1, 1))

        with pytest.raises(ValidationError):
            await service.replace(created["id"], {"tags": ["x"]})

    @pytest.mark.asyncio
    async def test_replace_resets_omitted_fields_but_keeps_flag(self, service):
        created = await service.create(make_verse(1, 1, tags=["a"]))
        await service.soft_delete(created["id"])
        replacement = make_verse(1, 1)
        del replacement["tags"]

        replaced = await service.replace(created["id"], replacement)

        assert replaced["tags"] == []
        assert replaced["is_active"] is False


class TestDelete:

    @pytest.mark.asyncio
    async def test_soft_delete(self, service):
        created = await service.create(make_verse(1, 1))

        deleted = await service.soft_delete(created["id"])

        assert deleted["is_active"] is False
        assert (await service.get_by_chapter(1))["count"] == 0
        fetched = await service.get_by_id(created["id"])
        assert fetched["is_active"] is False

    @pytest.mark.asyncio
    async def test_restore(self, service):
        created = await service.create(make_verse(1, 1))
        await service.soft_delete(created["id"])

        restored = await service.restore(created["id"])

        assert restored["is_active"] is True
        assert (await service.get_by_chapter(1))["count"] == 1

    @pytest.mark.asyncio
    async def test_hard_delete_twice(self, service):
        created = await service.create(make_verse(1, 1))

        assert (await service.hard_delete(created["id"]))["id"] == created["id"]
        assert await service.hard_delete(created["id"]) is None
        assert await service.get_by_id(created["id"]) is None

    @pytest.mark.asyncio
    async def test_soft_delete_missing(self, service):
        assert await service.soft_delete(123) is None


class TestStats:

    @pytest.mark.asyncio
    async def test_counts_per_chapter(self, service):
        created = await _seed(service, [(1, 1), (1, 2), (1, 3), (2, 1), (2, 2), (5, 1)])
        await service.soft_delete(created[-1]["id"])

        stats = await service.stats()

        assert stats == {
            "total_verses": 5,
            "total_chapters": 2,
            "chapter_stats": [
                {"chapter": 1, "verse_count": 3},
                {"chapter": 2, "verse_count": 2},
            ],
        }

    @pytest.mark.asyncio
    async def test_empty(self, service):
        assert await service.stats() == {"total_verses": 0, "total_chapters": 0, "chapter_stats": []}
