"""
Verse business logic.

Scope:
- listing with filter + pagination
- lookups by id, chapter, chapter+verse
- create / replace / partial update with validation and duplicate detection
- soft delete, restore, hard delete
- per-chapter statistics

Lookups that find nothing return None; the HTTP layer decides what that means.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from core.errors import DuplicateKeyError, InvalidArgument

from . import filters, model, pagination, resolver
from .repository import VerseRepository

logger = logging.getLogger(__name__)

VARIANTS = ("simplified", "full")


def present(record: dict[str, Any]) -> dict[str, Any]:
    """
    Full record shape: stored fields plus derived ones, computed on every read.
    """
    resolved = resolver.resolve_all(record.get("commentary_sources"))
    return {
        **record,
        "reference": model.reference(record),
        **resolved.as_dict(),
    }


def simplified(record: dict[str, Any]) -> dict[str, Any]:
    resolved = resolver.resolve_all(record.get("commentary_sources"))
    return {
        "id": record["id"],
        "chapter": record["chapter"],
        "verse": record["verse"],
        "reference": model.reference(record),
        "original_text": record["original_text"],
        "transliteration": record["transliteration"],
        **resolved.as_dict(),
        "tags": [f"chapter-{record['chapter']}", f"verse-{record['verse']}"],
        "created_at": record.get("created_at"),
        "updated_at": record.get("updated_at"),
    }


def summary(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["id"],
        "reference": model.reference(record),
        "original_text": record["original_text"],
        "translation": resolver.resolve_translation(record.get("commentary_sources")),
        "tags": list(record.get("tags") or []),
    }


def check_chapter(chapter: int) -> int:
    if not model.MIN_CHAPTER <= chapter <= model.MAX_CHAPTER:
        raise InvalidArgument("Chapter number must be between 1 and 18")
    return chapter


class VerseService:
    def __init__(self, repository: VerseRepository, *, max_page_limit: int | None = None) -> None:
        self.repository = repository
        self.max_page_limit = max_page_limit

    async def list_verses(
        self,
        *,
        page: int | None = None,
        limit: int | None = None,
        chapter: Any = None,
        search: str | None = None,
        tags: str | list[str] | None = None,
        include_inactive: bool = False,
        view: str = "full",
    ) -> dict:
        request = pagination.page_request(page, limit, max_limit=self.max_page_limit)
        verse_filter = filters.build_filter(
            chapter=chapter,
            search=search,
            tags=tags,
            include_inactive=include_inactive,
        )
        shape = summary if view == "summary" else present

        total = await self.repository.count(verse_filter)
        rows: list[dict[str, Any]] = []
        if request.skip < total:
            rows = await self.repository.find(verse_filter, skip=request.skip, limit=request.limit)

        return {
            "verses": [shape(row) for row in rows],
            "pagination": pagination.pagination_meta(request, total),
        }

    async def get_by_id(self, verse_id: int) -> dict | None:
        row = await self.repository.get_by_id(verse_id)
        return present(row) if row is not None else None

    async def get_by_chapter(self, chapter: int) -> dict:
        check_chapter(chapter)
        rows = await self.repository.list_by_chapter(chapter)
        return {
            "chapter": chapter,
            "verses": [present(row) for row in rows],
            "count": len(rows),
        }

    async def get_by_chapter_verse(self, chapter: int, verse: int, *, variant: str = "simplified") -> dict | None:
        if variant not in VARIANTS:
            raise InvalidArgument(f"Unknown variant {variant!r}; expected one of {', '.join(VARIANTS)}.")
        row = await self.repository.get_by_key(chapter, verse, active_only=True)
        if row is None:
            return None
        return simplified(row) if variant == "simplified" else present(row)

    async def _ensure_unique(self, chapter: int, verse: int, *, exclude_id: int | None = None) -> None:
        # Convenience pre-check; the unique constraint is what actually decides races.
        existing = await self.repository.get_by_key(chapter, verse, active_only=False)
        if existing is not None and existing["id"] != exclude_id:
            raise DuplicateKeyError(chapter, verse)

    async def create(self, fields: Mapping[str, Any]) -> dict:
        record = model.validate_verse(model.strip_protected(fields))
        await self._ensure_unique(record["chapter"], record["verse"])
        row = await self.repository.insert(record)
        logger.info("verse_created id=%s reference=%s", row["id"], model.reference(row))
        return present(row)

    async def _apply(self, verse_id: int, changes: dict[str, Any]) -> dict | None:
        current = await self.repository.get_by_id(verse_id)
        if current is None:
            return None

        merged = {k: current.get(k) for k in model.WRITABLE_FIELDS}
        merged.update(changes)
        record = model.validate_verse(merged)
        if (record["chapter"], record["verse"]) != (current["chapter"], current["verse"]):
            await self._ensure_unique(record["chapter"], record["verse"], exclude_id=verse_id)

        updates = {k: v for k, v in record.items() if current.get(k) != v}
        row = await self.repository.update(verse_id, updates)
        if row is None:
            return None
        logger.info("verse_updated id=%s fields=%s", verse_id, ",".join(sorted(updates)) or "-")
        return present(row)

    async def replace(self, verse_id: int, fields: Mapping[str, Any]) -> dict | None:
        """
        Full update: every required field must be supplied. Fields the client
        omits fall back to their defaults, except the soft-delete flag and the
        migration archive, which are kept.
        """
        changes = model.validate_verse(model.strip_protected(fields))
        if "is_active" not in fields:
            changes.pop("is_active", None)
        return await self._apply(verse_id, changes)

    async def update(self, verse_id: int, fields: Mapping[str, Any]) -> dict | None:
        changes = model.validate_verse(model.strip_protected(fields), partial=True)
        return await self._apply(verse_id, changes)

    async def soft_delete(self, verse_id: int) -> dict | None:
        row = await self.repository.update(verse_id, {"is_active": False})
        if row is not None:
            logger.info("verse_deactivated id=%s", verse_id)
        return present(row) if row is not None else None

    async def restore(self, verse_id: int) -> dict | None:
        row = await self.repository.update(verse_id, {"is_active": True})
        if row is not None:
            logger.info("verse_restored id=%s", verse_id)
        return present(row) if row is not None else None

    async def hard_delete(self, verse_id: int) -> dict | None:
        row = await self.repository.delete(verse_id)
        if row is not None:
            logger.info("verse_deleted id=%s reference=%s", verse_id, model.reference(row))
        return present(row) if row is not None else None

    async def stats(self) -> dict:
        chapter_stats = await self.repository.chapter_counts()
        return {
            "total_verses": sum(item["verse_count"] for item in chapter_stats),
            "total_chapters": len(chapter_stats),
            "chapter_stats": chapter_stats,
        }
