"""
Verse persistence (raw SQL).

The `verses` table is used as a document collection: scalar keys as columns,
commentary sources as jsonb. See `db/migrations/` for the schema.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from core.db import Database
from core.errors import DuplicateKeyError, StoreError

from .filters import VerseFilter
from .pagination import ORDER_BY

logger = logging.getLogger(__name__)

COLUMNS = """
    id, chapter, verse, original_text, transliteration,
    commentary_sources, commentaries, tags, is_active, created_at, updated_at
"""

JSON_COLUMNS = ("commentary_sources", "commentaries")

# column -> SQL cast applied to the bound parameter
UPDATABLE_COLUMNS: dict[str, str] = {
    "chapter": "",
    "verse": "",
    "original_text": "",
    "transliteration": "",
    "commentary_sources": "::jsonb",
    "commentaries": "::jsonb",
    "tags": "::text[]",
    "is_active": "",
}


def _json_arg(value: dict[str, Any] | None) -> str | None:
    """
    asyncpg does not automatically encode Python dicts for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _decode_row(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    for column in JSON_COLUMNS:
        value = row.get(column)
        if isinstance(value, str):
            row[column] = json.loads(value)
        elif value is None:
            row[column] = {}
    row["id"] = int(row["id"])
    row["tags"] = list(row.get("tags") or [])
    return row


def _bind(column: str, value: Any) -> Any:
    return _json_arg(value) if column in JSON_COLUMNS else value


@asynccontextmanager
async def _store_errors(operation: str, **context: Any) -> AsyncIterator[None]:
    try:
        yield
    except asyncpg.UniqueViolationError as exc:
        raise DuplicateKeyError(context.get("chapter"), context.get("verse")) from exc
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
        logger.exception("store_error operation=%s context=%s", operation, context)
        raise StoreError(f"Store operation failed: {operation}") from exc


class VerseRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        async with _store_errors("insert", chapter=record.get("chapter"), verse=record.get("verse")):
            row = await self.db.fetch_one(
                f"""
                INSERT INTO verses (
                  chapter, verse, original_text, transliteration,
                  commentary_sources, commentaries, tags, is_active
                )
                VALUES (
                  $1, $2, $3, $4,
                  COALESCE($5::jsonb, '{{}}'::jsonb), COALESCE($6::jsonb, '{{}}'::jsonb),
                  COALESCE($7::text[], '{{}}'::text[]), $8
                )
                RETURNING {COLUMNS}
                """,
                record["chapter"],
                record["verse"],
                record["original_text"],
                record["transliteration"],
                _json_arg(record.get("commentary_sources")),
                _json_arg(record.get("commentaries")),
                record.get("tags"),
                record.get("is_active", True),
            )
        if row is None:
            raise StoreError("Failed to insert verse.")
        return _decode_row(row)

    async def get_by_id(self, verse_id: int) -> dict[str, Any] | None:
        async with _store_errors("get_by_id", id=verse_id):
            row = await self.db.fetch_one(
                f"SELECT {COLUMNS} FROM verses WHERE id = $1",
                verse_id,
            )
        return _decode_row(row)

    async def get_by_key(self, chapter: int, verse: int, *, active_only: bool = True) -> dict[str, Any] | None:
        async with _store_errors("get_by_key", chapter=chapter, verse=verse):
            row = await self.db.fetch_one(
                f"""
                SELECT {COLUMNS}
                FROM verses
                WHERE chapter = $1
                  AND verse = $2
                  AND ($3 = false OR is_active = true)
                """,
                chapter,
                verse,
                active_only,
            )
        return _decode_row(row)

    async def find(self, verse_filter: VerseFilter, *, skip: int, limit: int) -> list[dict[str, Any]]:
        where, args = verse_filter.to_sql()
        n = len(args)
        async with _store_errors("find"):
            rows = await self.db.fetch_all(
                f"""
                SELECT {COLUMNS}
                FROM verses
                WHERE {where}
                ORDER BY {ORDER_BY}
                LIMIT ${n + 1}
                OFFSET ${n + 2}
                """,
                *args,
                limit,
                skip,
            )
        return [_decode_row(r) for r in rows]

    async def count(self, verse_filter: VerseFilter) -> int:
        where, args = verse_filter.to_sql()
        async with _store_errors("count"):
            value = await self.db.fetch_value(f"SELECT count(*) FROM verses WHERE {where}", *args)
        return int(value or 0)

    async def list_by_chapter(self, chapter: int) -> list[dict[str, Any]]:
        async with _store_errors("list_by_chapter", chapter=chapter):
            rows = await self.db.fetch_all(
                f"""
                SELECT {COLUMNS}
                FROM verses
                WHERE chapter = $1
                  AND is_active = true
                ORDER BY verse ASC
                """,
                chapter,
            )
        return [_decode_row(r) for r in rows]

    async def update(self, verse_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        """
        Set the given columns on one row. Returns the updated row, or None when
        the id does not exist.
        """
        assignments: list[str] = []
        args: list[Any] = [verse_id]
        for column, value in fields.items():
            cast = UPDATABLE_COLUMNS.get(column)
            if cast is None:
                continue
            args.append(_bind(column, value))
            assignments.append(f"{column} = ${len(args)}{cast}")
        if not assignments:
            return await self.get_by_id(verse_id)

        async with _store_errors("update", id=verse_id, chapter=fields.get("chapter"), verse=fields.get("verse")):
            row = await self.db.fetch_one(
                f"""
                UPDATE verses
                SET {", ".join(assignments)},
                    updated_at = now()
                WHERE id = $1
                RETURNING {COLUMNS}
                """,
                *args,
            )
        return _decode_row(row)

    async def delete(self, verse_id: int) -> dict[str, Any] | None:
        async with _store_errors("delete", id=verse_id):
            row = await self.db.fetch_one(
                f"DELETE FROM verses WHERE id = $1 RETURNING {COLUMNS}",
                verse_id,
            )
        return _decode_row(row)

    async def chapter_counts(self) -> list[dict[str, int]]:
        async with _store_errors("chapter_counts"):
            rows = await self.db.fetch_all(
                """
                SELECT chapter, count(*) AS verse_count
                FROM verses
                WHERE is_active = true
                GROUP BY chapter
                ORDER BY chapter ASC
                """
            )
        return [{"chapter": int(r["chapter"]), "verse_count": int(r["verse_count"])} for r in rows]

    async def upsert(self, record: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        """
        Insert or update by (chapter, verse). Returns (row, created).
        """
        async with _store_errors("upsert", chapter=record.get("chapter"), verse=record.get("verse")):
            row = await self.db.fetch_one(
                f"""
                INSERT INTO verses (
                  chapter, verse, original_text, transliteration,
                  commentary_sources, commentaries, tags, is_active
                )
                VALUES (
                  $1, $2, $3, $4,
                  COALESCE($5::jsonb, '{{}}'::jsonb), COALESCE($6::jsonb, '{{}}'::jsonb),
                  COALESCE($7::text[], '{{}}'::text[]), $8
                )
                ON CONFLICT (chapter, verse) DO UPDATE
                SET original_text = EXCLUDED.original_text,
                    transliteration = EXCLUDED.transliteration,
                    commentary_sources = EXCLUDED.commentary_sources,
                    commentaries = EXCLUDED.commentaries,
                    tags = EXCLUDED.tags,
                    is_active = EXCLUDED.is_active,
                    updated_at = now()
                RETURNING {COLUMNS}, (xmax = 0) AS inserted
                """,
                record["chapter"],
                record["verse"],
                record["original_text"],
                record["transliteration"],
                _json_arg(record.get("commentary_sources")),
                _json_arg(record.get("commentaries")),
                record.get("tags"),
                record.get("is_active", True),
            )
        if row is None:
            raise StoreError("Failed to upsert verse.")
        created = bool(row.pop("inserted"))
        return _decode_row(row), created

    async def fetch_legacy_documents(self) -> list[dict[str, Any]]:
        """
        Read every document of the legacy collection, ordered by reference.
        """
        async with _store_errors("fetch_legacy_documents"):
            rows = await self.db.fetch_all(
                """
                SELECT id, doc
                FROM legacy_verses
                ORDER BY (doc ->> 'chapter')::int NULLS LAST, (doc ->> 'verse')::int NULLS LAST, id
                """
            )
        docs: list[dict[str, Any]] = []
        for row in rows:
            doc = row["doc"]
            doc = json.loads(doc) if isinstance(doc, str) else dict(doc or {})
            doc.setdefault("_id", row["id"])
            docs.append(doc)
        return docs
