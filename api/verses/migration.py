"""
One-time transform from the legacy verse shape into the canonical record.

Legacy documents carry each commentary source as a top-level key
(`{"slok": ..., "tej": {"author": ..., "et": ...}, "siva": {...}}`).
The canonical record keeps those under `commentary_sources` and archives a
verbatim copy under `commentaries`.

Flow:
1) read every legacy document
2) transform + validate one document
3) upsert by (chapter, verse)
4) log and count failures, keep going

Run with: `python -m verses.migration` (needs DATABASE_URL).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from core import config
from core.db import Database
from core.errors import VerseError

from . import model, resolver, sources
from .repository import VerseRepository

logger = logging.getLogger(__name__)

MIGRATION_TAG = "migrated"
COLLECTION_TAG = "bhagwat-gita"


@dataclass(frozen=True)
class TransformedVerse:
    record: dict[str, Any]
    resolved: resolver.ResolvedFields


@dataclass
class MigrationReport:
    total: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.created + self.updated


def _legacy_reference(doc: Mapping[str, Any]) -> str:
    return f"{doc.get('chapter', '?')}.{doc.get('verse', '?')}"


def transform_legacy(doc: Mapping[str, Any]) -> TransformedVerse:
    """
    Map one legacy document to the canonical record shape (not yet validated).
    """
    raw_sources = sources.pick_sources(doc)
    chapter = doc.get("chapter")
    verse = doc.get("verse")
    record = {
        "chapter": chapter,
        "verse": verse,
        "original_text": doc.get("slok") or "",
        "transliteration": doc.get("transliteration") or "",
        "commentary_sources": {
            key: {label: value for label, value in entry.items() if label in sources.allowed_fields(key)}
            for key, entry in raw_sources.items()
        },
        "commentaries": raw_sources,
        "tags": [COLLECTION_TAG, f"chapter-{chapter}", f"verse-{verse}", MIGRATION_TAG],
        "is_active": True,
    }
    return TransformedVerse(record=record, resolved=resolver.resolve_all(record["commentary_sources"]))


async def migrate_one(doc: Mapping[str, Any], repository: VerseRepository) -> bool:
    """
    Transform, validate and upsert one document. Returns True when created.
    """
    transformed = transform_legacy(doc)
    record = model.validate_verse(transformed.record)
    _, created = await repository.upsert(record)
    logger.info(
        "verse_migrated reference=%s created=%s translation_found=%s",
        model.reference(record),
        created,
        transformed.resolved.translation != resolver.TRANSLATION_FALLBACK,
    )
    return created


async def migrate(docs: Iterable[Mapping[str, Any]], repository: VerseRepository) -> MigrationReport:
    """
    Migrate documents one at a time. A failing document is logged and counted;
    it never stops the batch.
    """
    report = MigrationReport()
    for doc in docs:
        report.total += 1
        reference = _legacy_reference(doc)
        try:
            created = await migrate_one(doc, repository)
        except VerseError as exc:
            report.failed += 1
            report.errors.append((reference, str(exc)))
            logger.warning("verse_migration_failed reference=%s error=%s", reference, exc)
            continue
        except Exception as exc:
            report.failed += 1
            report.errors.append((reference, repr(exc)))
            logger.exception("verse_migration_crashed reference=%s", reference)
            continue
        if created:
            report.created += 1
        else:
            report.updated += 1

    logger.info(
        "migration_complete total=%s created=%s updated=%s failed=%s",
        report.total,
        report.created,
        report.updated,
        report.failed,
    )
    return report


async def run() -> MigrationReport:
    async with Database() as db:
        repository = VerseRepository(db)
        docs = await repository.fetch_legacy_documents()
        logger.info("migration_start documents=%s", len(docs))
        return await migrate(docs, repository)


def main() -> int:
    logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
    report = asyncio.run(run())
    return 1 if report.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
