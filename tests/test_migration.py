"""
Tests for verses/migration.py - legacy shape to canonical record.
"""
import logging

import pytest

from verses import migration, resolver


class TestTransform:

    def test_maps_legacy_fields(self, legacy_doc):
        transformed = migration.transform_legacy(legacy_doc)
        record = transformed.record

        assert record["chapter"] == 2
        assert record["verse"] == 47
        assert record["original_text"] == legacy_doc["slok"]
        assert record["tags"] == ["bhagwat-gita", "chapter-2", "verse-47", "migrated"]
        assert record["is_active"] is True
        assert set(record["commentary_sources"]) == {"tej", "siva", "sankar"}

    def test_archives_sources_verbatim(self, legacy_doc):
        record = migration.transform_legacy(legacy_doc).record

        assert record["commentaries"]["siva"] == legacy_doc["siva"]
        assert "unknown" not in record["commentaries"]

    def test_resolves_derived_fields(self, legacy_doc):
        resolved = migration.transform_legacy(legacy_doc).resolved

        assert resolved.translation == "Thy right is to work only."
        assert resolved.meaning == "कर्म में ही तुम्हारा अधिकार है"
        assert resolved.commentary == "कर्मण्येव अधिकारः"

    def test_no_sources_yields_not_available(self):
        doc = {"chapter": 1, "verse": 1, "slok": "dharma", "transliteration": "dharma"}

        transformed = migration.transform_legacy(doc)

        assert transformed.resolved == resolver.ResolvedFields(
            translation="Translation not available",
            meaning="Meaning not available",
            commentary="Commentary not available",
        )
        assert transformed.record["commentary_sources"] == {}

    @pytest.mark.asyncio
    async def test_labels_outside_catalog_kept_in_archive_only(self, repository, service):
        doc = {
            "chapter": 1,
            "verse": 2,
            "slok": "s",
            "transliteration": "t",
            "chinmay": {"et": "chinmay-et", "hc": "hc", "sc": "stray"},
        }

        transformed = migration.transform_legacy(doc)
        await migration.migrate([doc], repository)
        verse = await service.get_by_chapter_verse(1, 2)

        assert transformed.record["commentary_sources"]["chinmay"] == {"et": "chinmay-et", "hc": "hc"}
        assert transformed.record["commentaries"]["chinmay"]["sc"] == "stray"
        assert verse["translation"] == transformed.resolved.translation == "chinmay-et"


class TestMigrate:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source", ["chinmay", "rams"])
    async def test_translation_read_back_matches_transform(self, repository, service, source):
        doc = {"chapter": 1, "verse": 2, "slok": "s", "transliteration": "t", source: {"et": f"{source}-et"}}

        transformed = migration.transform_legacy(doc)
        await migration.migrate([doc], repository)
        verse = await service.get_by_chapter_verse(1, 2)

        assert transformed.resolved.translation == f"{source}-et"
        assert verse["translation"] == transformed.resolved.translation

    @pytest.mark.asyncio
    async def test_inserts_then_updates(self, repository, legacy_doc):
        first = await migration.migrate([legacy_doc], repository)
        second = await migration.migrate([legacy_doc], repository)

        assert (first.created, first.updated, first.failed) == (1, 0, 0)
        assert (second.created, second.updated, second.failed) == (0, 1, 0)
        assert len(repository.rows) == 1

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, repository, legacy_doc, caplog):
        broken = {"chapter": 1, "verse": 1, "transliteration": "no slok"}
        failing_write = {"chapter": 1, "verse": 2, "slok": "s", "transliteration": "t"}
        out_of_range = {"chapter": 1, "verse": 99, "slok": "s", "transliteration": "t"}
        repository.failing_keys.add((1, 2))

        with caplog.at_level(logging.WARNING, logger="verses.migration"):
            report = await migration.migrate([broken, failing_write, legacy_doc, out_of_range], repository)

        assert report.total == 4
        assert report.succeeded == 1
        assert report.failed == 3
        assert [ref for ref, _ in report.errors] == ["1.1", "1.2", "1.99"]
        assert "verse_migration_failed" in caplog.text
        stored = await repository.get_by_key(2, 47)
        assert stored["tags"][-1] == "migrated"

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_counted(self, repository, legacy_doc, monkeypatch):
        calls = []

        async def _flaky_upsert(record):
            calls.append(record["verse"])
            if record["verse"] == 47:
                raise RuntimeError("boom")
            return record, True

        monkeypatch.setattr(repository, "upsert", _flaky_upsert)
        other = {"chapter": 2, "verse": 48, "slok": "s", "transliteration": "t"}

        report = await migration.migrate([legacy_doc, other], repository)

        assert calls == [47, 48]
        assert (report.created, report.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_migrated_record_reads_back_with_fallbacks(self, repository, service):
        doc = {"chapter": 1, "verse": 1, "slok": "dharma", "transliteration": "dharma"}

        await migration.migrate([doc], repository)
        verse = await service.get_by_chapter_verse(1, 1)

        assert verse["translation"] == "Translation not available"
        assert verse["meaning"] == "Meaning not available"
        assert verse["commentary"] == "Commentary not available"
