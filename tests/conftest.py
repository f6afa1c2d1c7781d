"""
Shared fixtures for the verse API tests.
"""
from typing import Any, Dict

import pytest

from tests.fakes import InMemoryVerseRepository
from verses.service import VerseService


def make_verse(chapter: int = 1, verse: int = 1, **overrides: Any) -> Dict[str, Any]:
    data = {
        "chapter": chapter,
        "verse": verse,
        "original_text": f"dharma-kshetre kuru-kshetre {chapter}.{verse}",
        "transliteration": f"dharma-ksetre kuru-ksetre {chapter}.{verse}",
        "commentary_sources": {
            "tej": {"author": "Swami Tejomayananda", "et": f"Translation {chapter}.{verse}"},
        },
        "tags": ["opening"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def repository() -> InMemoryVerseRepository:
    return InMemoryVerseRepository()


@pytest.fixture
def service(repository: InMemoryVerseRepository) -> VerseService:
    return VerseService(repository, max_page_limit=100)


@pytest.fixture
def legacy_doc() -> Dict[str, Any]:
    """Legacy-shaped document with sources as top-level keys."""
    return {
        "_id": "BG2.47",
        "chapter": 2,
        "verse": 47,
        "slok": "karmanyevadhikaraste ma phaleshu kadachana",
        "transliteration": "karmaṇy evādhikāras te mā phaleṣu kadācana",
        "tej": {"author": "Swami Tejomayananda", "ht": "कर्म में ही तुम्हारा अधिकार है"},
        "siva": {"author": "Swami Sivananda", "et": "Thy right is to work only.", "ec": "Work for work's sake."},
        "sankar": {"author": "Sri Shankaracharya", "sc": "कर्मण्येव अधिकारः"},
        "unknown": {"author": "Nobody", "et": "ignored"},
    }
