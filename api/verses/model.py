"""
Verse record validation and normalisation.

`validate_verse` is the single write-path gate. Checks run in a fixed order
and stop at the first failure:

1) required fields present
2) free-text fields trimmed (and still non-empty)
3) chapter in [1, 18], verse >= 1
4) chapter-specific verse ceiling

Uniqueness of (chapter, verse) is checked by the service and enforced by the
store's unique constraint.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.errors import ValidationError

from . import sources

MIN_CHAPTER = 1
MAX_CHAPTER = 18

# Only the ceilings the catalog has confirmed; other chapters are unbounded.
CHAPTER_VERSE_LIMITS: dict[int, int] = {
    1: 47,
    2: 72,
}

REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("chapter", "Chapter number is required"),
    ("verse", "Verse number is required"),
    ("original_text", "Original text is required"),
    ("transliteration", "Transliteration is required"),
)

TEXT_FIELDS = ("original_text", "transliteration")

WRITABLE_FIELDS = (
    "chapter",
    "verse",
    "original_text",
    "transliteration",
    "commentary_sources",
    "commentaries",
    "tags",
    "is_active",
)

PROTECTED_FIELDS = ("_id", "id", "created_at", "updated_at", "createdAt", "updatedAt")


def reference(record: Mapping[str, Any]) -> str:
    return f"{record['chapter']}.{record['verse']}"


def strip_protected(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _required_text(value: Any, field: str, message: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(field, f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(field, message)
    return trimmed


def _normalize_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("tags", "tags must be a list of strings")
    tags: list[str] = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValidationError("tags", "tags must be a list of strings")
        tag = tag.strip()
        if tag:
            tags.append(tag)
    return tags


def _normalize_sources(value: Any) -> dict[str, dict[str, str]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError("commentary_sources", "commentary_sources must be an object")

    normalized: dict[str, dict[str, str]] = {}
    for key, entry in value.items():
        field = f"commentary_sources.{key}"
        if not sources.is_known_source(key):
            raise ValidationError(field, f"Unknown commentary source '{key}'")
        if entry is None:
            continue
        if not isinstance(entry, Mapping):
            raise ValidationError(field, f"Commentary source '{key}' must be an object")

        allowed = sources.allowed_fields(key)
        cleaned: dict[str, str] = {}
        for label, text in entry.items():
            if label not in allowed:
                raise ValidationError(
                    f"{field}.{label}",
                    f"Commentary source '{key}' has no field '{label}'",
                )
            if text is None:
                continue
            if not isinstance(text, str):
                raise ValidationError(f"{field}.{label}", f"{field}.{label} must be a string")
            text = text.strip()
            if text:
                cleaned[label] = text
        if cleaned:
            normalized[key] = cleaned
    return normalized


def _check_ranges(chapter: Any, verse: Any) -> None:
    if chapter is not None:
        if not _is_int(chapter):
            raise ValidationError("chapter", "Chapter number must be an integer")
        if chapter < MIN_CHAPTER:
            raise ValidationError("chapter", "Chapter number must be at least 1")
        if chapter > MAX_CHAPTER:
            raise ValidationError("chapter", "Chapter number cannot exceed 18")
    if verse is not None:
        if not _is_int(verse):
            raise ValidationError("verse", "Verse number must be an integer")
        if verse < 1:
            raise ValidationError("verse", "Verse number must be at least 1")


def check_verse_ceiling(chapter: int, verse: int) -> None:
    limit = CHAPTER_VERSE_LIMITS.get(chapter)
    if limit is not None and verse > limit:
        raise ValidationError("verse", f"Chapter {chapter} cannot have more than {limit} verses")


def validate_verse(data: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """
    Validate and normalise a candidate record.

    With `partial=True` only the supplied fields are checked (and a supplied
    required field may still not be null/blank). Unknown keys are dropped.
    Returns a new dict holding only writable fields.
    """
    for field, message in REQUIRED_FIELDS:
        if field in data:
            if data[field] is None:
                raise ValidationError(field, message)
        elif not partial:
            raise ValidationError(field, message)

    record: dict[str, Any] = {}
    for field, message in REQUIRED_FIELDS:
        if field in TEXT_FIELDS and field in data:
            record[field] = _required_text(data[field], field, message)

    chapter = data.get("chapter")
    verse = data.get("verse")
    _check_ranges(chapter, verse)
    if chapter is not None:
        record["chapter"] = chapter
    if verse is not None:
        record["verse"] = verse
    if chapter is not None and verse is not None:
        check_verse_ceiling(chapter, verse)

    if "tags" in data:
        record["tags"] = _normalize_tags(data["tags"])
    if "commentary_sources" in data:
        record["commentary_sources"] = _normalize_sources(data["commentary_sources"])

    if "commentaries" in data:
        archive = data["commentaries"]
        if archive is not None and not isinstance(archive, Mapping):
            raise ValidationError("commentaries", "commentaries must be an object")
        record["commentaries"] = dict(archive) if archive else {}
    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise ValidationError("is_active", "is_active must be a boolean")
        record["is_active"] = data["is_active"]

    if not partial:
        record.setdefault("tags", [])
        record.setdefault("commentary_sources", {})
        record.setdefault("is_active", True)
    return record
