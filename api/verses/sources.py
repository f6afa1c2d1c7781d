"""
Catalog of known commentary sources.

Each source key exposes a fixed set of labelled text fields (plus `author`):
- et: English translation
- ht: Hindi translation
- ec: English commentary
- hc: Hindi commentary
- sc: Sanskrit commentary
"""

from __future__ import annotations

AUTHOR_FIELD = "author"

SOURCE_FIELDS: dict[str, tuple[str, ...]] = {
    "tej": ("ht", "et"),
    "siva": ("et", "ec"),
    "purohit": ("et",),
    "chinmay": ("et", "hc"),
    "san": ("et",),
    "adi": ("et",),
    "gambir": ("et",),
    "madhav": ("sc",),
    "anand": ("sc",),
    "rams": ("ht", "et", "hc"),
    "raman": ("sc", "et"),
    "abhinav": ("sc", "et"),
    "sankar": ("ht", "sc", "et"),
    "jaya": ("sc",),
    "vallabh": ("sc",),
    "ms": ("sc",),
    "srid": ("sc",),
    "dhan": ("sc",),
    "venkat": ("sc",),
    "puru": ("sc",),
    "neel": ("sc",),
    "prabhu": ("et", "ec"),
}

SOURCE_KEYS: tuple[str, ...] = tuple(SOURCE_FIELDS)


def is_known_source(key: str) -> bool:
    return key in SOURCE_FIELDS


def allowed_fields(key: str) -> tuple[str, ...]:
    return (AUTHOR_FIELD, *SOURCE_FIELDS.get(key, ()))


def pick_sources(doc: dict) -> dict[str, dict]:
    """
    Collect the known source sub-records that appear as top-level keys of `doc`.
    """
    picked: dict[str, dict] = {}
    for key in SOURCE_KEYS:
        value = doc.get(key)
        if isinstance(value, dict):
            picked[key] = dict(value)
    return picked
