"""
Fallback resolution of display fields from commentary sources.

Each derived field has an ordered chain of (source key, field label) pairs.
The first value that is a non-blank string wins. The orderings are curated
and must stay exactly as listed to keep output compatible with existing
clients.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

TRANSLATION_CHAIN: tuple[tuple[str, str], ...] = (
    ("tej", "et"),
    ("siva", "et"),
    ("purohit", "et"),
    ("chinmay", "et"),
    ("san", "et"),
    ("adi", "et"),
    ("gambir", "et"),
    ("rams", "et"),
    ("raman", "et"),
    ("abhinav", "et"),
    ("sankar", "et"),
    ("prabhu", "et"),
)

MEANING_CHAIN: tuple[tuple[str, str], ...] = (
    ("tej", "ht"),
    ("siva", "ec"),
    ("chinmay", "hc"),
    ("rams", "ht"),
    ("sankar", "ht"),
)

COMMENTARY_CHAIN: tuple[tuple[str, str], ...] = (
    ("sankar", "sc"),
    ("anand", "sc"),
    ("rams", "hc"),
    ("raman", "sc"),
    ("abhinav", "sc"),
    ("jaya", "sc"),
    ("vallabh", "sc"),
    ("ms", "sc"),
    ("srid", "sc"),
    ("dhan", "sc"),
    ("venkat", "sc"),
    ("puru", "sc"),
    ("neel", "sc"),
)

TRANSLATION_FALLBACK = "Translation not available"
MEANING_FALLBACK = "Meaning not available"
COMMENTARY_FALLBACK = "Commentary not available"


@dataclass(frozen=True)
class ResolvedFields:
    translation: str
    meaning: str
    commentary: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def resolve(
    sources: Mapping[str, Any] | None,
    chain: tuple[tuple[str, str], ...],
    fallback: str,
) -> str:
    if not sources:
        return fallback
    for source_key, field in chain:
        entry = sources.get(source_key)
        if not isinstance(entry, Mapping):
            continue
        value = entry.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def resolve_translation(sources: Mapping[str, Any] | None) -> str:
    return resolve(sources, TRANSLATION_CHAIN, TRANSLATION_FALLBACK)


def resolve_meaning(sources: Mapping[str, Any] | None) -> str:
    return resolve(sources, MEANING_CHAIN, MEANING_FALLBACK)


def resolve_commentary(sources: Mapping[str, Any] | None) -> str:
    return resolve(sources, COMMENTARY_CHAIN, COMMENTARY_FALLBACK)


def resolve_all(sources: Mapping[str, Any] | None) -> ResolvedFields:
    return ResolvedFields(
        translation=resolve_translation(sources),
        meaning=resolve_meaning(sources),
        commentary=resolve_commentary(sources),
    )
