"""
Query filter for verse listing.

`build_filter` turns raw query parameters into a `VerseFilter`. The filter can
be compiled to a SQL WHERE clause for the repository, or evaluated directly
against a record dict (used by in-process callers and tests).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from core.errors import InvalidArgument

# Searchable commentary fields: the two most-preferred sources of the
# translation and meaning chains.
SEARCH_SOURCE_FIELDS: tuple[tuple[str, str], ...] = (
    ("tej", "et"),
    ("siva", "et"),
    ("tej", "ht"),
    ("siva", "ec"),
)

SEARCH_TEXT_COLUMNS: tuple[str, ...] = ("original_text", "transliteration")


@dataclass(frozen=True)
class VerseFilter:
    chapter: int | None = None
    search: str | None = None
    tags: tuple[str, ...] = ()
    active_only: bool = True

    def to_sql(self, first_param: int = 1) -> tuple[str, list[Any]]:
        """
        Compile to `(where_clause, args)` with placeholders starting at `$first_param`.

        The clause never includes the WHERE keyword and is "true" when empty.
        """
        clauses: list[str] = []
        args: list[Any] = []

        def _param(value: Any) -> str:
            args.append(value)
            return f"${first_param + len(args) - 1}"

        if self.active_only:
            clauses.append("is_active = true")
        if self.chapter is not None:
            clauses.append(f"chapter = {_param(self.chapter)}")
        if self.tags:
            clauses.append(f"tags && {_param(list(self.tags))}::text[]")
        if self.search:
            pattern = _param("%" + _escape_like(self.search) + "%")
            targets = [*SEARCH_TEXT_COLUMNS]
            targets += [f"(commentary_sources #>> '{{{key},{label}}}')" for key, label in SEARCH_SOURCE_FIELDS]
            clauses.append("(" + " OR ".join(f"{t} ILIKE {pattern}" for t in targets) + ")")

        if not clauses:
            return "true", args
        return " AND ".join(clauses), args

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.active_only and not record.get("is_active", True):
            return False
        if self.chapter is not None and record.get("chapter") != self.chapter:
            return False
        if self.tags and not set(self.tags) & set(record.get("tags") or ()):
            return False
        if self.search:
            needle = self.search.lower()
            return any(needle in value.lower() for value in _search_values(record))
        return True


def _search_values(record: Mapping[str, Any]) -> list[str]:
    values = [record.get(column) for column in SEARCH_TEXT_COLUMNS]
    commentary_sources = record.get("commentary_sources") or {}
    for key, label in SEARCH_SOURCE_FIELDS:
        entry = commentary_sources.get(key)
        if isinstance(entry, Mapping):
            values.append(entry.get(label))
    return [v for v in values if isinstance(v, str)]


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_chapter(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise InvalidArgument(f"chapter must be an integer, got {text!r}") from exc


def parse_tags(raw: str | list[str] | None) -> tuple[str, ...]:
    if not raw:
        return ()
    parts = raw.split(",") if isinstance(raw, str) else raw
    return tuple(tag.strip() for tag in parts if tag and tag.strip())


def build_filter(
    *,
    chapter: Any = None,
    search: str | None = None,
    tags: str | list[str] | None = None,
    include_inactive: bool = False,
) -> VerseFilter:
    return VerseFilter(
        chapter=parse_chapter(chapter),
        search=(search or "").strip() or None,
        tags=parse_tags(tags),
        active_only=not include_inactive,
    )
