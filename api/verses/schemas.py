"""
Pydantic schemas for verse endpoints.

These only describe request shapes. Presence, trimming and range rules are
enforced by `verses.model.validate_verse` so that the messages are the same
for HTTP callers and the batch transform.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictInt


class CommentarySource(BaseModel):
    # Labelled text fields (et, ht, ec, hc, sc) vary per source key.
    model_config = ConfigDict(extra="allow")

    author: str | None = None


class VerseWrite(BaseModel):
    """
    Body for POST (create), PUT (full update) and PATCH (partial update).
    """

    model_config = ConfigDict(extra="ignore")

    # Strict so JSON booleans and numeric strings are rejected, not coerced.
    chapter: StrictInt | None = None
    verse: StrictInt | None = None
    original_text: str | None = None
    transliteration: str | None = None
    commentary_sources: dict[str, CommentarySource | None] | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

    def fields(self) -> dict:
        return self.model_dump(exclude_unset=True)
