"""
Domain errors shared by the verse core.

Not-found is not an error here: lookups return None and the HTTP layer
turns that into a 404.
"""

from __future__ import annotations


class VerseError(Exception):
    pass


class ValidationError(VerseError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateKeyError(VerseError):
    def __init__(self, chapter: int | None = None, verse: int | None = None) -> None:
        super().__init__("Verse already exists with this chapter and verse number")
        self.chapter = chapter
        self.verse = verse


class InvalidArgument(VerseError):
    pass


class StoreError(VerseError):
    """
    Unclassified failure from the document store (I/O, timeout, ...).
    """
