"""
Verse API endpoints.

Route order matters: fixed segments (`stats/overview`, `chapter/{n}`) are
declared before the `{chapter}/{verse}` and `{verse_id}` patterns.
"""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from . import schemas
from .service import VerseService

router = APIRouter(prefix="/verses")

# Column ranges: verses.id is bigint, chapter/verse are integer.
MAX_ID = 2**63 - 1
MAX_INT = 2**31 - 1

VerseId = Annotated[int, Path(ge=1, le=MAX_ID)]
PositiveInt = Annotated[int, Path(ge=1, le=MAX_INT)]


def get_verse_service(request: Request) -> VerseService:
    return request.app.state.verse_service


def _found(verse: dict | None) -> dict:
    if verse is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Verse not found")
    return verse


@router.get("")
async def list_verses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    chapter: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=500),
    tags: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    view: Literal["full", "summary"] = Query(default="full"),
    service: VerseService = Depends(get_verse_service),
) -> dict:
    return await service.list_verses(
        page=page,
        limit=limit,
        chapter=chapter,
        search=search,
        tags=tags,
        include_inactive=include_inactive,
        view=view,
    )


@router.get("/stats/overview")
async def stats(service: VerseService = Depends(get_verse_service)) -> dict:
    return await service.stats()


@router.get("/chapter/{chapter}")
async def get_chapter(chapter: int, service: VerseService = Depends(get_verse_service)) -> dict:
    return await service.get_by_chapter(chapter)


@router.get("/{chapter}/{verse}/full")
async def get_verse_full(
    chapter: PositiveInt,
    verse: PositiveInt,
    service: VerseService = Depends(get_verse_service),
) -> dict:
    found = _found(await service.get_by_chapter_verse(chapter, verse, variant="full"))
    return {**found, "message": "Full verse data with commentaries retrieved successfully"}


@router.get("/{chapter}/{verse}")
async def get_verse(
    chapter: PositiveInt,
    verse: PositiveInt,
    service: VerseService = Depends(get_verse_service),
) -> dict:
    return _found(await service.get_by_chapter_verse(chapter, verse, variant="simplified"))


@router.get("/{verse_id}")
async def get_verse_by_id(verse_id: VerseId, service: VerseService = Depends(get_verse_service)) -> dict:
    return _found(await service.get_by_id(verse_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_verse(
    request: schemas.VerseWrite,
    service: VerseService = Depends(get_verse_service),
) -> dict:
    verse = await service.create(request.fields())
    return {"message": "Verse created successfully", "verse": verse}


@router.put("/{verse_id}")
async def replace_verse(
    verse_id: VerseId,
    request: schemas.VerseWrite,
    service: VerseService = Depends(get_verse_service),
) -> dict:
    verse = _found(await service.replace(verse_id, request.fields()))
    return {"message": "Verse updated successfully", "verse": verse}


@router.patch("/{verse_id}")
async def update_verse(
    verse_id: VerseId,
    request: schemas.VerseWrite,
    service: VerseService = Depends(get_verse_service),
) -> dict:
    verse = _found(await service.update(verse_id, request.fields()))
    return {"message": "Verse updated successfully", "verse": verse}


@router.delete("/{verse_id}")
async def soft_delete_verse(verse_id: VerseId, service: VerseService = Depends(get_verse_service)) -> dict:
    """
    Soft delete: the record stays in storage with is_active=false.
    """
    verse = _found(await service.soft_delete(verse_id))
    return {"message": "Verse deleted successfully", "verse": verse}


@router.post("/{verse_id}/restore")
async def restore_verse(verse_id: VerseId, service: VerseService = Depends(get_verse_service)) -> dict:
    verse = _found(await service.restore(verse_id))
    return {"message": "Verse restored successfully", "verse": verse}


@router.delete("/{verse_id}/permanent")
async def hard_delete_verse(verse_id: VerseId, service: VerseService = Depends(get_verse_service)) -> dict:
    verse = _found(await service.hard_delete(verse_id))
    return {"message": "Verse permanently deleted", "verse": verse}
