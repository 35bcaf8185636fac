"""Keyword search endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_search_service
from schemas.search import AutocompleteResult, SearchResult
from services.search_service import SearchService

router = APIRouter(prefix="/search", tags=["search"])


def parse_tags(tags: str | None) -> list[str] | None:
    """Split a comma-separated tag filter, dropping blanks."""
    if not tags:
        return None
    parsed = [t.strip() for t in tags.split(",") if t.strip()]
    return parsed or None


@router.get("", response_model=list[SearchResult])
async def search_notes(
    q: str | None = Query(default=None, description="Search query (title and markdown)"),
    tags: str | None = Query(default=None, description="Comma-separated tags to filter by"),
    search: SearchService = Depends(get_search_service),
) -> list[SearchResult]:
    """Fuzzy full-text search with highlights."""
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    results = await search.search(q, parse_tags(tags))
    return [SearchResult.model_validate(r) for r in results]


@router.get("/autocomplete", response_model=list[AutocompleteResult])
async def autocomplete_notes(
    q: str | None = Query(default=None, description="Title prefix"),
    search: SearchService = Depends(get_search_service),
) -> list[AutocompleteResult]:
    """Title suggestions. An empty query yields no suggestions."""
    if not q:
        return []
    return [AutocompleteResult.model_validate(r) for r in await search.autocomplete(q)]
