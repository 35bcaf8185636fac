"""Semantic (vector) search endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_semantic_service
from schemas.search import SemanticResult
from services.semantic_service import SemanticService

router = APIRouter(prefix="/semantic", tags=["semantic"])


@router.get("/search", response_model=list[SemanticResult])
async def semantic_search(
    q: str | None = Query(default=None, description="Natural language query"),
    semantic: SemanticService = Depends(get_semantic_service),
) -> list[SemanticResult]:
    """Find notes by meaning rather than keywords."""
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return [SemanticResult.model_validate(r) for r in await semantic.search(q)]


@router.get("/related/{note_id}", response_model=list[SemanticResult])
async def related_notes(
    note_id: str,
    semantic: SemanticService = Depends(get_semantic_service),
) -> list[SemanticResult]:
    """Find up to five notes similar to the given note."""
    return [SemanticResult.model_validate(r) for r in await semantic.find_related(note_id)]
