"""Notes CRUD endpoints."""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from api.dependencies import get_embedding_service, get_note_service
from schemas.note import NoteCreate, NoteResponse, NoteUpdate
from schemas.vault import DeleteResponse
from services.embedding_service import EmbeddingService, refresh_note_embedding
from services.note_service import NoteService

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=list[NoteResponse])
async def list_notes(
    notebook_id: str | None = Query(default=None, description="Only notes in this notebook"),
    notes: NoteService = Depends(get_note_service),
) -> list[NoteResponse]:
    """List notes, most recently updated first."""
    return [NoteResponse.model_validate(n) for n in await notes.list(notebook_id)]


@router.post("", response_model=NoteResponse, status_code=201)
async def create_note(
    data: NoteCreate,
    background_tasks: BackgroundTasks,
    notes: NoteService = Depends(get_note_service),
    embeddings: EmbeddingService = Depends(get_embedding_service),
) -> NoteResponse:
    """Create a new note. Its embedding is generated after the response is sent."""
    note = await notes.create(data)
    if note["markdown"]:
        background_tasks.add_task(refresh_note_embedding, notes, embeddings, note)
    return NoteResponse.model_validate(note)


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: str,
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """Get a single note by ID."""
    note = await notes.get(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: str,
    data: NoteUpdate,
    background_tasks: BackgroundTasks,
    notes: NoteService = Depends(get_note_service),
    embeddings: EmbeddingService = Depends(get_embedding_service),
) -> NoteResponse:
    """Update a note. The embedding is regenerated when title, markdown, or tags change."""
    note = await notes.update(note_id, data)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    if data.changes_embedding_text():
        background_tasks.add_task(refresh_note_embedding, notes, embeddings, note)
    return NoteResponse.model_validate(note)


@router.delete("/{note_id}", response_model=DeleteResponse)
async def delete_note(
    note_id: str,
    notes: NoteService = Depends(get_note_service),
) -> DeleteResponse:
    """Delete a note."""
    if not await notes.delete(note_id):
        raise HTTPException(status_code=404, detail="Note not found")
    return DeleteResponse()
