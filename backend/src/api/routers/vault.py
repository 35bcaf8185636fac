"""Vault endpoints: CRUD over client-side encrypted notes."""
import json
from typing import Any

from bson import json_util
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_vault_service
from schemas.vault import DeleteResponse, VaultNoteCreate, VaultNoteResponse, VaultNoteUpdate
from services.vault_service import VaultNoteService

router = APIRouter(prefix="/vault", tags=["vault"])

NOT_FOUND = "Vault note not found"


@router.get("", response_model=list[VaultNoteResponse])
async def list_vault_notes(
    vault: VaultNoteService = Depends(get_vault_service),
) -> list[VaultNoteResponse]:
    """List vault notes, most recently updated first."""
    notes = await vault.list()
    return [VaultNoteResponse.model_validate(n) for n in notes]


@router.post("", response_model=VaultNoteResponse, status_code=201)
async def create_vault_note(
    data: VaultNoteCreate,
    vault: VaultNoteService = Depends(get_vault_service),
) -> VaultNoteResponse:
    """Create a vault note. The markdown body is encrypted before it is sent to MongoDB."""
    note = await vault.create(data)
    return VaultNoteResponse.model_validate(note)


@router.get("/{note_id}", response_model=VaultNoteResponse)
async def get_vault_note(
    note_id: str,
    vault: VaultNoteService = Depends(get_vault_service),
) -> VaultNoteResponse:
    """Get a single decrypted vault note."""
    note = await vault.get(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return VaultNoteResponse.model_validate(note)


@router.put("/{note_id}", response_model=VaultNoteResponse)
async def update_vault_note(
    note_id: str,
    data: VaultNoteUpdate,
    vault: VaultNoteService = Depends(get_vault_service),
) -> VaultNoteResponse:
    """Partially update a vault note. Always refreshes updated_at."""
    note = await vault.update(note_id, data)
    if note is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return VaultNoteResponse.model_validate(note)


@router.delete("/{note_id}", response_model=DeleteResponse)
async def delete_vault_note(
    note_id: str,
    vault: VaultNoteService = Depends(get_vault_service),
) -> DeleteResponse:
    """Delete a vault note."""
    if not await vault.delete(note_id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return DeleteResponse()


@router.get("/{note_id}/raw")
async def get_raw_vault_note(
    note_id: str,
    vault: VaultNoteService = Depends(get_vault_service),
) -> dict[str, Any]:
    """
    Get the stored document exactly as MongoDB holds it, without decryption.

    Returned as relaxed Extended JSON, so the encrypted markdown appears as
    ``{"$binary": {"base64": ..., "subType": "06"}}``.
    """
    note = await vault.get_raw(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return json.loads(json_util.dumps(note, json_options=json_util.RELAXED_JSON_OPTIONS))
