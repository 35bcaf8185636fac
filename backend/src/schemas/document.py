"""Base schema for responses built from MongoDB documents."""
from typing import Any

from pydantic import BaseModel, model_validator

# Stored (camelCase) document keys -> API (snake_case) field names.
DOCUMENT_FIELD_NAMES = {
    "_id": "id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "notebookId": "notebook_id",
}


class DocumentModel(BaseModel):
    """
    Response model that accepts raw MongoDB documents.

    Documents keep the stored field names (``_id``, ``createdAt``); the API
    exposes snake_case names and string ids.
    """

    id: str

    @model_validator(mode="before")
    @classmethod
    def extract_from_document(cls, data: Any) -> Any:
        """Rename stored keys and stringify the ObjectId."""
        if not isinstance(data, dict) or "_id" not in data:
            return data
        converted = {DOCUMENT_FIELD_NAMES.get(key, key): value for key, value in data.items()}
        converted["id"] = str(converted["id"])
        return converted
