"""Pydantic schemas for note endpoints."""
from datetime import datetime

from pydantic import BaseModel, field_validator

from schemas.document import DocumentModel
from schemas.validators import (
    validate_and_normalize_tags,
    validate_markdown_length,
    validate_title,
)

DEFAULT_NOTEBOOK_ID = "default"


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    title: str
    markdown: str = ""
    tags: list[str] = []
    notebook_id: str = DEFAULT_NOTEBOOK_ID

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize tags; non-list input is left for type validation to reject."""
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Validate title is not empty."""
        return validate_title(v)

    @field_validator("markdown")
    @classmethod
    def check_markdown_length(cls, v: str) -> str:
        """Validate markdown length."""
        return validate_markdown_length(v)

    @field_validator("notebook_id", mode="before")
    @classmethod
    def default_notebook(cls, v: str | None) -> str:
        """Fall back to the default notebook for empty values."""
        return v or DEFAULT_NOTEBOOK_ID


class NoteUpdate(BaseModel):
    """Schema for updating an existing note."""

    title: str | None = None
    markdown: str | None = None
    tags: list[str] | None = None
    notebook_id: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        if not isinstance(v, list):
            return v
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title is not empty (if provided)."""
        return validate_title(v)

    @field_validator("markdown")
    @classmethod
    def check_markdown_length(cls, v: str | None) -> str | None:
        """Validate markdown length (if provided)."""
        return validate_markdown_length(v)

    def changes_embedding_text(self) -> bool:
        """Whether this update touches any field that feeds the note's embedding."""
        return bool(self.model_fields_set & {"title", "markdown", "tags"})


class NoteResponse(DocumentModel):
    """Schema for note responses. The embedding vector is never returned."""

    title: str
    markdown: str
    tags: list[str]
    notebook_id: str = DEFAULT_NOTEBOOK_ID
    created_at: datetime
    updated_at: datetime
