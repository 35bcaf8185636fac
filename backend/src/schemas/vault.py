"""Pydantic schemas for vault endpoints."""
from datetime import datetime

from pydantic import BaseModel, field_validator

from schemas.document import DocumentModel
from schemas.validators import (
    validate_and_normalize_tags,
    validate_markdown_length,
    validate_title,
)


class VaultNoteCreate(BaseModel):
    """Schema for creating a vault note."""

    title: str
    markdown: str = ""
    tags: list[str] = []

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


class VaultNoteUpdate(BaseModel):
    """Schema for partially updating a vault note. Omitted fields are left unchanged."""

    title: str | None = None
    markdown: str | None = None
    tags: list[str] | None = None

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


class VaultNoteResponse(DocumentModel):
    """Decrypted vault note as returned by the encrypted path."""

    title: str
    markdown: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    """Schema for successful deletes."""

    success: bool = True
