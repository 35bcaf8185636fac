"""Pydantic schemas for keyword and semantic search endpoints."""
from typing import Literal

from pydantic import BaseModel, Field

from schemas.document import DocumentModel


class HighlightText(BaseModel):
    """A fragment of a highlight; 'hit' fragments matched the query."""

    value: str
    type: Literal["hit", "text"]


class SearchHighlight(BaseModel):
    """Highlighted fragments for one matched field."""

    path: str
    texts: list[HighlightText]
    score: float | None = None


class SearchResult(DocumentModel):
    """Keyword search hit with relevance score and highlights."""

    title: str
    markdown: str = ""
    tags: list[str] = Field(default_factory=list)
    score: float
    highlights: list[SearchHighlight] = Field(default_factory=list)


class AutocompleteResult(DocumentModel):
    """Title suggestion."""

    title: str


class SemanticResult(DocumentModel):
    """Vector search hit with similarity score."""

    title: str
    markdown: str = ""
    tags: list[str] = Field(default_factory=list)
    score: float
