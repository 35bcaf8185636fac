"""
Shared validation functions for Pydantic schemas.

Used by both the plain note and the vault note schemas.
"""
from core.config import get_settings


def normalize_tag(tag: str) -> str:
    """Normalize a single tag: trimmed and lowercased. Any other characters are kept."""
    if not isinstance(tag, str):
        raise ValueError(f"Tags must be strings, got {type(tag).__name__}")
    return tag.strip().lower()


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize a list of tags.

    Empty strings are dropped and duplicates removed, preserving first occurrence order.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        trimmed = normalize_tag(tag)
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            normalized.append(trimmed)
    return normalized


def validate_title(title: str | None) -> str | None:
    """Validate that a title is not blank and doesn't exceed the maximum length."""
    if title is None:
        return None
    if not title.strip():
        raise ValueError("Title cannot be empty")
    settings = get_settings()
    if len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_markdown_length(markdown: str | None) -> str | None:
    """Validate that markdown content doesn't exceed the maximum length."""
    settings = get_settings()
    if markdown is not None and len(markdown) > settings.max_content_length:
        raise ValueError(
            f"Content exceeds maximum length of {settings.max_content_length:,} characters "
            f"(got {len(markdown):,} characters).",
        )
    return markdown
