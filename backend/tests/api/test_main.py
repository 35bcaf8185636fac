"""Tests for application assembly."""
import importlib
import typing

from services.note_service import NoteService


def test_app_module_imports_with_all_routers() -> None:
    main = importlib.import_module("api.main")

    paths = {route.path for route in main.app.routes}

    expected = {
        "/health", "/notes", "/search", "/semantic/search", "/vault", "/vault/{note_id}/raw",
    }
    assert expected <= paths


def test_set_embedding_annotation_uses_builtin_list() -> None:
    """NoteService defines a ``list`` method; its other annotations still mean the builtin."""
    hints = typing.get_type_hints(NoteService.set_embedding)

    assert hints["embedding"] == list[float]
