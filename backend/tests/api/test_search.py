"""Tests for keyword and semantic search endpoints."""
from bson import ObjectId
from httpx import AsyncClient

from api.routers.search import parse_tags
from tests.fakes import FakeStore


def search_hit(**overrides: object) -> dict:
    return {
        "_id": ObjectId(),
        "title": "Getting Started with MongoDB",
        "markdown": "Atlas is a managed database.",
        "tags": ["mongodb"],
        "score": 3.2,
        "highlights": [
            {
                "path": "title",
                "texts": [
                    {"value": "Getting Started with ", "type": "text"},
                    {"value": "MongoDB", "type": "hit"},
                ],
                "score": 1.1,
            },
        ],
        **overrides,
    }


def test_parse_tags() -> None:
    assert parse_tags(None) is None
    assert parse_tags("") is None
    assert parse_tags(" , ") is None
    assert parse_tags("db, atlas,") == ["db", "atlas"]


async def test_search_requires_query(client: AsyncClient) -> None:
    response = await client.get("/search")
    assert response.status_code == 400


async def test_search_returns_scored_hits(client: AsyncClient, mongo_store: FakeStore) -> None:
    hit = search_hit()
    mongo_store.aggregate_results = [hit]

    response = await client.get("/search", params={"q": "mongo", "tags": "mongodb,atlas"})

    assert response.status_code == 200
    [result] = response.json()
    assert result["id"] == str(hit["_id"])
    assert result["score"] == 3.2
    assert result["highlights"][0]["texts"][1] == {"value": "MongoDB", "type": "hit"}

    [pipeline] = mongo_store.pipelines
    compound = pipeline[0]["$search"]["compound"]
    assert compound["filter"] == [{"text": {"query": ["mongodb", "atlas"], "path": "tags"}}]


async def test_autocomplete_empty_query_returns_nothing(
    client: AsyncClient, mongo_store: FakeStore,
) -> None:
    response = await client.get("/search/autocomplete")

    assert response.status_code == 200
    assert response.json() == []
    assert mongo_store.pipelines == []


async def test_autocomplete(client: AsyncClient, mongo_store: FakeStore) -> None:
    note_id = ObjectId()
    mongo_store.aggregate_results = [{"_id": note_id, "title": "Getting Started"}]

    response = await client.get("/search/autocomplete", params={"q": "Get"})

    assert response.json() == [{"id": str(note_id), "title": "Getting Started"}]


async def test_semantic_search_requires_query(client: AsyncClient) -> None:
    response = await client.get("/semantic/search")
    assert response.status_code == 400


async def test_semantic_search(client: AsyncClient, mongo_store: FakeStore) -> None:
    hit = search_hit(score=0.87)
    del hit["highlights"]
    mongo_store.aggregate_results = [hit]

    response = await client.get("/semantic/search", params={"q": "cloud databases"})

    assert response.status_code == 200
    [result] = response.json()
    assert result["title"] == hit["title"]
    assert result["score"] == 0.87


async def test_related_notes_excludes_source(
    client: AsyncClient, mongo_store: FakeStore,
) -> None:
    created = (await client.post(
        "/notes", json={"title": "Source", "markdown": "body"},
    )).json()
    mongo_store.pipelines.clear()

    response = await client.get(f"/semantic/related/{created['id']}")

    assert response.status_code == 200
    [pipeline] = mongo_store.pipelines
    assert pipeline[1] == {"$match": {"_id": {"$ne": ObjectId(created["id"])}}}


async def test_related_notes_unknown_note(client: AsyncClient) -> None:
    response = await client.get(f"/semantic/related/{ObjectId()}")

    assert response.status_code == 200
    assert response.json() == []


async def test_related_notes_invalid_id(client: AsyncClient) -> None:
    response = await client.get("/semantic/related/bogus")
    assert response.status_code == 400
