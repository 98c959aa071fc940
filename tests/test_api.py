import inspect
from pathlib import Path

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")
from fastapi.testclient import TestClient  # noqa: E402

from poke_team_builder import api  # noqa: E402
from poke_team_builder.config import CacheSettings  # noqa: E402
from poke_team_builder.service import PokedexService  # noqa: E402

from conftest import PNG_BYTES, make_species  # noqa: E402


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    service = PokedexService(CacheSettings(cache_dir=tmp_path / "cache", sync_delay=0))
    service.store.ensure_layout()
    for species in (
        make_species(4, "charmander", types=["fire"], generation=1),
        make_species(7, "squirtle", types=["water"], generation=1),
    ):
        service.store.put(species)
        service.store.put_sprite(species, PNG_BYTES)
    return TestClient(api.create_app(service))


def test_get_pokemon_by_name_and_id(client):
    response = client.get("/pokemon/Charmander")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 4
    assert body["favorite"] is False
    assert response.headers["X-Trace-Id"]
    assert response.headers["X-Content-Type-Options"] == "nosniff"

    assert client.get("/pokemon/7").json()["name"] == "squirtle"


def test_missing_pokemon_returns_structured_error(client):
    response = client.get("/pokemon/missingno")
    assert response.status_code == 404
    body = response.json()["error"]
    assert body["category"] == "not_found"
    assert body["trace_id"] == response.headers["X-Trace-Id"]


def test_sprite_endpoint(client):
    response = client.get("/pokemon/squirtle/sprite")
    assert response.status_code == 200
    assert response.content == PNG_BYTES
    assert client.get("/pokemon/squirtle/sprite", params={"shiny": True}).status_code == 404


def test_index_and_favorites(client):
    assert [entry["id"] for entry in client.get("/index").json()] == [4, 7]
    assert [entry["name"] for entry in client.get("/index", params={"type": "water"}).json()] == ["squirtle"]
    assert [entry["name"] for entry in client.get("/index", params={"search": "char"}).json()] == ["charmander"]
    assert client.delete("/index").json() == {"invalidated": True}

    assert client.post("/favorites/Squirtle").json() == {"name": "squirtle", "favorite": True}
    assert client.get("/pokemon/squirtle").json()["favorite"] is True


def test_team_summary(client):
    response = client.post("/teams/summary", json={"members": ["charmander", "squirtle"]})
    assert response.status_code == 200
    body = response.json()
    assert body["weaknesses"] == ["Water (2x)", "Electric (2x)"]
    assert 0 <= body["total_score"] <= 1000

    empty = client.post("/teams/summary", json={"members": []})
    assert empty.status_code == 400
    assert empty.json()["error"]["category"] == "input_error"

    too_many = client.post("/teams/summary", json={"members": ["charmander"] * 7})
    assert too_many.status_code == 400


def test_health_and_metrics(client):
    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert health["components"]["caches"]["sync_complete"] is False
    assert health["components"]["caches"]["record_count"] == 2
    assert client.get("/sync").json() == {"complete": False}

    client.post("/teams/summary", json={"members": ["charmander"]})
    metrics_text = client.get("/metrics").text
    assert "poke_team_builder_team_scores_total" in metrics_text


def test_cache_reading_endpoints_run_in_the_threadpool(client):
    endpoints = {route.path: route.endpoint for route in client.app.routes if hasattr(route, "endpoint")}
    for path in ("/health", "/pokemon/{key}", "/index", "/teams/summary"):
        assert not inspect.iscoroutinefunction(endpoints[path]), path
