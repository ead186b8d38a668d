"""
HTTP API tests using FastAPI's TestClient.
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from fetchmoji.api import main
from fetchmoji.api.main import app, get_artifact, get_store, is_protected_path
from fetchmoji.core import config
from fetchmoji.core.errors import StoreInitError
from fetchmoji.vector.embeddings import DeterministicHashEmbedding
from fetchmoji.vector.index import SimpleInMemoryVectorStore
from fetchmoji.vector.types import EmbeddingRow

ALLOWED = "http://localhost:4321"
DISALLOWED = "https://evil.example"


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def artifacts_dir(tmp_path, monkeypatch):
    (tmp_path / "embeddings.bin").write_bytes(b"EMBD" + b"\x00" * 12)
    (tmp_path / "emoji-meta.json").write_text("[]", encoding="utf-8")
    monkeypatch.setattr(config, "ARTIFACTS_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def emoji_store():
    store = SimpleInMemoryVectorStore(dimension=1024, embedder=DeterministicHashEmbedding(dimension=1024))
    store.insert_embeddings([
        EmbeddingRow("🍕", "🍕 pizza food slice"),
        EmbeddingRow("📣", "📣 megaphone shout announce"),
        EmbeddingRow("🚀", "🚀 rocket launch space"),
    ])
    return store


def test_protected_paths():
    assert is_protected_path("/artifacts/embeddings.bin")
    assert is_protected_path("/artifacts/embeddings.bin.gz")
    assert is_protected_path("/artifacts/model.tar")
    assert not is_protected_path("/artifacts/emoji-meta.json")


def test_preflight_from_allowed_origin(client):
    response = client.options(
        "/artifacts/embeddings.bin",
        headers={
            "Origin": ALLOWED,
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "range",
        },
    )

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == ALLOWED
    assert "GET" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-headers"] == "range"
    assert response.headers["access-control-max-age"] == "86400"
    assert "Origin" in response.headers["vary"]


def test_preflight_from_other_origin(client):
    response = client.options(
        "/artifacts/embeddings.bin",
        headers={"Origin": DISALLOWED, "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 204
    assert "access-control-allow-origin" not in response.headers


def test_options_without_request_method(client):
    response = client.options("/artifacts/embeddings.bin", headers={"Origin": ALLOWED})

    assert response.status_code == 204
    assert "access-control-allow-origin" not in response.headers
    assert "access-control-allow-methods" not in response.headers


def test_artifact_from_allowed_origin(client, artifacts_dir):
    response = client.get("/artifacts/embeddings.bin", headers={"Origin": ALLOWED})

    assert response.status_code == 200
    assert response.content == (artifacts_dir / "embeddings.bin").read_bytes()
    assert response.headers["access-control-allow-origin"] == ALLOWED
    assert "Origin" in response.headers["vary"]


def test_artifact_from_other_origin(client, artifacts_dir):
    response = client.get("/artifacts/embeddings.bin", headers={"Origin": DISALLOWED})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_unprotected_artifact_has_no_cors(client, artifacts_dir):
    response = client.get("/artifacts/emoji-meta.json", headers={"Origin": ALLOWED})

    assert response.status_code == 200
    assert response.json() == []
    assert "access-control-allow-origin" not in response.headers


def test_missing_artifact(client, artifacts_dir):
    assert client.get("/artifacts/missing.bin").status_code == 404


def test_artifact_outside_directory(artifacts_dir):
    (artifacts_dir.parent / "secret.txt").write_text("secret", encoding="utf-8")

    with pytest.raises(HTTPException) as exc_info:
        get_artifact("../secret.txt")

    assert exc_info.value.status_code == 404


def test_search(client, emoji_store):
    app.dependency_overrides[get_store] = lambda: emoji_store

    response = client.get("/search", params={"q": "shout", "threshold": 0.1, "limit": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "shout"
    assert data["results"][0]["emoji"] == "📣"
    assert data["results"][0]["rank"] == 1
    assert data["results"][0]["distance"] < -0.1


def test_search_blank_query(client, emoji_store):
    app.dependency_overrides[get_store] = lambda: emoji_store

    assert client.get("/search", params={"q": "   "}).status_code == 400


def test_search_rejects_bad_limit(client, emoji_store):
    app.dependency_overrides[get_store] = lambda: emoji_store

    assert client.get("/search", params={"q": "pizza", "limit": 0}).status_code == 422


def test_search_without_embedder(client):
    app.dependency_overrides[get_store] = lambda: SimpleInMemoryVectorStore(dimension=4)

    response = client.get("/search", params={"q": "pizza"})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_search_store_unavailable(client):
    def broken_store():
        raise StoreInitError("no index")

    app.dependency_overrides[get_store] = broken_store

    response = client.get("/search", params={"q": "pizza"})

    assert response.status_code == 503
    assert response.json() == {"error": "store_unavailable", "message": "no index"}


def test_health_before_load(client, monkeypatch):
    monkeypatch.setattr(main, "_store", None)

    data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["version"] == config.VERSION
    assert data["db_ready"] is False
    assert data["row_count"] == 0


def test_health_after_load(client, monkeypatch, emoji_store):
    monkeypatch.setattr(main, "_store", emoji_store)

    data = client.get("/health").json()

    assert data["db_ready"] is True
    assert data["row_count"] == 3
