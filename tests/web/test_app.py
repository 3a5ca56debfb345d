from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mindmapsys.artifacts import ConversionPipeline
from mindmapsys.config import AccessConfig, AppConfig, GenerationConfig
from mindmapsys.errors import StorageWriteFailed
from mindmapsys.formats import ArtifactKind
from mindmapsys.gate import AccessGate
from mindmapsys.storage import InMemoryArtifactStore, LocalArtifactStore
from mindmapsys.sweeper import SweeperService
from mindmapsys.web import create_app

AUTH = {"X-API-Key": "test-key"}
MARKDOWN = "# Project\n## Goals\n### Ship\n## Risks\n"


class PreviewFailingStore(InMemoryArtifactStore):
    def put(self, artifact_id: str, kind: ArtifactKind, data: bytes) -> None:
        if kind is ArtifactKind.PREVIEW:
            raise StorageWriteFailed("disk full")
        super().put(artifact_id, kind, data)


def _client(store, *, rate_limit: int = 100, max_upload_size: int = 1024 * 1024) -> TestClient:
    config = AppConfig(
        access=AccessConfig(api_keys=["test-key"], rate_limit=rate_limit),
        generation=GenerationConfig(max_upload_size=max_upload_size),
    )
    pipeline = ConversionPipeline(store, generation=config.generation)
    sweeper = SweeperService(store, config.sweeper)
    pipeline.add_post_generation_hook(sweeper.request_sweep)
    return TestClient(create_app(pipeline, AccessGate(config.access), sweeper, config))


@pytest.fixture()
def store(tmp_path: Path) -> LocalArtifactStore:
    local = LocalArtifactStore(tmp_path / "output")
    local.ensure_directory()
    return local


@pytest.fixture()
def client(store: LocalArtifactStore) -> TestClient:
    return _client(store)


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["time"].endswith("Z")


def test_health_check_ignores_public_path_overrides(store: LocalArtifactStore) -> None:
    config = AppConfig(access=AccessConfig(api_keys=["test-key"], public_paths=["/docs"]))
    app = create_app(ConversionPipeline(store), AccessGate(config.access), config=config)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 401


def test_convert_requires_api_key(client: TestClient) -> None:
    response = client.post("/convert", json={"markdown": MARKDOWN})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credential"

    response = client.post("/convert", json={"markdown": MARKDOWN}, headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


def test_convert_and_fetch_every_format(client: TestClient, store: LocalArtifactStore) -> None:
    response = client.post("/convert", json={"markdown": MARKDOWN, "title": "Plan"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["title"] == "Plan"
    assert body["formats"] == {"interactive": True, "preview": True, "outline": True}
    assert body["errors"] == {}
    artifact_id = body["id"]
    assert body["links"]["interactive"] == f"/artifact/{artifact_id}.html"
    assert body["urls"]["outline"].endswith(f"/artifact/{artifact_id}.json")

    html = client.get(body["links"]["interactive"])
    assert html.status_code == 200
    assert html.headers["content-type"].startswith("text/html")

    svg = client.get(body["links"]["preview"])
    assert svg.headers["content-type"].startswith("image/svg+xml")
    assert svg.content == store.get(artifact_id, ArtifactKind.PREVIEW)

    outline = client.get(body["links"]["outline"])
    assert outline.headers["content-type"].startswith("application/json")
    assert "attachment" in outline.headers["content-disposition"]
    assert outline.json()["children"][0]["title"] == "Project"


def test_api_key_in_query_and_legacy_routes(client: TestClient) -> None:
    response = client.post("/api/v1/generate?apiKey=test-key", json={"markdown": MARKDOWN})
    assert response.status_code == 200
    artifact_id = response.json()["id"]

    assert client.get(f"/output/{artifact_id}.svg").status_code == 200
    assert client.get(f"/artifact/{artifact_id}.preview").status_code == 200
    download = client.get(f"/api/file/{artifact_id}.json")
    assert download.status_code == 200
    assert download.headers["content-disposition"] == f'attachment; filename="{artifact_id}.json"'


def test_rate_limit_returns_429(store: LocalArtifactStore) -> None:
    client = _client(store, rate_limit=2)
    statuses = [client.post("/convert", json={"markdown": "# A"}, headers=AUTH).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    assert client.get("/health").status_code == 200


@pytest.mark.parametrize(
    "payload",
    [{}, {"markdown": ""}, {"markdown": 5}, {"title": "only title"}, ["# A"]],
)
def test_convert_rejects_invalid_input(client: TestClient, payload: object) -> None:
    response = client.post("/convert", json=payload, headers=AUTH)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_convert_rejects_malformed_json(client: TestClient) -> None:
    response = client.post("/convert", content=b"{not json", headers={**AUTH, "Content-Type": "application/json"})

    assert response.status_code == 400


def test_convert_rejects_oversized_markdown(client: TestClient) -> None:
    response = client.post("/convert", json={"markdown": "# A\n" + "x" * 500_001}, headers=AUTH)

    assert response.status_code == 413
    assert response.json()["error"] == "input_too_large"


def test_upload_markdown_file(client: TestClient) -> None:
    response = client.post(
        "/upload",
        files={"file": ("notes.md", MARKDOWN.encode("utf-8"), "text/markdown")},
        headers=AUTH,
    )

    assert response.status_code == 200
    assert response.json()["title"] == "notes.md"


def test_upload_validation_errors(store: LocalArtifactStore) -> None:
    client = _client(store, max_upload_size=16)

    wrong_type = client.post("/upload", files={"file": ("image.png", b"# A", "image/png")}, headers=AUTH)
    assert wrong_type.status_code == 400

    too_big = client.post("/upload", files={"file": ("big.md", b"# " + b"a" * 64, "text/markdown")}, headers=AUTH)
    assert too_big.status_code == 413

    missing = client.post("/upload", headers=AUTH)
    assert missing.status_code == 400


def test_missing_artifacts_return_404(client: TestClient) -> None:
    assert client.get("/artifact/unknown-id.html").status_code == 404
    assert client.get("/artifact/unknown-id.pdf").status_code == 404
    assert client.get("/artifact/no-extension").status_code == 404


@pytest.mark.parametrize(
    "path",
    [
        "/artifact/..%2F..%2Fetc%2Fpasswd.json",
        "/artifact/%2E%2E%5Csecret.html",
        "/artifact/bad%20id.svg",
    ],
)
def test_traversal_attempts_are_rejected(client: TestClient, path: str) -> None:
    response = client.get(path)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_id"


def test_partial_failure_reports_per_format() -> None:
    client = _client(PreviewFailingStore())
    response = client.post("/convert", json={"markdown": MARKDOWN}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["formats"]["preview"] is False
    assert body["errors"] == {"preview": "storage_write_failed"}
    assert body["links"]["preview"] is None
    assert client.get(body["links"]["interactive"]).status_code == 200
    assert client.get(f"/artifact/{body['id']}.svg").status_code == 404


def test_unexpected_errors_are_redacted(store: LocalArtifactStore, monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(store)

    def explode(*args, **kwargs):
        raise RuntimeError("/secret/path leaked")

    monkeypatch.setattr(LocalArtifactStore, "get", explode)
    response = client.get("/artifact/some-id.html")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "internal_error", "message": "Internal server error."}


def test_sweeper_endpoints(client: TestClient) -> None:
    assert client.get("/sweeper").status_code == 401

    status = client.get("/sweeper", headers=AUTH)
    assert status.status_code == 200
    assert status.json()["enabled"] is True

    run = client.post("/sweeper/run", headers=AUTH)
    assert run.status_code == 200
    assert run.json()["status"] == "completed"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert metrics.headers["content-type"].startswith("text/plain")
    assert "sweeper_runs_total 1" in metrics.text
    assert "access_tracked_credentials 1" in metrics.text
