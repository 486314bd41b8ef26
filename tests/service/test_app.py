"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from repograph.analyzers.graph import GraphAnalyzer
from repograph.orchestrator import Orchestrator
from repograph.service import create_app
from tests._fixtures.graph_builder import GraphBuilder
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_endpoint_returns_analysis(client: TestClient) -> None:
    builder = GraphBuilder()
    builder.file("src/index.ts", "run").file("src/util.ts", "pad", "unused", external=["chalk"])
    builder.imports("src/index.ts", "src/util.ts", "pad")

    response = client.post(
        "/analyze",
        json={
            "manifest": {
                "name": "demo",
                "main": "./src/index.ts",
                "dependencies": {"chalk": "^5.0.0", "lodash": "^4.0.0"},
            },
            "graph": builder.snapshot(),
            "root": "/repo",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["package"]["name"] == "demo"
    assert data["insights"]["unusedExports"] == [
        {"file": "src/util.ts", "export": "unused", "type": "function"}
    ]
    assert data["dependencies"]["unused"] == ["lodash"]
    assert data["publicAPI"][0]["entryPoint"] == "src/index.ts"


def test_analyze_endpoint_uses_orchestrator_factory() -> None:
    app = create_app(lambda: Orchestrator(analyzers=[GraphAnalyzer()]))
    client = TestClient(app)

    response = client.post("/analyze", json={"graph": GraphBuilder().file("src/a.ts").snapshot()})

    assert response.status_code == 200
    data = response.json()
    assert "insights" in data
    assert "dependencies" not in data


def test_malformed_graph_is_rejected(client: TestClient) -> None:
    response = client.post("/analyze", json={"graph": {"files": "nope"}})
    assert response.status_code == 422


def test_negative_limit_fails_validation(client: TestClient) -> None:
    response = client.post("/analyze", json={"graph": {"files": []}, "most_imported_limit": -1})
    assert response.status_code == 422


def test_analyze_path_missing_repository(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/analyze/path", json={"path": str(tmp_path / "missing")})
    assert response.status_code == 404


def test_analyze_path_writes_reports(client: TestClient, repo_builder: RepoBuilder) -> None:
    repo_builder.sample()

    response = client.post(
        "/analyze/path",
        json={"path": str(repo_builder.path()), "formats": ["json"]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert len(data["report_paths"]) == 1
    assert data["report_paths"][0].endswith("analysis.json")
    assert data["analysis"]["dependencies"]["unused"] == ["is-even"]
