"""
Tests for the mesh processing endpoints.

These tests use FastAPI's TestClient against the application without
running a real server.  Meshes are posted as flat vertex buffers.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the backend directory to sys.path so we can import the app
sys.path.append(str(Path(__file__).resolve().parents[1]))

from fixturekit.main import app  # type: ignore
from fixturekit.services.pipeline_cache import clear_pipeline_cache  # type: ignore
from meshes import cube_triangles, cube_vertices, flatten  # type: ignore

SLIVER = [(5.0, 5.0, 5.0), (6.0, 5.0, 5.0), (7.0, 5.0, 5.0)]


@pytest.fixture
def client():
    clear_pipeline_cache()
    with TestClient(app) as test_client:
        yield test_client
    clear_pipeline_cache()


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_cube(client: TestClient) -> None:
    response = client.post("/api/mesh/analyze", json={"mesh": {"vertices": cube_vertices()}})
    assert response.status_code == 200
    data = response.json()
    assert data["isManifold"] is True
    assert data["triangleCount"] == 12
    assert data["vertexCount"] == 36
    assert data["issues"] == []
    assert data["bbox"]["size"] == [1.0, 1.0, 1.0]


def test_analyze_rejects_malformed_buffer(client: TestClient) -> None:
    response = client.post("/api/mesh/analyze", json={"mesh": {"vertices": [0.0] * 10}})
    assert response.status_code == 422


def test_repair_endpoint(client: TestClient) -> None:
    vertices = flatten(cube_triangles() + [SLIVER])
    response = client.post("/api/mesh/repair", json={"mesh": {"vertices": vertices}})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["triangleCount"] == 12
    assert data["actions"][0] == "Removed 1 degenerate triangles"
    assert len(data["mesh"]["vertices"]) == 108
    assert len(data["mesh"]["normals"]) == 108


def test_repair_reports_bad_buffer_in_body(client: TestClient) -> None:
    response = client.post("/api/mesh/repair", json={"mesh": {"vertices": [1.0, 2.0]}})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["mesh"] is None
    assert data["error"]


def test_decimate_within_budget(client: TestClient) -> None:
    response = client.post(
        "/api/mesh/decimate",
        json={"mesh": {"vertices": cube_vertices()}, "targetTriangles": 100},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["reductionPercent"] == 0
    assert data["originalTriangles"] == data["finalTriangles"] == 12
    assert data["mesh"]["vertices"] == cube_vertices()


def test_decimate_rejects_negative_target(client: TestClient) -> None:
    response = client.post(
        "/api/mesh/decimate",
        json={"mesh": {"vertices": cube_vertices()}, "targetTriangles": -5},
    )
    assert response.status_code == 422


def test_pipeline_returns_progress_and_uses_cache(client: TestClient) -> None:
    body = {"mesh": {"vertices": flatten(cube_triangles() + [SLIVER])}, "autoRepair": True}
    first = client.post("/api/mesh/pipeline", json=body)
    assert first.status_code == 200
    data = first.json()
    assert data["cached"] is False
    assert data["analysis"]["hasDegenerateFaces"] is True
    assert data["repair"]["success"] is True
    assert data["decimation"] is None
    assert len(data["finalMesh"]["vertices"]) == 108
    stages = [event["stage"] for event in data["progress"]]
    assert stages[0] == "analyzing"
    assert "repairing" in stages
    assert stages[-1] == "complete"

    second = client.post("/api/mesh/pipeline", json=body)
    assert second.status_code == 200
    again = second.json()
    assert again["cached"] is True
    assert again["progress"] == data["progress"]
    assert again["finalMesh"] == data["finalMesh"]


def test_pipeline_options_are_part_of_cache_key(client: TestClient) -> None:
    vertices = flatten(cube_triangles() + [SLIVER])
    first = client.post("/api/mesh/pipeline", json={"mesh": {"vertices": vertices}})
    second = client.post(
        "/api/mesh/pipeline", json={"mesh": {"vertices": vertices}, "autoRepair": False}
    )
    assert first.json()["cached"] is False
    data = second.json()
    assert data["cached"] is False
    assert data["repair"] is None
    assert len(data["finalMesh"]["vertices"]) == 117


def test_pipeline_cache_distinguishes_normals(client: TestClient) -> None:
    vertices = cube_vertices()
    first = client.post(
        "/api/mesh/pipeline", json={"mesh": {"vertices": vertices, "normals": [1.0] * 108}}
    )
    second = client.post(
        "/api/mesh/pipeline", json={"mesh": {"vertices": vertices, "normals": [0.0] * 108}}
    )
    assert first.json()["finalMesh"]["normals"][:3] == [1.0, 1.0, 1.0]
    data = second.json()
    assert data["cached"] is False
    assert data["finalMesh"]["normals"] == [0.0] * 108
