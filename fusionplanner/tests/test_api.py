# File: fusionplanner/tests/test_api.py
# Version: v0.1.0
"""
HTTP API: health, optimize, domestication, parameters and error mapping.
"""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from fusionplanner.app.config import config_fusion
from fusionplanner.app.main import app

client = TestClient(app)

SMALL_PARAMS = {
    "effectiveFragments": 3,
    "manualCandidates": [100, 150, 200, 250, 300],
    "constraints": {
        "minFragmentSize": 80,
        "maxFragmentSize": 250,
        "minDistanceFromEnds": 20,
        "minSetFidelity": 0.5,
    },
}


@pytest.fixture
def params_file(tmp_path, monkeypatch):
    path = tmp_path / "fusion_params.json"
    monkeypatch.setattr(config_fusion, "CURRENT_FILE", path)
    return path


def test_health():
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_health_async():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/healthz")
    assert r.status_code == 200


def test_optimize_small_design(random_sequence):
    seq = random_sequence(400, seed=71)
    r = client.post("/api/v1/fusion/optimize", json={"sequence": seq, "parameters": SMALL_PARAMS})
    assert r.status_code == 200
    data = r.json()
    assert data["algorithm"] == "branch_bound"
    assert data["junctionCount"] == 2
    assert data["candidatesScanned"] == 5
    assert set(data["solution"]["junctions"]) <= {100, 150, 200, 250, 300}
    assert "summary" in data["failurePrediction"]


def test_optimize_rejects_bad_sequence():
    r = client.post("/api/v1/fusion/optimize", json={"sequence": "ACGTXXACGT" * 10, "parameters": SMALL_PARAMS})
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "sequence"


def test_optimize_rejects_unknown_enzyme(random_sequence):
    seq = random_sequence(400, seed=72)
    r = client.post("/api/v1/fusion/optimize", json={"sequence": seq, "enzyme": "EcoRI", "parameters": SMALL_PARAMS})
    assert r.status_code == 400


def test_optimize_incompatible_algorithm(random_sequence):
    seq = random_sequence(400, seed=73)
    params = {**SMALL_PARAMS, "effectiveFragments": 12, "algorithm": "branch_bound"}
    r = client.post("/api/v1/fusion/optimize", json={"sequence": seq, "parameters": params})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["maxJunctions"] == 6
    assert detail["junctions"] == 11


def test_optimize_validates_parameters(random_sequence):
    seq = random_sequence(400, seed=74)
    params = {**SMALL_PARAMS, "weights": [0, 0, 0, 0, 0]}
    r = client.post("/api/v1/fusion/optimize", json={"sequence": seq, "parameters": params})
    assert r.status_code == 422


def test_domestication_endpoint(random_sequence):
    base = random_sequence(400, seed=75)
    seq = base[:200] + "GGTCTC" + base[206:]
    r = client.post("/api/v1/fusion/domestication", json={"sequence": seq, "enzyme": "BsaI"})
    assert r.status_code == 200
    data = r.json()
    assert data["status"] in ("auto-fixable", "needs-attention")
    assert [s["position"] for s in data["sites"]] == [200]


def test_parameters_roundtrip(params_file):
    r = client.get("/api/v1/fusion/parameters")
    assert r.status_code == 200
    assert params_file.exists()
    current = r.json()

    current["effectiveFragments"] = 6
    current["constraints"]["circular"] = True
    r2 = client.put("/api/v1/fusion/parameters", json=current)
    assert r2.status_code == 200

    r3 = client.get("/api/v1/fusion/parameters")
    assert r3.json()["effectiveFragments"] == 6
    assert r3.json()["constraints"]["circular"] is True


def test_parameters_put_rejects_invalid(params_file):
    bad = {"constraints": {"minFragmentSize": 900, "maxFragmentSize": 100}}
    r = client.put("/api/v1/fusion/parameters", json=bad)
    assert r.status_code == 422
    assert not params_file.exists()
