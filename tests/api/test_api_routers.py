"""Tests for the HTTP API (levels, sim, solver, progress).

Uses FastAPI TestClient against ``create_app`` with a temp progress file;
no real server needed.
"""
from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lembots.api.main import create_app
from lembots.api.routers import solver_router
from lembots.config import Settings

pytestmark = pytest.mark.unit

CORRIDOR_SOLUTION = {
    "type": "sequence",
    "steps": [{"type": "action", "action": "MOVE_FORWARD"}] * 4,
}
SEALED_LEVEL = {
    "id": "sealed",
    "grid": [[1, 1, 1, 1, 1], [1, 0, 1, 2, 1], [1, 1, 1, 1, 1]],
    "spawner": {"x": 1, "y": 1, "dir": "E"},
    "maxTicks": 30,
}


def _make_app(tmp_path):
    settings = Settings(_env_file=None, progress_path=tmp_path / "progress.json",
                        solver_max_time_ms=60_000)
    return create_app(settings=settings)


@pytest.fixture
def client(tmp_path):
    return TestClient(_make_app(tmp_path))


class TestHealthAndLevels:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "operational"

    def test_list_levels(self, client):
        levels = client.get("/api/levels").json()["levels"]
        ids = [lv["id"] for lv in levels]
        assert "corridor" in ids and "ferry" in ids
        assert all(lv["completed"] is False for lv in levels)

    def test_get_level(self, client):
        resp = client.get("/api/levels/ferry")
        assert resp.status_code == 200
        assert resp.json()["grid"][1][2] == 7

    def test_unknown_level(self, client):
        assert client.get("/api/levels/nope").status_code == 404


class TestSimRouter:
    def test_evaluate_builtin_level(self, client):
        resp = client.post("/api/sim/evaluate", json={"level_id": "corridor", "program": CORRIDOR_SOLUTION})
        assert resp.status_code == 200
        data = resp.json()
        assert data["solved"] is True
        assert data["failure_cause"] is None
        assert data["score"] == 6100

    def test_solving_marks_level_completed(self, client):
        client.post("/api/sim/evaluate", json={"level_id": "corridor", "program": CORRIDOR_SOLUTION})
        assert client.get("/api/progress").json()["completed"] == ["corridor"]

    def test_inline_level_never_marks_completion(self, client):
        trivial = {
            "id": "convoy",
            "grid": [[1, 1, 1], [1, 0, 2], [1, 1, 1]],
            "spawner": {"x": 1, "y": 1, "dir": "E"},
        }
        resp = client.post("/api/sim/evaluate", json={
            "level": trivial,
            "program": {"type": "sequence", "steps": [{"type": "action", "action": "MOVE_FORWARD"}]},
        })
        assert resp.json()["solved"] is True
        assert client.get("/api/progress").json()["completed"] == []

    def test_inline_level_and_failure_cause(self, client):
        resp = client.post("/api/sim/evaluate", json={
            "level": SEALED_LEVEL,
            "program": {"type": "sequence", "steps": [{"type": "action", "action": "MOVE_FORWARD"}]},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["solved"] is False
        assert data["failure_cause"] == "unknown"

    def test_malformed_program_is_422(self, client):
        resp = client.post("/api/sim/evaluate", json={
            "level_id": "corridor",
            "program": {"type": "sequence", "steps": [{"type": "teleport"}]},
        })
        assert resp.status_code == 422
        assert "teleport" in resp.json()["detail"]

    def test_malformed_level_is_422(self, client):
        resp = client.post("/api/sim/evaluate", json={
            "level": {"grid": [[1, 1], [1]], "spawner": {"x": 0, "y": 0}},
            "program": CORRIDOR_SOLUTION,
        })
        assert resp.status_code == 422

    def test_level_required(self, client):
        resp = client.post("/api/sim/evaluate", json={"program": CORRIDOR_SOLUTION})
        assert resp.status_code == 422

    def test_unknown_builtin_is_404(self, client):
        resp = client.post("/api/sim/evaluate", json={"level_id": "missing", "program": CORRIDOR_SOLUTION})
        assert resp.status_code == 404


class TestSolverRouter:
    def test_inline_search(self, client):
        resp = client.post("/api/solver/search", json={"level_id": "corridor"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["solved"] is True
        assert len(data["best_program"]["steps"]) == 4

    def test_bad_action_is_422(self, client):
        resp = client.post("/api/solver/search", json={"level_id": "corridor", "actions": ["JUMP"]})
        assert resp.status_code == 422

    def test_bad_strategy_is_422(self, client):
        resp = client.post("/api/solver/search", json={"level_id": "corridor", "strategy": "genetic"})
        assert resp.status_code == 422

    def test_start_then_status(self, tmp_path):
        app = _make_app(tmp_path)
        client = TestClient(app)
        resp = client.post("/api/solver/start", json={"level_id": "corridor"})
        assert resp.status_code == 200
        job_id = resp.json()["job_id"]
        assert app.state.solver_host.wait(timeout=30)
        status = client.get("/api/solver/status").json()
        assert status["running"] is False
        assert status["job_id"] == job_id
        assert status["result"]["solved"] is True

    def test_concurrent_start_is_409(self, tmp_path):
        app = _make_app(tmp_path)
        client = TestClient(app)
        body = {"level": SEALED_LEVEL, "max_attempts": 10_000_000, "max_depth": 200}
        assert client.post("/api/solver/start", json=body).status_code == 200
        try:
            assert client.post("/api/solver/start", json=body).status_code == 409
        finally:
            resp = client.post("/api/solver/cancel")
            assert resp.json()["status"] == "cancelled"
            app.state.solver_host.wait(timeout=30)

    def test_cancel_when_idle(self, client):
        assert client.post("/api/solver/cancel").json()["status"] == "idle"

    def test_event_stream(self, tmp_path):
        app = _make_app(tmp_path)
        client = TestClient(app)
        with client.websocket_connect("/api/solver/events") as ws:
            client.post("/api/solver/start", json={"level_id": "corridor"})
            types = []
            while True:
                msg = ws.receive_json()
                types.append(msg["type"])
                if msg["type"] == "solver_result":
                    break
        assert types[-1] == "solver_result"
        assert msg["data"]["solved"] is True

    def test_503_without_host(self):
        app = FastAPI()
        app.include_router(solver_router)
        resp = TestClient(app).get("/api/solver/status")
        assert resp.status_code == 503


class TestProgressRouter:
    def test_mark_and_list(self, client):
        resp = client.post("/api/progress", json={"level_id": "corner"})
        assert resp.status_code == 200
        assert resp.json()["added"] is True
        assert client.post("/api/progress", json={"level_id": "corner"}).json()["added"] is False
        assert client.get("/api/progress").json() == {"completed": ["corner"]}
        levels = {lv["id"]: lv for lv in client.get("/api/levels").json()["levels"]}
        assert levels["corner"]["completed"] is True

    def test_empty_id_is_422(self, client):
        assert client.post("/api/progress", json={"level_id": ""}).status_code == 422

    def test_reset(self, client):
        client.post("/api/progress", json={"level_id": "corner"})
        assert client.delete("/api/progress").json() == {"completed": []}
        assert client.get("/api/progress").json() == {"completed": []}
