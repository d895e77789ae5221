"""Tests for the intake API server."""

import json
import pytest
from unittest.mock import Mock

from fastapi.testclient import TestClient

from src.intake.api_server import create_app
from src.intake.process import IntakeProcess

from conftest import wait_for


@pytest.fixture
def process(fast_config):
    proc = IntakeProcess(config=fast_config, on_enqueued=Mock())
    yield proc
    proc.close()


@pytest.fixture
def client(process):
    with TestClient(create_app(process)) as c:
        yield c


class TestSyncEndpoint:
    """POST /api/sync and DELETE /api/sync."""

    def test_missing_folder_path(self, client):
        resp = client.post("/api/sync", json={})

        assert resp.status_code == 400
        assert resp.json() == {"message": "Error: Missing folderPath"}

    def test_invalid_body(self, client):
        resp = client.post("/api/sync", content=b"not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_nonexistent_folder(self, client, tmp_path):
        resp = client.post("/api/sync", json={"folderPath": str(tmp_path / "nope")})

        assert resp.status_code == 500
        assert resp.json()["message"].startswith("Error: ")

    def test_empty_folder(self, client, tmp_path):
        resp = client.post("/api/sync", json={"folderPath": str(tmp_path)})

        assert resp.status_code == 200
        assert resp.json() == {"message": "Folder is empty"}

    def test_start_watching(self, client, process, tmp_path, make_pdf):
        make_pdf(tmp_path / "a.pdf")

        resp = client.post("/api/sync", json={"folderPath": str(tmp_path)})

        assert resp.status_code == 200
        assert resp.json() == {"message": f"Started watching folder: {tmp_path}"}
        assert process.is_watching(tmp_path)

    def test_unwatch(self, client, process, tmp_path):
        (tmp_path / "notes.txt").write_text("x")
        client.post("/api/sync", json={"folderPath": str(tmp_path)})

        resp = client.delete("/api/sync", params={"folderPath": str(tmp_path)})

        assert resp.status_code == 200
        assert resp.json() == {"removed": True}
        assert not process.is_watching(tmp_path)

    def test_unwatch_missing_param(self, client):
        assert client.delete("/api/sync").status_code == 400


class TestStatusEndpoints:
    """GET /api/queue, /api/results and /api/health."""

    def test_health(self, client):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["watching"] == []
        assert data["queueLength"] == 0

    def test_queue_and_results(self, client, process, tmp_path, make_pdf):
        make_pdf(tmp_path / "a.pdf")
        (tmp_path / "c.pdf").write_text("not a pdf")

        client.post("/api/sync", json={"folderPath": str(tmp_path)})
        assert wait_for(lambda: process.queue.size() == 1 and len(process.results) == 1)

        queue = client.get("/api/queue").json()
        assert queue["queueLength"] == 1
        assert queue["items"] == [str(tmp_path.resolve() / "a.pdf")]

        resumes = client.get("/api/results").json()["resumes"]
        assert len(resumes) == 1
        assert resumes[0]["filename"] == "c.pdf"
        assert resumes[0]["status"] == "invalid-format"


class TestObserverSocket:
    """WebSocket /ws."""

    def test_receives_broadcast(self, client, process):
        with client.websocket_connect("/ws") as ws:
            assert wait_for(lambda: len(process.broadcaster) == 1)

            process.broadcaster.broadcast({"message": "Folder is empty"})

            assert json.loads(ws.receive_text()) == {"message": "Folder is empty"}

    def test_receives_sync_messages(self, client, tmp_path):
        with client.websocket_connect("/ws") as ws:
            client.post("/api/sync", json={"folderPath": str(tmp_path)})

            assert json.loads(ws.receive_text()) == {"message": "Folder is empty"}

    def test_observer_removed_on_disconnect(self, client, process):
        with client.websocket_connect("/ws"):
            assert wait_for(lambda: len(process.broadcaster) == 1)

        assert wait_for(lambda: len(process.broadcaster) == 0)
