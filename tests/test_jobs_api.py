# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-14
# Description: test_jobs_api.py
# -----------------------------------------------------------------------------
import json
import logging

import pytest
from starlette.testclient import TestClient

import settings
from api.dependencies import get_health_service, get_job_service
from api.main import app
from health.EmbeddingHealth import EmbeddingHealth
from services.KBEmbedJobService import KBEmbedJobService
from services.KBHealthService import KBHealthService

logger = logging.getLogger(__name__)

KB_LINES = [
    {"id": 1, "question": "How do I reset?", "answer": "Hold the button."},
    {"id": 2, "text": "Already done", "embedding": [0.1, 0.2]},
    {"id": 3, "title": "no text here"},
    {"id": 4, "dense_context": "Dense context wins."},
]


def _payload() -> bytes:
    return ("\n".join(json.dumps(r) for r in KB_LINES) + "\nnot json\n").encode("utf-8")


@pytest.fixture
def job_service(stub_client, tmp_path) -> KBEmbedJobService:
    return KBEmbedJobService(client=stub_client, batch_size=2, output_dir=tmp_path / "outputs")


@pytest.fixture
def client(job_service, stub_client, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "WORK_DIR", str(tmp_path))
    monkeypatch.setattr(settings, "DELETE_UPLOADS_ON_REMOVE", True)
    app.dependency_overrides[get_job_service] = lambda: job_service
    app.dependency_overrides[get_health_service] = lambda: KBHealthService(EmbeddingHealth(stub_client))
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, name="kb.jsonl", data=None):
    return client.post("/jobs/upload", files=[("files", (name, data or _payload(), "application/jsonl"))])


def test_health(client):
    resp = client.get("/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_deep_health_probes_provider(client):
    resp = client.get("/health/deep")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "ok"
    assert body["results"] == {"embedding_health": True}
    assert body["embedding"]["provider"] == "stub"
    assert body["embedding"]["dimension"] == 3


def test_upload_run_download_delete(client, tmp_path):
    resp = _upload(client)
    assert resp.status_code == 200, resp.text
    uploaded = resp.json()
    assert uploaded["queued"] == 1
    job = uploaded["jobs"][0]
    assert job["name"] == "kb.jsonl"
    assert job["status"] == "pending"
    job_id = job["job_id"]

    # not ready yet
    assert client.get(f"/jobs/{job_id}/download").status_code == 409

    resp = client.post("/jobs/run")
    assert resp.status_code == 200
    assert resp.json() == {"started": True, "queued": 1}

    # background task has finished by the time TestClient returns
    job = client.get(f"/jobs/{job_id}").json()["job"]
    logger.info("job after run: %s", job)
    assert job["status"] == "done"
    assert job["progress"] == 100
    assert job["embedded_count"] == 2
    assert job["already_embedded_count"] == 1
    assert job["skipped_count"] == 1
    assert job["error_count"] == 1
    assert job["output_name"] == "kb.embedded.jsonl"

    resp = client.get(f"/jobs/{job_id}/download")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/jsonl")
    assert "kb.embedded.jsonl" in resp.headers["content-disposition"]
    lines = resp.text.split("\n")
    assert lines[-1] == ""
    assert [json.loads(line)["id"] for line in lines[:4]] == [1, 2, 3, 4]
    assert lines[4] == "not json"

    listing = client.get("/jobs").json()
    assert listing["running"] is False
    assert listing["stats"]["completed_files"] == 1

    assert client.delete(f"/jobs/{job_id}").json() == {"job_id": job_id, "deleted": True}
    assert client.get(f"/jobs/{job_id}").status_code == 404
    assert list((tmp_path / "uploads").iterdir()) == []


def test_run_with_nothing_queued(client):
    resp = client.post("/jobs/run")
    assert resp.status_code == 200
    assert resp.json() == {"started": False, "queued": 0}


def test_failed_job_reports_error(client, stub_provider):
    stub_provider.fail_on_call = 1
    job_id = _upload(client).json()["jobs"][0]["job_id"]

    client.post("/jobs/run")

    job = client.get(f"/jobs/{job_id}").json()["job"]
    assert job["status"] == "error"
    assert "API Error 500" in job["error"]
    assert job["output_name"] is None
    assert client.get(f"/jobs/{job_id}/download").status_code == 409


def test_unknown_job(client):
    assert client.get("/jobs/missing").status_code == 404
    assert client.delete("/jobs/missing").status_code == 404


def test_mutations_rejected_while_running(client, job_service):
    job_id = _upload(client).json()["jobs"][0]["job_id"]
    job_service._running = True
    try:
        assert client.post("/jobs/run").status_code == 409
        assert client.delete(f"/jobs/{job_id}").status_code == 409
        assert client.delete("/jobs").status_code == 409
    finally:
        job_service._running = False

    assert client.delete("/jobs").json() == {"deleted": 1}


def test_uploads_with_same_name_get_separate_outputs(client):
    _upload(client)
    _upload(client)
    client.post("/jobs/run")

    jobs = client.get("/jobs").json()["jobs"]
    assert len(jobs) == 2
    assert all(j["status"] == "done" for j in jobs)
