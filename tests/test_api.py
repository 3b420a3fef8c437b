import pytest
from fastapi.testclient import TestClient

from conftest import MemoryParameterStore, RecordingScheduler
from resumable_batch import main
from resumable_batch.api.deps import get_parameter_store, get_redis, get_scheduler
from resumable_batch.checkpoint.state import CheckpointState, Status
from resumable_batch.config import get_settings
from resumable_batch.security.api_keys import ROLE_OPERATIONS, JobOperation, Role, role_for_key

ADMIN = {"X-API-Key": "admin-key"}
OPERATOR = {"X-API-Key": "operator-key"}


@pytest.fixture
def api(monkeypatch, fake_redis):
    monkeypatch.setenv("ADMIN_API_KEYS", "admin-key")
    monkeypatch.setenv("OPERATOR_API_KEYS", "operator-key, other-key")
    monkeypatch.setattr(main, "configure_logging", lambda *_, **__: None)

    parameters = MemoryParameterStore()
    scheduler = RecordingScheduler()
    app = main.create_app()
    app.dependency_overrides[get_parameter_store] = lambda: parameters
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app) as client:
        yield client, parameters, scheduler


def test_health_is_public(api):
    client, _, _ = api
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_checkpoint_requires_api_key(api):
    client, _, _ = api
    assert client.get("/api/jobs/job-7/checkpoint").status_code == 401
    assert client.get("/api/jobs/job-7/checkpoint", headers={"X-API-Key": "nope"}).status_code == 403


def test_get_checkpoint_returns_persisted_state(api):
    client, parameters, _ = api
    parameters.save(
        "resumable_batch_state:job-7",
        CheckpointState(outer_index=4, outer_offset=4, inner_index=2, status=Status.SUSPENDED).to_json(),
    )

    response = client.get("/api/jobs/job-7/checkpoint", headers=OPERATOR)

    assert response.status_code == 200
    body = response.json()
    assert body["persistence_key"] == "resumable_batch_state:job-7"
    assert body["checkpoint"]["inner_index"] == 2
    assert body["checkpoint"]["status"] == "SUSPENDED"


def test_get_checkpoint_without_snapshot(api):
    client, _, _ = api
    response = client.get("/api/jobs/job-8/checkpoint", headers=OPERATOR)
    assert response.status_code == 200
    assert response.json()["checkpoint"] is None


def test_reset_checkpoint_is_admin_only(api):
    client, parameters, _ = api
    parameters.save("resumable_batch_state:job-7", CheckpointState().to_json())

    assert client.delete("/api/jobs/job-7/checkpoint", headers=OPERATOR).status_code == 403
    assert client.delete("/api/jobs/job-7/checkpoint", headers=ADMIN).status_code == 204
    assert parameters.load("resumable_batch_state:job-7") is None


def test_trigger_run_enqueues_invocation(api):
    client, _, scheduler = api
    response = client.post("/api/jobs/job-7/runs", json={"deployment_id": "nightly"}, headers=OPERATOR)

    assert response.status_code == 202
    assert response.json() == {"job_id": "job-7", "deployment_id": "nightly", "status": "queued"}
    assert scheduler.calls == [("job-7", "nightly", {})]


def test_set_enabled_writes_flag(api, fake_redis):
    client, _, _ = api
    response = client.put("/api/jobs/job-7/enabled", json={"enabled": False}, headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"job_id": "job-7", "enabled": False}
    assert fake_redis.values["resumable_batch:jobs:job-7:enabled"] == b"0"


def test_metrics_endpoint_exposed(api):
    client, _, _ = api
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "resumable_batch_sub_items_processed_total" in response.text


def test_operator_cannot_toggle_enabled(api, fake_redis):
    client, _, _ = api
    response = client.put("/api/jobs/job-7/enabled", json={"enabled": False}, headers=OPERATOR)

    assert response.status_code == 403
    assert "toggle_enabled" in response.json()["detail"]
    assert "resumable_batch:jobs:job-7:enabled" not in fake_redis.values


def test_role_operations():
    assert ROLE_OPERATIONS[Role.OPERATOR] == {JobOperation.READ_CHECKPOINT, JobOperation.TRIGGER_RUN}
    assert ROLE_OPERATIONS[Role.ADMIN] == set(JobOperation)


def test_admin_key_wins_over_operator_key(monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEYS", "shared")
    monkeypatch.setenv("OPERATOR_API_KEYS", "shared,ops")
    settings = get_settings()

    assert role_for_key(settings, "shared") is Role.ADMIN
    assert role_for_key(settings, "ops") is Role.OPERATOR
    assert role_for_key(settings, "unknown") is None


def test_get_checkpoint_with_invalid_snapshot(api):
    client, parameters, _ = api
    parameters.save("resumable_batch_state:job-7", '{"status": "BOGUS", "inner_index": 1}')

    response = client.get("/api/jobs/job-7/checkpoint", headers=OPERATOR)

    assert response.status_code == 500
    assert "BOGUS" in response.json()["detail"]
