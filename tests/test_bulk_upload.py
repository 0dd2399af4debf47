from datetime import datetime, timedelta

import pytest

from roadside.domain.bulk_upload import service as bulk_upload_service
from roadside.domain.bulk_upload import tasks
from roadside.job_tracker import JobTracker, index_key, record_key, ttl_info
from roadside.models import Mechanic, Policy
from roadside.queue import BULK_UPLOAD_MECHANICS, BULK_UPLOAD_POLICIES, TTL_CONFIG


@pytest.fixture
def task_sessions(monkeypatch, session_factory):
    monkeypatch.setattr(tasks, "SessionLocal", session_factory)


@pytest.fixture(autouse=True)
def arq_statuses(monkeypatch):
    statuses = {}

    async def fake_arq_job_status(pool, job_id):
        return statuses.get(job_id)

    monkeypatch.setattr(bulk_upload_service, "arq_job_status", fake_arq_job_status)
    return statuses


def test_upload_requires_rows(client, login, owner, organization):
    login(owner)

    assert client.post("/api/v1/bulk-upload/policies", json={"policies": []}).status_code == 400
    assert client.post("/api/v1/bulk-upload/policies", json=["not a row"]).status_code == 400


def test_upload_requires_organization(client, login, make_user):
    login(make_user())

    response = client.post("/api/v1/bulk-upload/policies", json=[{"policy_number": "A"}])

    assert response.status_code == 403


def test_policy_upload_is_queued_and_tracked(client, login, owner, organization, fake_redis):
    login(owner)

    response = client.post("/api/v1/bulk-upload/policies", json={"policies": [{"policy_number": "A"}] * 150})

    assert response.status_code == 202
    data = response.json()["data"]
    assert data["totalRecords"] == 150
    assert data["estimatedProcessingTime"] == "2 minutes"
    assert data["statusCheckUrl"] == f"/api/v1/jobs/{BULK_UPLOAD_POLICIES}/{data['jobId']}/status"

    [job] = fake_redis.jobs_for("bulk_upload_policies_task")
    assert job["job_id"] == data["jobId"]
    assert job["args"][1:] == (owner.id, organization.id)

    status = client.get(data["statusCheckUrl"]).json()
    assert status["status"] == "waiting"
    assert status["metadata"]["totalRecords"] == 150
    assert status["ttl"]["isExpired"] is False


def test_job_status_hidden_from_other_organizations(client, login, owner, organization, make_user, make_organization):
    login(owner)
    job_id = client.post("/api/v1/bulk-upload/mechanics", json={"mechanics": [{"firstName": "A"}]}).json()["data"]["jobId"]

    stranger = make_user()
    make_organization(owner=stranger, company_name="Elsewhere")
    login(stranger)

    assert client.get(f"/api/v1/jobs/{BULK_UPLOAD_MECHANICS}/{job_id}/status").status_code == 403
    assert client.get("/api/v1/jobs/not-a-queue/x/status").status_code == 400
    assert client.get(f"/api/v1/jobs/{BULK_UPLOAD_MECHANICS}/missing/status").status_code == 404


def test_untracked_job_falls_back_to_arq(client, login, owner, organization, arq_statuses):
    arq_statuses["arq-only"] = "active"
    login(owner)

    status = client.get(f"/api/v1/jobs/{BULK_UPLOAD_POLICIES}/arq-only/status").json()

    assert status["status"] == "active"
    assert status["result"] is None
    assert status["ttl"]["isExpired"] is True


async def test_policy_task_completes_and_schedules_cleanup(db, organization, owner, fake_redis, task_sessions):
    tracker = JobTracker(fake_redis)
    await tracker.create(BULK_UPLOAD_POLICIES, "job-1", {"organizationId": organization.id})

    ctx = {"redis": fake_redis, "job_id": "job-1", "job_try": 1}
    result = await tasks.bulk_upload_policies_task(ctx, [{"policy_number": "X-1"}], owner.id, organization.id)

    assert result["uploaded"] == 1
    assert result["cleanupDelay"] == TTL_CONFIG["COMPLETED_JOB_CLEANUP_DELAY"]
    record = await tracker.get(BULK_UPLOAD_POLICIES, "job-1")
    assert record["status"] == "completed"
    assert record["progress"] == 100
    assert db.query(Policy).filter(Policy.policy_number == "X-1").count() == 1

    [cleanup] = fake_redis.jobs_for("cleanup_job_record_task")
    assert cleanup["args"] == (BULK_UPLOAD_POLICIES, "job-1")

    removed = await tasks.cleanup_job_record_task(ctx, BULK_UPLOAD_POLICIES, "job-1")
    assert removed == {"removed": True}
    assert await tracker.get(BULK_UPLOAD_POLICIES, "job-1") is None


async def test_mechanic_task_failure_is_recorded_and_raised(db, owner, fake_redis, task_sessions):
    tracker = JobTracker(fake_redis)
    await tracker.create(BULK_UPLOAD_MECHANICS, "job-2")

    ctx = {"redis": fake_redis, "job_id": "job-2"}
    with pytest.raises(ValueError):
        await tasks.bulk_upload_mechanics_task(ctx, [{"firstName": "A"}], "client", owner.id, 999)

    record = await tracker.get(BULK_UPLOAD_MECHANICS, "job-2")
    assert record["status"] == "failed"
    assert record["error"] == "Organization not found"
    assert await fake_redis.ttl(record_key(BULK_UPLOAD_MECHANICS, "job-2")) > TTL_CONFIG["JOB_DATA_TTL"]
    assert db.query(Mechanic).count() == 0


async def test_tracker_stats_and_cleanup(fake_redis):
    tracker = JobTracker(fake_redis)
    await tracker.create(BULK_UPLOAD_POLICIES, "done")
    await tracker.create(BULK_UPLOAD_POLICIES, "waiting")
    await tracker.mark_completed(BULK_UPLOAD_POLICIES, "done", {"ok": True})
    await fake_redis.zadd(index_key(BULK_UPLOAD_POLICIES), {"ghost": 1})

    stats = await tracker.stats(BULK_UPLOAD_POLICIES)
    assert stats["completed"] == 1
    assert stats["waiting"] == 1
    assert stats["total"] == 2

    later = datetime.utcnow() + timedelta(minutes=5)
    removed = await tracker.cleanup(BULK_UPLOAD_POLICIES, now=later)
    assert removed == {"completed": 1, "failed": 0, "expired": 1}
    assert await fake_redis.zrange(index_key(BULK_UPLOAD_POLICIES), 0, -1) == ["waiting"]


def test_ttl_info():
    created = "2024-01-01T00:00:00"

    info = ttl_info(created, 7200)

    assert info["totalHours"] == 72
    assert info["remainingHours"] == 2
    assert info["expiresAt"] == "2024-01-04T00:00:00"
    assert ttl_info(created, -2)["isExpired"] is True


def test_cleanup_endpoint_requires_admin_roles(client, login, owner, admin):
    login(owner)
    assert client.post("/api/v1/jobs/cleanup").status_code == 403

    login(admin)
    response = client.post("/api/v1/jobs/cleanup")
    assert response.status_code == 200
    assert BULK_UPLOAD_POLICIES in response.json()["data"]


def test_ttl_config_endpoint(client, login, owner):
    login(owner)

    config = client.get("/api/v1/jobs/ttl/config").json()["data"]

    assert config["COMPLETED_JOB_CLEANUP_DELAY"]["seconds"] == 60
    assert config["JOB_DATA_TTL"]["days"] == 3.0
