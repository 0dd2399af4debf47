"""Bulk upload service - validates uploads, enqueues jobs and reports their status"""

import logging
import math
import uuid
from typing import Any, Optional

from arq.connections import ArqRedis
from fastapi import HTTPException

from ...job_tracker import JobTracker, ttl_info
from ...models import ADMIN, SUB_ADMIN, SUPER_ADMIN, Organization, User
from ...queue import (
    BULK_UPLOAD_MECHANICS,
    BULK_UPLOAD_POLICIES,
    BULK_UPLOAD_SERVICE_PROVIDERS,
    QUEUE_NAMES,
    TTL_CONFIG,
    arq_job_status,
)

logger = logging.getLogger(__name__)

CLEANUP_ROLES = (SUPER_ADMIN, ADMIN, SUB_ADMIN)

# queue -> (payload key, label, records per estimated minute, worker function)
UPLOAD_KINDS = {
    BULK_UPLOAD_MECHANICS: ("mechanics", "mechanics", 100, "bulk_upload_mechanics_task"),
    BULK_UPLOAD_SERVICE_PROVIDERS: ("serviceProviders", "service providers", 50, "bulk_upload_mechanics_task"),
    BULK_UPLOAD_POLICIES: ("policies", "policies", 75, "bulk_upload_policies_task"),
}


def extract_rows(payload: Any, key: str, label: str) -> list[dict]:
    """Accept a bare list or {key: [...]}"""
    rows = payload.get(key) if isinstance(payload, dict) else payload
    if not isinstance(rows, list) or not rows:
        raise HTTPException(status_code=400, detail=f"No {label} data provided")
    if not all(isinstance(row, dict) for row in rows):
        raise HTTPException(status_code=400, detail=f"Invalid {label} data format")
    return rows


def estimate_minutes(count: int, per_minute: int) -> int:
    return math.ceil(count / per_minute)


def status_check_url(queue_name: str, job_id: str) -> str:
    return f"/api/v1/jobs/{queue_name}/{job_id}/status"


def ttl_config_view() -> dict:
    return {
        name: {
            "ms": seconds * 1000,
            "seconds": seconds,
            "minutes": round(seconds / 60, 2),
            "hours": round(seconds / 3600, 2),
            "days": round(seconds / 86400, 2),
        }
        for name, seconds in TTL_CONFIG.items()
    }


class BulkUploadService:
    """Service layer for queued bulk uploads and job status"""

    def __init__(self, pool: ArqRedis):
        self.pool = pool
        self.tracker = JobTracker(pool)

    async def enqueue_upload(self, queue_name: str, payload: Any, user: User, organization: Organization) -> dict:
        key, label, per_minute, function = UPLOAD_KINDS[queue_name]
        rows = extract_rows(payload, key, label)

        job_id = uuid.uuid4().hex
        metadata = {
            "organizationId": organization.id,
            "userId": user.id,
            "totalRecords": len(rows),
        }
        await self.tracker.create(queue_name, job_id, metadata)

        if queue_name == BULK_UPLOAD_POLICIES:
            args = (rows, user.id, organization.id)
        else:
            provider_type = "service_provider" if queue_name == BULK_UPLOAD_SERVICE_PROVIDERS else "mechanic"
            args = (rows, user.role, user.id, organization.id, provider_type)

        job = await self.pool.enqueue_job(function, *args, _job_id=job_id)
        if job is None:
            await self.tracker.mark_failed(queue_name, job_id, "Job could not be queued")
            raise HTTPException(status_code=500, detail="Failed to queue bulk upload job")

        minutes = estimate_minutes(len(rows), per_minute)
        logger.info(f"📦 Queued {len(rows)} {label} for organization {organization.id} (job {job_id})")
        return {
            "success": True,
            "message": f"Bulk upload of {len(rows)} {label} queued for processing",
            "data": {
                "jobId": job_id,
                "queueName": queue_name,
                "status": "queued",
                "totalRecords": len(rows),
                "estimatedProcessingTime": f"{minutes} minute{'s' if minutes != 1 else ''}",
                "statusCheckUrl": status_check_url(queue_name, job_id),
            },
        }

    @staticmethod
    def _check_queue(queue_name: str) -> None:
        if queue_name not in QUEUE_NAMES:
            raise HTTPException(
                status_code=400, detail=f"Invalid queue name. Valid queues: {', '.join(QUEUE_NAMES)}"
            )

    async def get_job_status(self, queue_name: str, job_id: str, user: User, organization: Optional[Organization]) -> dict:
        self._check_queue(queue_name)

        record = await self.tracker.get(queue_name, job_id)
        if not record:
            # tracking record expired or not written yet; ask arq directly
            live_status = await arq_job_status(self.pool, job_id)
            if live_status is None:
                raise HTTPException(status_code=404, detail="Job not found")
            record = {"status": live_status, "metadata": {}}

        owner = (record.get("metadata") or {}).get("organizationId")
        if not user.is_admin and owner is not None and (not organization or organization.id != owner):
            raise HTTPException(status_code=403, detail="Access denied to this job")

        remaining = await self.tracker.ttl(queue_name, job_id)
        return {
            "jobId": job_id,
            "status": record["status"],
            "progress": record.get("progress", 0),
            "result": record.get("result"),
            "error": record.get("error"),
            "createdAt": record.get("createdAt"),
            "processedAt": record.get("processedAt"),
            "completedAt": record.get("completedAt"),
            "queueName": queue_name,
            "metadata": record.get("metadata") or {},
            "ttl": ttl_info(record.get("createdAt"), remaining),
        }

    async def queue_stats(self, queue_name: str) -> dict:
        self._check_queue(queue_name)
        return {"queueName": queue_name, "counts": await self.tracker.stats(queue_name)}

    async def all_queue_stats(self) -> dict:
        return {queue_name: await self.tracker.stats(queue_name) for queue_name in QUEUE_NAMES}

    async def cleanup(self, user: User) -> dict:
        if user.role not in CLEANUP_ROLES:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        removed = await self.tracker.cleanup_all()
        return {"success": True, "message": "Job cleanup completed", "data": removed}
