"""
arq tasks for queued bulk uploads
Each task reports progress into the job tracking record and re-raises on failure
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from ...database import SessionLocal
from ...job_tracker import JobTracker, index_key, record_key
from ...queue import BULK_UPLOAD_MECHANICS, BULK_UPLOAD_POLICIES, BULK_UPLOAD_SERVICE_PROVIDERS, TTL_CONFIG
from ..mechanics.service import MechanicService
from ..policies.service import PolicyService

logger = logging.getLogger(__name__)


async def _run_upload(ctx, queue_name: str, user_id: int, organization_id: int, process: Callable[[Session], dict]) -> dict:
    job_id = ctx["job_id"]
    tracker = JobTracker(ctx["redis"])

    logger.info(f"🚀 Processing {queue_name} job {job_id} (try {ctx.get('job_try', 1)})")
    await tracker.mark_active(queue_name, job_id)

    db = SessionLocal()
    try:
        outcome = process(db)
        await tracker.set_progress(queue_name, job_id, 90)

        delay = TTL_CONFIG["COMPLETED_JOB_CLEANUP_DELAY"]
        result = {
            "success": True,
            "message": outcome.get("message", "Bulk upload completed"),
            "uploaded": outcome.get("count", 0),
            "data": outcome,
            "processedAt": datetime.utcnow().isoformat(),
            "organizationId": organization_id,
            "userId": user_id,
            "cleanupScheduled": True,
            "cleanupDelay": delay,
        }
        await tracker.mark_completed(queue_name, job_id, result)
        await ctx["redis"].enqueue_job("cleanup_job_record_task", queue_name, job_id, _defer_by=timedelta(seconds=delay))

        logger.info(f"✅ {queue_name} job {job_id} completed: {result['uploaded']} records")
        return result

    except Exception as e:
        logger.error(f"❌ {queue_name} job {job_id} failed: {type(e).__name__}: {str(e)}")
        db.rollback()
        await tracker.mark_failed(queue_name, job_id, str(e))
        raise
    finally:
        db.close()


async def bulk_upload_mechanics_task(
    ctx, rows: list[dict], role: str, user_id: int, organization_id: int, provider_type: str = "mechanic"
):
    """Import mechanics (or service providers) for an organization"""
    queue_name = BULK_UPLOAD_SERVICE_PROVIDERS if provider_type == "service_provider" else BULK_UPLOAD_MECHANICS
    return await _run_upload(
        ctx,
        queue_name,
        user_id,
        organization_id,
        lambda db: MechanicService(db).bulk_upload(rows, role, user_id, organization_id, provider_type),
    )


async def bulk_upload_policies_task(ctx, rows: list[dict], user_id: int, organization_id: int):
    """Import policies for an organization"""
    return await _run_upload(
        ctx,
        BULK_UPLOAD_POLICIES,
        user_id,
        organization_id,
        lambda db: PolicyService(db).bulk_upload(rows, organization_id),
    )


async def cleanup_job_record_task(ctx, queue_name: str, job_id: str):
    """Drop a completed job's tracking record once its cleanup delay has passed"""
    tracker = JobTracker(ctx["redis"])
    record = await tracker.get(queue_name, job_id)
    if record and record.get("status") == "completed":
        await ctx["redis"].delete(record_key(queue_name, job_id))
        await ctx["redis"].zrem(index_key(queue_name), job_id)
        logger.info(f"🗑️ Cleaned up completed job {job_id} from {queue_name}")
        return {"removed": True}
    return {"removed": False}


async def job_cleanup_cron_task(ctx):
    """Periodic sweep over every queue's tracking records"""
    return await JobTracker(ctx["redis"]).cleanup_all()
