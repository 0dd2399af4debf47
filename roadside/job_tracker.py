"""
Redis-backed job tracking records

Each job gets a JSON record under job:{queue}:{job_id} (expiring after the
data TTL) plus an entry in the queue's sorted-set index, scored by creation time.
"""

import json
import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from .queue import QUEUE_NAMES, TTL_CONFIG

logger = logging.getLogger(__name__)

JOB_STATUSES = ("waiting", "active", "completed", "failed")


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _decode(value) -> str:
    return value.decode() if isinstance(value, bytes) else value


def record_key(queue_name: str, job_id: str) -> str:
    return f"job:{queue_name}:{job_id}"


def index_key(queue_name: str) -> str:
    return f"jobs:{queue_name}"


class JobTracker:
    """Job status bookkeeping on top of any async Redis client (arq's pool included)"""

    def __init__(self, redis):
        self.redis = redis

    async def create(self, queue_name: str, job_id: str, metadata: Optional[dict] = None) -> dict:
        record = {
            "jobId": job_id,
            "queueName": queue_name,
            "status": "waiting",
            "progress": 0,
            "result": None,
            "error": None,
            "createdAt": _now_iso(),
            "processedAt": None,
            "completedAt": None,
            "metadata": metadata or {},
        }
        await self.redis.set(record_key(queue_name, job_id), json.dumps(record), ex=TTL_CONFIG["JOB_DATA_TTL"])
        await self.redis.zadd(index_key(queue_name), {job_id: time.time()})
        await self.redis.expire(index_key(queue_name), TTL_CONFIG["FAILED_JOB_TTL"])
        return record

    async def get(self, queue_name: str, job_id: str) -> Optional[dict]:
        raw = await self.redis.get(record_key(queue_name, job_id))
        return json.loads(raw) if raw else None

    async def ttl(self, queue_name: str, job_id: str) -> int:
        return await self.redis.ttl(record_key(queue_name, job_id))

    async def update(self, queue_name: str, job_id: str, **fields) -> Optional[dict]:
        record = await self.get(queue_name, job_id)
        if record is None:
            logger.warning(f"⚠️ No tracking record for {queue_name}/{job_id}")
            return None

        record.update(fields)
        ttl = TTL_CONFIG["FAILED_JOB_TTL"] if record["status"] == "failed" else TTL_CONFIG["JOB_DATA_TTL"]
        await self.redis.set(record_key(queue_name, job_id), json.dumps(record, default=str), ex=ttl)
        return record

    async def mark_active(self, queue_name: str, job_id: str) -> Optional[dict]:
        return await self.update(queue_name, job_id, status="active", processedAt=_now_iso(), progress=10)

    async def set_progress(self, queue_name: str, job_id: str, progress: int) -> Optional[dict]:
        return await self.update(queue_name, job_id, progress=progress)

    async def mark_completed(self, queue_name: str, job_id: str, result: dict) -> Optional[dict]:
        return await self.update(
            queue_name, job_id, status="completed", progress=100, result=result, completedAt=_now_iso()
        )

    async def mark_failed(self, queue_name: str, job_id: str, error: str) -> Optional[dict]:
        return await self.update(queue_name, job_id, status="failed", error=error, completedAt=_now_iso())

    async def _records(self, queue_name: str) -> list[tuple[str, Optional[dict]]]:
        job_ids = [_decode(j) for j in await self.redis.zrange(index_key(queue_name), 0, -1)]
        return [(job_id, await self.get(queue_name, job_id)) for job_id in job_ids]

    async def stats(self, queue_name: str) -> dict:
        counts = {status: 0 for status in JOB_STATUSES}
        for _, record in await self._records(queue_name):
            if record and record.get("status") in counts:
                counts[record["status"]] += 1
        counts["total"] = sum(counts.values())
        return counts

    async def cleanup(self, queue_name: str, now: Optional[datetime] = None) -> dict:
        """Remove finished jobs past their retention; prune index entries whose record expired"""
        now = now or datetime.utcnow()
        removed = {"completed": 0, "failed": 0, "expired": 0}

        for job_id, record in await self._records(queue_name):
            if record is None:
                await self.redis.zrem(index_key(queue_name), job_id)
                removed["expired"] += 1
                continue

            finished = record.get("completedAt")
            if not finished:
                continue
            age = (now - datetime.fromisoformat(finished)).total_seconds()

            if record["status"] == "completed" and age > TTL_CONFIG["COMPLETED_JOB_CLEANUP_DELAY"]:
                kind = "completed"
            elif record["status"] == "failed" and age > TTL_CONFIG["FAILED_JOB_TTL"]:
                kind = "failed"
            else:
                continue

            await self.redis.delete(record_key(queue_name, job_id))
            await self.redis.zrem(index_key(queue_name), job_id)
            removed[kind] += 1

        if any(removed.values()):
            logger.info(f"🗑️ Cleaned {queue_name}: {removed}")
        return removed

    async def cleanup_all(self, now: Optional[datetime] = None) -> dict:
        return {queue_name: await self.cleanup(queue_name, now) for queue_name in QUEUE_NAMES}


def ttl_info(created_at: Optional[str], remaining_seconds: int) -> dict:
    """TTL view for a job status response"""
    total = TTL_CONFIG["JOB_DATA_TTL"]
    expires_at = None
    if created_at:
        expires_at = (datetime.fromisoformat(created_at) + timedelta(seconds=total)).isoformat()
    return {
        "totalHours": total // 3600,
        "remainingHours": max(0, remaining_seconds) // 3600,
        "expiresAt": expires_at,
        "isExpired": remaining_seconds <= 0,
    }
