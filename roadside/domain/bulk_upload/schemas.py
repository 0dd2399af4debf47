"""Bulk upload schemas - response envelopes for queued jobs"""

from typing import Any, Optional

from pydantic import BaseModel


class QueuedJob(BaseModel):
    jobId: str
    queueName: str
    status: str = "queued"
    totalRecords: int
    estimatedProcessingTime: str
    statusCheckUrl: str


class QueuedJobResponse(BaseModel):
    success: bool = True
    message: str
    data: QueuedJob


class JobStatusResponse(BaseModel):
    jobId: str
    status: str  # waiting, active, completed, failed
    progress: int = 0
    result: Optional[Any] = None
    error: Optional[str] = None
    createdAt: Optional[str] = None
    processedAt: Optional[str] = None
    completedAt: Optional[str] = None
    queueName: str
    metadata: dict = {}
    ttl: dict = {}
