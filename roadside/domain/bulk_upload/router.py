"""Bulk upload router - queued imports plus job and queue status endpoints"""

import logging
from typing import Any

from arq.connections import ArqRedis
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_organization, get_current_user, get_user_organization
from ...database import get_db
from ...models import Organization, User
from ...queue import BULK_UPLOAD_MECHANICS, BULK_UPLOAD_POLICIES, BULK_UPLOAD_SERVICE_PROVIDERS, get_job_pool
from .schemas import JobStatusResponse, QueuedJobResponse
from .service import BulkUploadService, ttl_config_view

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bulk Upload"])


def get_bulk_upload_service(pool: ArqRedis = Depends(get_job_pool)) -> BulkUploadService:
    """Dependency injection for BulkUploadService"""
    return BulkUploadService(pool)


# ============================================================================
# UPLOADS
# ============================================================================


@router.post("/bulk-upload/mechanics", response_model=QueuedJobResponse, status_code=202)
async def upload_mechanics(
    payload: Any = Body(...),
    current_user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return await service.enqueue_upload(BULK_UPLOAD_MECHANICS, payload, current_user, organization)


@router.post("/bulk-upload/service-providers", response_model=QueuedJobResponse, status_code=202)
async def upload_service_providers(
    payload: Any = Body(...),
    current_user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return await service.enqueue_upload(BULK_UPLOAD_SERVICE_PROVIDERS, payload, current_user, organization)


@router.post("/bulk-upload/policies", response_model=QueuedJobResponse, status_code=202)
async def upload_policies(
    payload: Any = Body(...),
    current_user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return await service.enqueue_upload(BULK_UPLOAD_POLICIES, payload, current_user, organization)


# ============================================================================
# JOB STATUS
# ============================================================================


@router.get("/jobs/ttl/config")
async def get_ttl_config(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": ttl_config_view()}


@router.post("/jobs/cleanup")
async def cleanup_jobs(
    current_user: User = Depends(get_current_user),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return await service.cleanup(current_user)


@router.get("/jobs/{queue_name}/{job_id}/status", response_model=JobStatusResponse)
async def get_job_status(
    queue_name: str,
    job_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    """Poll a queued job; non-admins only see their organization's jobs"""
    organization = get_user_organization(db, current_user)
    return await service.get_job_status(queue_name, job_id, current_user, organization)


@router.get("/queues/stats")
async def get_all_queue_stats(
    current_user: User = Depends(get_current_user),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return {"success": True, "data": await service.all_queue_stats()}


@router.get("/queues/{queue_name}/stats")
async def get_queue_stats(
    queue_name: str,
    current_user: User = Depends(get_current_user),
    service: BulkUploadService = Depends(get_bulk_upload_service),
):
    return {"success": True, "data": await service.queue_stats(queue_name)}
