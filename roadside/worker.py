"""
ARQ Background Worker
Runs bulk uploads, chat session timeouts and the periodic campaign timer

Start with: arq roadside.worker.WorkerSettings
"""

import logging
import os

from arq.cron import cron

# Import all model files so SQLAlchemy can resolve relationships in task sessions
from . import models  # noqa: F401 - Core models
from . import models_campaigns  # noqa: F401 - Campaign models
from . import models_chat  # noqa: F401 - Chat models
from .config import CAMPAIGN_TIMER_INTERVAL_MINUTES
from .domain.bulk_upload.tasks import (
    bulk_upload_mechanics_task,
    bulk_upload_policies_task,
    cleanup_job_record_task,
    job_cleanup_cron_task,
)
from .domain.campaigns.tasks import campaign_timer_task
from .domain.chat.tasks import chat_session_timeout_task
from .queue import JOB_MAX_TRIES, JOB_TIMEOUT_SECONDS, get_redis_settings

logger = logging.getLogger(__name__)


def _every_n_minutes(interval: int) -> set[int]:
    interval = max(1, min(interval, 60))
    return set(range(0, 60, interval))


async def startup(ctx):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logger.info("🚀 Roadside worker started")


async def shutdown(ctx):
    logger.info("👋 Roadside worker shutting down")


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [
        bulk_upload_mechanics_task,
        bulk_upload_policies_task,
        cleanup_job_record_task,
        job_cleanup_cron_task,
        chat_session_timeout_task,
    ]
    redis_settings = get_redis_settings()
    on_startup = startup
    on_shutdown = shutdown

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "20"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", str(JOB_TIMEOUT_SECONDS)))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    health_check_interval = 60

    # Retry settings for failed jobs
    max_tries = JOB_MAX_TRIES

    cron_jobs = [
        cron(campaign_timer_task, minute=_every_n_minutes(CAMPAIGN_TIMER_INTERVAL_MINUTES), run_at_startup=True),
        cron(job_cleanup_cron_task, hour={0, 6, 12, 18}, minute=30),  # every 6 hours
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")
