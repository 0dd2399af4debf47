"""arq cron task for the campaign timer"""

import logging

from ...database import SessionLocal
from .timer import CampaignTimerService

logger = logging.getLogger(__name__)


async def campaign_timer_task(ctx):
    db = SessionLocal()
    try:
        result = await CampaignTimerService(db).process_all()
        return {k: v for k, v in result.items() if k != "results"}
    except Exception as e:
        logger.error(f"❌ Campaign timer run failed: {type(e).__name__}: {str(e)}")
        raise
    finally:
        db.close()
