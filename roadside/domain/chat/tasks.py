"""
arq task ending idle chat sessions
A session ends after CHAT_TIMEOUT_SECONDS without messages; the transcript is
stored on the thread's chat call activity
"""

import logging
from datetime import datetime, timedelta

from ...database import SessionLocal
from ...models_chat import ChatMessage
from ...queue import CHAT_TIMEOUT_SECONDS
from .repository import ChatRepository

logger = logging.getLogger(__name__)

ROLE_LABELS = {"user": "Customer", "assistant": "Assistant"}


def format_transcript(messages: list[ChatMessage]) -> str:
    lines = []
    for message in messages:
        role = ROLE_LABELS.get(message.role, message.role.capitalize())
        timestamp = message.created_at.isoformat() if message.created_at else ""
        lines.append(f"[{timestamp}] {role}: {message.content}")
    return "\n".join(lines)


async def chat_session_timeout_task(ctx, thread_id: int):
    db = SessionLocal()
    repo = ChatRepository()
    try:
        thread = repo.get_thread(db, thread_id)
        if not thread or thread.ended_at:
            logger.info(f"⚠️ Chat thread {thread_id} not found or already ended, skipping timeout")
            return {"success": True, "threadId": thread_id, "skipped": True}

        now = datetime.utcnow()
        if thread.last_message_at and thread.last_message_at > now - timedelta(seconds=CHAT_TIMEOUT_SECONDS):
            # the running job still owns the fixed job id, so the follow-up gets a fresh one
            await ctx["redis"].enqueue_job(
                "chat_session_timeout_task", thread_id, _defer_by=timedelta(seconds=CHAT_TIMEOUT_SECONDS)
            )
            logger.info(f"🔄 Recent activity in thread {thread_id}, timeout rescheduled")
            return {"success": True, "threadId": thread_id, "rescheduled": True}

        messages = repo.get_messages(db, thread_id)
        thread.ended_at = now
        db.add(thread)

        activity = repo.get_chat_activity(db, thread_id)
        if activity is not None:
            activity.transcript = format_transcript(messages)
            db.add(activity)
        else:
            logger.warning(f"⚠️ No chat activity for thread {thread_id}, transcript not stored")
        db.commit()

        logger.info(f"⏰ Chat session {thread_id} ended after inactivity ({len(messages)} messages)")
        return {"success": True, "threadId": thread_id, "messageCount": len(messages)}

    except Exception as e:
        logger.error(f"❌ Chat timeout for thread {thread_id} failed: {type(e).__name__}: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
