"""Chat repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AICallActivity
from ...models_chat import ChatMessage, ChatThread


class ChatRepository:
    """Repository for chat thread and message database operations"""

    @staticmethod
    def get_thread(db: Session, thread_id: int) -> Optional[ChatThread]:
        return db.query(ChatThread).filter(ChatThread.id == thread_id).first()

    @staticmethod
    def get_thread_by_token(db: Session, public_token: str) -> Optional[ChatThread]:
        return db.query(ChatThread).filter(ChatThread.public_token == public_token).first()

    @staticmethod
    def list_threads(
        db: Session,
        chat_type: str,
        mechanic_id: Optional[int] = None,
        organization_id: Optional[int] = None,
        limit: int = 20,
    ) -> list[ChatThread]:
        query = db.query(ChatThread).filter(ChatThread.chat_type == chat_type)
        if mechanic_id is not None:
            query = query.filter(ChatThread.mechanic_id == mechanic_id)
        if organization_id is not None:
            query = query.filter(ChatThread.organization_id == organization_id)
        return query.order_by(ChatThread.last_message_at.desc(), ChatThread.id.desc()).limit(limit).all()

    @staticmethod
    def get_messages(db: Session, thread_id: int, limit: Optional[int] = None) -> list[ChatMessage]:
        query = db.query(ChatMessage).filter(ChatMessage.thread_id == thread_id)
        if limit:
            recent = query.order_by(ChatMessage.id.desc()).limit(limit).all()
            return list(reversed(recent))
        return query.order_by(ChatMessage.id).all()

    @staticmethod
    def save(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete_thread(db: Session, thread: ChatThread) -> None:
        db.delete(thread)
        db.commit()

    @staticmethod
    def get_chat_activity(db: Session, thread_id: int) -> Optional[AICallActivity]:
        return (
            db.query(AICallActivity)
            .filter(AICallActivity.call_id == str(thread_id), AICallActivity.call_type == "chat")
            .first()
        )
