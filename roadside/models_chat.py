"""
Chat Models
Web chat threads with mechanics' or organizations' AI assistants
"""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class ChatThread(Base):
    __tablename__ = "chat_threads"

    id = Column(Integer, primary_key=True, index=True)
    mechanic_id = Column(Integer, ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # the widget's only handle on the thread; ids stay internal
    public_token = Column(
        String(64), unique=True, index=True, nullable=False, default=lambda: uuid.uuid4().hex
    )
    chat_type = Column(String(20), default="mechanic", nullable=False)  # mechanic, organization
    title = Column(String(255), default="New Chat", nullable=False)
    variables = Column(JSON, default=dict, nullable=True)  # values for {{placeholders}} in the prompt
    last_message_at = Column(DateTime, server_default=func.now(), index=True)
    ended_at = Column(DateTime, nullable=True)  # set when the session times out
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    messages = relationship(
        "ChatMessage",
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("chat_threads.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user, assistant, system, function
    content = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    thread = relationship("ChatThread", back_populates="messages")
