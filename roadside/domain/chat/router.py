"""Chat router - public widget chat plus authenticated thread management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import ChatMessageCreate, ChatThreadCreate
from .service import ChatService, serialize_message, serialize_thread

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])

public_chat_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="chat_public")


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    """Dependency injection for ChatService"""
    return ChatService(db)


@router.post("/threads")
async def create_thread(
    data: ChatThreadCreate,
    _: None = Depends(public_chat_limit),
    service: ChatService = Depends(get_chat_service),
):
    """Public - started from the embedded widget"""
    thread, first_reply = await service.create_thread(data)
    return {
        "success": True,
        "data": {
            "id": thread.id,
            "token": thread.public_token,
            "thread": serialize_thread(thread),
            "firstMessage": first_reply,
        },
        "message": f"{thread.chat_type.capitalize()} chat thread created successfully",
    }


@router.get("/threads")
async def list_threads(
    isOrg: bool = Query(False),
    mechanicId: Optional[int] = Query(None),
    organizationId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    threads = service.list_threads(current_user, isOrg, mechanicId, organizationId)
    return {"success": True, "data": [serialize_thread(t) for t in threads]}


@router.get("/threads/{thread_id}")
async def get_thread(
    thread_id: int,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return {"success": True, "data": serialize_thread(service.get_thread(thread_id, current_user))}


@router.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: int,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return service.delete_thread(thread_id, current_user)


@router.get("/threads/{thread_id}/messages/all")
async def list_thread_messages(
    thread_id: int,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    messages = service.list_messages(thread_id, current_user)
    return {"success": True, "data": [serialize_message(m) for m in messages]}


@router.get("/threads/{public_token}/messages")
async def list_widget_messages(
    public_token: str,
    _: None = Depends(public_chat_limit),
    service: ChatService = Depends(get_chat_service),
):
    """Public - the widget reloads its own conversation"""
    return {"success": True, "data": [serialize_message(m) for m in service.list_widget_messages(public_token)]}


@router.post("/threads/{public_token}/messages")
async def send_message(
    public_token: str,
    data: ChatMessageCreate,
    _: None = Depends(public_chat_limit),
    service: ChatService = Depends(get_chat_service),
):
    return {"success": True, "data": await service.send_widget_message(public_token, data.content)}
