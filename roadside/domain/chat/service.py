"""Chat service - threads, messages and assistant replies"""

import asyncio
import json
import logging
import re
from datetime import datetime
from typing import Any, Optional

import httpx
from fastapi import HTTPException
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import AICallActivity, Mechanic, Organization, User
from ...models_chat import ChatMessage, ChatThread
from ...queue import get_job_pool, schedule_chat_timeout
from ...services import openai_service
from .repository import ChatRepository
from .schemas import ChatMessageResponse, ChatThreadCreate, ChatThreadResponse

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def serialize_thread(thread: ChatThread) -> dict:
    return ChatThreadResponse.model_validate(thread).model_dump(mode="json")


def serialize_message(message: ChatMessage) -> dict:
    return ChatMessageResponse.model_validate(message).model_dump(mode="json")


def as_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if content is None:
        return ""
    return json.dumps(content)


def render_template(template: str, variables: Optional[dict]) -> str:
    """Fill {{name}} placeholders; unknown names are left as they are"""
    variables = variables or {}
    return PLACEHOLDER.sub(lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0), template)


def default_system_prompt(organization: Optional[Organization], mechanic: Optional[Mechanic]) -> str:
    if organization is not None:
        business = organization.company_name or "Our Organization"
        return (
            f"You are an AI assistant for {business}. "
            "You are a helpful assistant that can answer questions and help with tasks."
        )

    name = " ".join(p for p in (mechanic.first_name, mechanic.last_name) if p) or "the mechanic"
    business = mechanic.company_name or mechanic.business_name or "Our Organization"
    specialty = ", ".join(mechanic.specialty or []) or "general roadside repairs"
    services = ", ".join(str(s.get("name", s)) if isinstance(s, dict) else str(s) for s in mechanic.services or [])
    prompt = (
        f"You are the virtual assistant for {name} of {business}, a roadside assistance mechanic. "
        f"Specialties: {specialty}. "
    )
    if services:
        prompt += f"Services offered: {services}. "
    return prompt + "Help customers describe their breakdown, answer questions and collect their contact details."


class ChatService:
    """Service layer for web chat"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChatRepository()

    async def _schedule_timeout(self, thread_id: int) -> None:
        try:
            await schedule_chat_timeout(await get_job_pool(), thread_id)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"❌ Could not schedule chat timeout for thread {thread_id}: {str(e)}")

    def get_thread(self, thread_id: int, user: Optional[User] = None) -> ChatThread:
        thread = self.repo.get_thread(self.db, thread_id)
        if not thread:
            raise HTTPException(status_code=404, detail="Chat thread not found")
        if user and not user.is_admin:
            organization = get_user_organization(self.db, user)
            if not organization or not self._belongs_to(thread, organization):
                raise HTTPException(status_code=403, detail="Access to this chat thread denied")
        return thread

    def _belongs_to(self, thread: ChatThread, organization: Organization) -> bool:
        if thread.organization_id is not None:
            return thread.organization_id == organization.id
        mechanic = self.db.get(Mechanic, thread.mechanic_id)
        return bool(mechanic and organization.id in mechanic.organization_ids)

    async def create_thread(self, data: ChatThreadCreate) -> tuple[ChatThread, Optional[str]]:
        if not data.mechanicId and not data.organizationId:
            raise HTTPException(status_code=400, detail="Either mechanicId or organizationId is required")
        if data.isOrg and not data.organizationId:
            raise HTTPException(status_code=400, detail="Organization ID is required for organization chats")
        if not data.isOrg and not data.mechanicId:
            raise HTTPException(status_code=400, detail="Mechanic ID is required for mechanic chats")

        if data.isOrg:
            if not self.db.get(Organization, data.organizationId):
                raise HTTPException(status_code=404, detail="Organization not found")
        elif not self.db.get(Mechanic, data.mechanicId):
            raise HTTPException(status_code=404, detail="Mechanic not found")

        now = datetime.utcnow()
        thread = ChatThread(
            mechanic_id=None if data.isOrg else data.mechanicId,
            organization_id=data.organizationId if data.isOrg else None,
            chat_type="organization" if data.isOrg else "mechanic",
            title=(data.title or "").strip() or "New Chat",
            variables=data.variables or {},
            last_message_at=now,
        )
        thread = self.repo.save(self.db, thread)

        self.repo.save(
            self.db,
            AICallActivity(
                call_id=str(thread.id),
                call_type="chat",
                mechanic_id=thread.mechanic_id,
                organization_id=thread.organization_id,
                number="web-chat",
                recorded_time=now,
            ),
        )
        logger.info(f"✅ {thread.chat_type.capitalize()} chat thread {thread.id} created")

        await self._schedule_timeout(thread.id)

        first_reply = None
        if data.initialMessage and data.initialMessage.strip():
            first_reply = (await self.send_message(thread, data.initialMessage))["response"]
        return thread, first_reply

    def list_threads(
        self, user: User, is_org: bool = False, mechanic_id: Optional[int] = None, organization_id: Optional[int] = None
    ) -> list[ChatThread]:
        if not user.is_admin:
            organization = get_user_organization(self.db, user)
            if not organization:
                raise HTTPException(status_code=404, detail="User organization not found")
            if is_org:
                organization_id = organization.id
            elif mechanic_id is None:
                raise HTTPException(status_code=400, detail="mechanicId is required")
            else:
                mechanic = self.db.get(Mechanic, mechanic_id)
                if not mechanic or organization.id not in mechanic.organization_ids:
                    raise HTTPException(status_code=403, detail="Access to this mechanic denied")

        chat_type = "organization" if is_org else "mechanic"
        return self.repo.list_threads(
            self.db,
            chat_type,
            mechanic_id=None if is_org else mechanic_id,
            organization_id=organization_id if is_org else None,
        )

    def delete_thread(self, thread_id: int, user: User) -> dict:
        self.repo.delete_thread(self.db, self.get_thread(thread_id, user))
        return {"success": True, "message": "Chat thread deleted successfully"}

    def list_messages(self, thread_id: int, user: User) -> list[ChatMessage]:
        thread = self.get_thread(thread_id, user)
        return self.repo.get_messages(self.db, thread.id)

    def get_public_thread(self, public_token: str) -> ChatThread:
        thread = self.repo.get_thread_by_token(self.db, public_token)
        if not thread:
            raise HTTPException(status_code=404, detail="Chat thread not found")
        return thread

    def list_widget_messages(self, public_token: str) -> list[ChatMessage]:
        return self.repo.get_messages(self.db, self.get_public_thread(public_token).id)

    def add_message(self, thread: ChatThread, role: str, content: Any, metadata: Optional[dict] = None) -> ChatMessage:
        now = datetime.utcnow()
        message = ChatMessage(
            thread_id=thread.id, role=role, content=as_text(content), metadata_=metadata or {}, created_at=now
        )
        self.db.add(message)
        thread.last_message_at = now
        # a new message reopens an ended session
        thread.ended_at = None
        self.db.add(thread)
        self.db.commit()
        self.db.refresh(message)
        return message

    def system_prompt(self, thread: ChatThread) -> str:
        organization = self.db.get(Organization, thread.organization_id) if thread.organization_id else None
        mechanic = self.db.get(Mechanic, thread.mechanic_id) if thread.mechanic_id else None
        return render_template(default_system_prompt(organization, mechanic), thread.variables)

    async def send_widget_message(self, public_token: str, content: str) -> dict:
        return await self.send_message(self.get_public_thread(public_token), content)

    async def send_message(self, thread: ChatThread, content: str) -> dict:
        if not content or not content.strip():
            raise HTTPException(status_code=400, detail="Message content is required")

        self.add_message(thread, "user", content)
        history = [
            {"role": m.role, "content": m.content} for m in self.repo.get_messages(self.db, thread.id, HISTORY_LIMIT)
        ]

        try:
            reply = await openai_service.generate_chat_reply(self.system_prompt(thread), history)
        except (RuntimeError, ValueError, httpx.HTTPError) as e:
            logger.error(f"❌ Chat reply failed for thread {thread.id}: {str(e)}")
            raise HTTPException(status_code=502, detail="Failed to generate assistant reply") from e

        assistant_message = self.add_message(thread, "assistant", reply)
        await self._schedule_timeout(thread.id)
        return {"success": True, "response": reply, "message": serialize_message(assistant_message)}
