"""Chat schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ChatThreadCreate(BaseModel):
    mechanicId: Optional[int] = None
    organizationId: Optional[int] = None
    isOrg: bool = False
    title: Optional[str] = None
    initialMessage: Optional[str] = None
    variables: dict = {}


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1)


class ChatThreadResponse(BaseModel):
    id: int
    mechanic_id: Optional[int] = None
    organization_id: Optional[int] = None
    chat_type: str
    title: str
    variables: Optional[dict] = None
    last_message_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatMessageResponse(BaseModel):
    id: int
    thread_id: int
    role: str
    content: str
    metadata: Optional[Any] = Field(None, validation_alias="metadata_")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
