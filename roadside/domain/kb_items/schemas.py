"""KB item schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, field_validator


def _split_tags(v):
    if v is None:
        return []
    if isinstance(v, str):
        return [t.strip() for t in v.split(",") if t.strip()]
    return [str(t).strip() for t in v if str(t).strip()]


class KbItemCreate(BaseModel):
    type: Literal["file", "url"]
    key: str
    title: str
    url: Optional[str] = None
    description: Optional[str] = ""
    tags: Union[list[str], str, None] = None
    organization: Optional[int] = None
    mechanic: Optional[int] = None

    @field_validator("key", "title")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("type, key, and title are required")
        return v.strip()

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _split_tags(v)


class KbItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    tags: Union[list[str], str, None] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return None if v is None else _split_tags(v)


class KbItemResponse(BaseModel):
    id: int
    type: str
    key: str
    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    tags: list = []
    organization_id: Optional[int] = None
    mechanic_id: Optional[int] = None
    status: str
    external_document_id: Optional[str] = None
    error_message: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v):
        return v or []

    class Config:
        from_attributes = True
