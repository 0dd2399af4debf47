"""Widget schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

WidgetType = Literal["marketing", "support", "sales", "custom"]


class WidgetCreate(BaseModel):
    organizationId: Optional[int] = None
    name: Optional[str] = None
    widgetType: WidgetType = "marketing"
    config: dict = {}
    allowedOrigins: list[str] = []
    isActive: bool = True


class WidgetUpdate(BaseModel):
    name: Optional[str] = None
    widgetType: Optional[WidgetType] = None
    config: Optional[dict] = None
    allowedOrigins: Optional[list[str]] = None
    isActive: Optional[bool] = None


class WidgetResponse(BaseModel):
    id: int
    organization_id: int
    name: Optional[str] = None
    widget_type: str
    config: dict = {}
    allowed_origins: list = []
    is_active: bool
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
