"""User domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: str
    client_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
