"""User router - account endpoints behind role_auth"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import ADMIN, SUPER_ADMIN, User
from ...rbac import ALL_ROLES, role_auth
from ...shared.pagination import paginate_query
from ...shared.validators import LIKE_ESCAPE, like_pattern
from .schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def serialize_user(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("")
async def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    _: None = Depends(role_auth(required_roles=(SUPER_ADMIN, ADMIN))),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if search:
        pattern = like_pattern(search)
        query = query.filter(
            or_(*(c.ilike(pattern, escape=LIKE_ESCAPE) for c in (User.email, User.first_name, User.last_name)))
        )
    return paginate_query(query.order_by(User.id.desc()), page, limit, serializer=serialize_user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    user: User = Depends(
        role_auth(model=User, required_roles=ALL_ROLES, disallowed_actions=("delete",), id_param="user_id")
    ),
):
    return user
