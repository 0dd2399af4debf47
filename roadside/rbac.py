"""
Role-based access control

role_auth() builds a FastAPI dependency that enforces, in order:
- HTTP methods blocked for everyone but super_admin
- the list of roles allowed on the route
- per-record access when the route carries a resource ID
- collection-level access (super_admin / admin only)
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .auth import get_current_user
from .database import get_db
from .models import ADMIN, AGENT, CLIENT, SUB_ADMIN, SUBAGENT, SUPER_ADMIN, User

logger = logging.getLogger(__name__)

ALL_ROLES = (SUPER_ADMIN, ADMIN, SUB_ADMIN, AGENT, SUBAGENT, CLIENT)
DELEGATED_ROLES = (SUB_ADMIN, AGENT, SUBAGENT)


def check_resource_access(user: User, resource) -> None:
    """Raise 403 unless the user may act on this specific record"""
    if user.role in (SUPER_ADMIN, ADMIN):
        return

    if user.role == CLIENT:
        if resource.id != user.id:
            raise HTTPException(status_code=403, detail="Access to other client data denied")
        return

    if user.role in DELEGATED_ROLES:
        resource_client = getattr(resource, "client_id", None)
        if resource_client is not None and resource_client != user.client_id:
            raise HTTPException(status_code=403, detail="Access to this client data denied")
        return

    raise HTTPException(status_code=403, detail="Access denied")


def role_auth(
    model=None,
    required_roles: tuple[str, ...] = (SUPER_ADMIN,),
    disallowed_actions: tuple[str, ...] = (),
    id_param: str = "id",
):
    """
    Build an authorization dependency.

    Args:
        model: SQLAlchemy model the route's resource ID refers to
        required_roles: Roles allowed on the route
        disallowed_actions: Lower-case HTTP methods blocked unless super_admin
        id_param: Path parameter carrying the resource ID

    The dependency returns the loaded record (or None for collection routes).
    """
    blocked = {a.lower() for a in disallowed_actions}

    async def dependency(
        request: Request,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> Optional[object]:
        try:
            method = request.method.lower()
            if method in blocked and user.role != SUPER_ADMIN:
                raise HTTPException(
                    status_code=403, detail=f"Action {request.method} is not allowed for your role"
                )

            if user.role not in required_roles:
                raise HTTPException(
                    status_code=403,
                    detail=f"Access denied. Required roles: {', '.join(required_roles)}",
                )

            resource_id = request.path_params.get(id_param)
            if resource_id is not None and model is not None:
                try:
                    resource_pk = int(resource_id)
                except ValueError:
                    raise HTTPException(status_code=404, detail="Resource not found") from None
                resource = db.get(model, resource_pk)
                if not resource:
                    raise HTTPException(status_code=404, detail="Resource not found")
                check_resource_access(user, resource)
                request.state.resource = resource
                return resource

            if user.role in (SUPER_ADMIN, ADMIN):
                return None

            raise HTTPException(status_code=403, detail="You only have access to specific resources")
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"❌ RBAC error: {str(e)}")
            raise HTTPException(status_code=500, detail="Authorization check failed") from e

    return dependency


def require_roles(*roles: str):
    """Plain role gate without resource lookup"""

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency
