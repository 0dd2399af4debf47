from types import SimpleNamespace

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from roadside.auth import get_current_user
from roadside.database import get_db
from roadside.models import ADMIN, AGENT, CLIENT, SUB_ADMIN, SUPER_ADMIN, User
from roadside.rbac import ALL_ROLES, check_resource_access, role_auth


def _user(role, id=1, client_id=None):
    return SimpleNamespace(role=role, id=id, client_id=client_id)


@pytest.mark.parametrize("role", [SUPER_ADMIN, ADMIN])
def test_admins_reach_any_record(role):
    check_resource_access(_user(role), SimpleNamespace(id=99, client_id=7))


def test_client_only_reaches_own_record():
    check_resource_access(_user(CLIENT, id=5), SimpleNamespace(id=5))

    with pytest.raises(HTTPException) as exc:
        check_resource_access(_user(CLIENT, id=5), SimpleNamespace(id=6))
    assert exc.value.status_code == 403


@pytest.mark.parametrize("role", [SUB_ADMIN, AGENT])
def test_delegated_roles_are_bound_to_their_client(role):
    check_resource_access(_user(role, client_id=3), SimpleNamespace(id=10, client_id=3))

    with pytest.raises(HTTPException) as exc:
        check_resource_access(_user(role, client_id=3), SimpleNamespace(id=10, client_id=4))
    assert exc.value.detail == "Access to this client data denied"


def test_user_listing_requires_admin(client, login, make_user):
    login(make_user(role=CLIENT))
    assert client.get("/api/v1/users").status_code == 403

    login(make_user(role=ADMIN))
    response = client.get("/api/v1/users")
    assert response.status_code == 200


def test_client_reads_own_user_record_only(client, login, make_user):
    me = login(make_user(role=CLIENT))
    other = make_user(role=CLIENT)

    assert client.get(f"/api/v1/users/{me.id}").status_code == 200
    assert client.get(f"/api/v1/users/{other.id}").status_code == 403


def test_ticket_terms_update_is_admin_only(client, login, make_user):
    login(make_user(role=CLIENT))
    response = client.put("/api/v1/tickets/terms", json={"clientId": 1, "content": "x"})

    assert response.status_code == 403


@pytest.fixture
def guarded(db, auth_state):
    """A small app whose routes sit behind role_auth"""
    guard_app = FastAPI()
    record_guard = role_auth(User, required_roles=ALL_ROLES, disallowed_actions=("delete",))
    collection_guard = role_auth(User, required_roles=(SUPER_ADMIN, ADMIN, CLIENT))
    broken_guard = role_auth(object, required_roles=ALL_ROLES)

    @guard_app.get("/records/{id}")
    async def read_record(record=Depends(record_guard)):
        return {"id": record.id}

    @guard_app.delete("/records/{id}")
    async def delete_record(record=Depends(record_guard)):
        return {"id": record.id}

    @guard_app.get("/records")
    async def list_records(record=Depends(collection_guard)):
        return {"record": record}

    @guard_app.get("/broken/{id}")
    async def broken(record=Depends(broken_guard)):
        return {}

    def override_get_db():
        yield db

    async def override_current_user():
        return auth_state["user"]

    guard_app.dependency_overrides[get_db] = override_get_db
    guard_app.dependency_overrides[get_current_user] = override_current_user
    return TestClient(guard_app)


def test_blocked_method_unless_super_admin(guarded, login, make_user):
    admin = login(make_user(role=ADMIN))

    response = guarded.delete(f"/records/{admin.id}")
    assert response.status_code == 403
    assert response.json()["detail"] == "Action DELETE is not allowed for your role"

    login(make_user(role=SUPER_ADMIN))
    assert guarded.delete(f"/records/{admin.id}").json() == {"id": admin.id}


def test_role_outside_required_roles(guarded, login, make_user):
    login(make_user(role=AGENT))

    response = guarded.get("/records")

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. Required roles: super_admin, admin, client"


@pytest.mark.parametrize("record_id", ["999", "not-a-number"])
def test_missing_record(guarded, login, make_user, record_id):
    login(make_user(role=ADMIN))

    response = guarded.get(f"/records/{record_id}")

    assert response.status_code == 404
    assert response.json()["detail"] == "Resource not found"


def test_record_access_by_role(guarded, login, make_user):
    me = login(make_user(role=CLIENT))
    other = make_user(role=CLIENT)

    assert guarded.get(f"/records/{me.id}").json() == {"id": me.id}
    assert guarded.get(f"/records/{other.id}").json()["detail"] == "Access to other client data denied"

    login(make_user(role=SUB_ADMIN, client_id=me.id))
    assert guarded.get(f"/records/{other.id}").status_code == 200


def test_collection_routes_are_admin_only(guarded, login, make_user):
    login(make_user(role=ADMIN))
    assert guarded.get("/records").json() == {"record": None}

    login(make_user(role=CLIENT))
    response = guarded.get("/records")
    assert response.status_code == 403
    assert response.json()["detail"] == "You only have access to specific resources"


def test_unexpected_error_is_reported_as_500(guarded, login, make_user):
    login(make_user(role=ADMIN))

    response = guarded.get("/broken/1")

    assert response.status_code == 500
    assert response.json()["detail"] == "Authorization check failed"
