import json

import pytest

from roadside.cache import public_widget_key
from roadside.services import vapi_service


@pytest.fixture
def marketing_agents(monkeypatch):
    calls = []

    async def fake_marketing(org_name, org_id):
        calls.append(org_id)
        return {"inbound": "mk-in", "outbound": "mk-out", "web": "mk-web"}

    monkeypatch.setattr(vapi_service, "create_marketing_agents", fake_marketing)
    return calls


def test_marketing_widget_enables_marketing(client, login, owner, organization, marketing_agents, db):
    login(owner)

    response = client.post("/api/v1/organization-widgets", json={"config": {"color": "blue"}})

    assert response.status_code == 201
    widget = response.json()["data"]
    assert widget["name"] == "Acme Towing Widget"
    assert widget["widget_type"] == "marketing"
    assert widget["organization_id"] == organization.id
    assert marketing_agents == [organization.id]
    db.refresh(organization)
    assert organization.has_marketing_enabled is True
    assert organization.marketing_agents["web"] == "mk-web"


def test_support_widget_leaves_marketing_alone(client, login, owner, organization, marketing_agents):
    login(owner)

    client.post("/api/v1/organization-widgets", json={"widgetType": "support", "name": "Help"})

    assert marketing_agents == []


def test_one_widget_per_organization(client, login, owner, organization, marketing_agents):
    login(owner)
    client.post("/api/v1/organization-widgets", json={"widgetType": "support"})

    response = client.post("/api/v1/organization-widgets", json={"widgetType": "support"})

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


def test_owner_cannot_target_other_organization(client, login, owner, organization, make_organization):
    other = make_organization(company_name="Other")
    login(owner)

    response = client.post("/api/v1/organization-widgets", json={"organizationId": other.id, "widgetType": "support"})

    assert response.status_code == 403


def test_admin_creates_for_any_organization(client, login, admin, organization):
    login(admin)

    response = client.post(
        "/api/v1/organization-widgets", json={"organizationId": organization.id, "widgetType": "custom"}
    )

    assert response.json()["data"]["organization_id"] == organization.id
    assert client.get("/api/v1/organization-widgets/organization", params={"organizationId": 999}).status_code == 404


def test_get_organization_widget_may_be_empty(client, login, owner, organization):
    login(owner)

    assert client.get("/api/v1/organization-widgets/organization").json() == {"success": True, "data": None}


def test_update_toggle_delete(client, login, owner, organization, make_user):
    login(owner)
    widget = client.post("/api/v1/organization-widgets", json={"widgetType": "support"}).json()["data"]
    path = f"/api/v1/organization-widgets/{widget['id']}"

    updated = client.put(path, json={"name": "Roadside Help", "allowedOrigins": ["https://acme.example"]})
    assert updated.json()["data"]["name"] == "Roadside Help"
    assert updated.json()["data"]["allowed_origins"] == ["https://acme.example"]

    toggled = client.patch(f"{path}/toggle")
    assert toggled.json()["data"]["is_active"] is False

    login(make_user())
    assert client.get(path).status_code == 403

    login(owner)
    assert client.delete(path).json() == {"message": "Widget deleted successfully"}
    assert client.get(path).status_code == 404


def test_public_widget_is_cached_and_invalidated(client, login, owner, organization, fake_cache):
    login(owner)
    widget = client.post("/api/v1/organization-widgets", json={"widgetType": "support", "name": "Help"}).json()["data"]
    login(None)

    public = client.get(f"/api/v1/organization-widgets/organization/{organization.id}/open")

    assert public.status_code == 200
    data = public.json()["data"]
    assert data["companyName"] == "Acme Towing"
    assert "created_by_id" not in data
    assert json.loads(fake_cache.values[public_widget_key(organization.id)])["name"] == "Help"

    login(owner)
    client.patch(f"/api/v1/organization-widgets/{widget['id']}/toggle")
    assert public_widget_key(organization.id) not in fake_cache.values

    login(None)
    assert client.get(f"/api/v1/organization-widgets/organization/{organization.id}/open").status_code == 404
