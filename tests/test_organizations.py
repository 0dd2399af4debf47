import pytest

from roadside.models import Policy, Ticket
from roadside.services import vapi_service
from roadside.services.vapi_service import VapiError


@pytest.fixture
def vapi_calls(monkeypatch):
    calls = []

    async def fake_inbound(org_name, org_id):
        calls.append(("inbound", org_name))
        return {"id": "asst-in"}

    async def fake_outbound(org_name, org_id):
        calls.append(("outbound", org_name))
        return {"id": "asst-out"}

    async def fake_marketing(org_name, org_id):
        calls.append(("marketing", org_name))
        return {"inbound": "mk-in", "outbound": "mk-out", "web": "mk-web"}

    monkeypatch.setattr(vapi_service, "create_inbound_assistant", fake_inbound)
    monkeypatch.setattr(vapi_service, "create_outbound_assistant", fake_outbound)
    monkeypatch.setattr(vapi_service, "create_marketing_agents", fake_marketing)
    return calls


def test_create_organization_once_per_owner(client, login, make_user):
    login(make_user())

    created = client.post("/api/v1/organizations", json={"companyName": "Road Co", "organizationType": "fleet"})
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["is_verified"] is False

    again = client.post("/api/v1/organizations", json={"companyName": "Road Co 2"})
    assert again.status_code == 400
    assert again.json()["detail"] == "User already has an organization"


def test_invalid_organization_type(client, login, make_user):
    login(make_user())

    assert client.post("/api/v1/organizations", json={"organizationType": "bakery"}).status_code == 422


def test_client_cannot_create_for_someone_else(client, login, make_user):
    target = make_user()
    login(make_user())

    response = client.post("/api/v1/organizations", json={"clientId": target.id})

    assert response.status_code == 403


def test_first_verification_triggers_ai_setup(client, login, admin, organization, vapi_calls):
    login(admin)

    response = client.patch(f"/api/v1/organizations/{organization.id}/status", json={"status": "verified"})

    assert response.status_code == 200
    body = response.json()
    assert body["aiSetup"]["success"] is True
    assert body["organization"]["inbound_assistant_id"] == "asst-in"
    assert body["organization"]["outbound_assistant_id"] == "asst-out"
    assert body["organization"]["ai_setup_status"] == "completed"

    # Verifying again does not recreate the assistants
    again = client.patch(f"/api/v1/organizations/{organization.id}/status", json={"status": "verified"})
    assert again.json()["aiSetup"] is None
    assert [c[0] for c in vapi_calls] == ["inbound", "outbound"]


def test_failed_ai_setup_is_recorded(client, login, admin, organization, monkeypatch):
    async def failing(org_name, org_id):
        raise VapiError("VAPI API error: 401")

    monkeypatch.setattr(vapi_service, "create_inbound_assistant", failing)
    login(admin)

    body = client.patch(f"/api/v1/organizations/{organization.id}/status", json={"status": "verified"}).json()

    assert body["aiSetup"] == {"success": False, "error": "VAPI API error: 401"}
    assert body["organization"]["ai_setup_status"] == "failed"


def test_retry_after_partial_setup_keeps_inbound_assistant(
    client, login, admin, organization, vapi_calls, monkeypatch
):
    created_outbound = vapi_service.create_outbound_assistant

    async def failing(org_name, org_id):
        raise VapiError("VAPI API error: 500")

    monkeypatch.setattr(vapi_service, "create_outbound_assistant", failing)
    login(admin)

    body = client.patch(f"/api/v1/organizations/{organization.id}/status", json={"status": "verified"}).json()
    assert body["aiSetup"]["success"] is False
    assert body["organization"]["inbound_assistant_id"] == "asst-in"
    assert body["organization"]["outbound_assistant_id"] is None

    monkeypatch.setattr(vapi_service, "create_outbound_assistant", created_outbound)
    retried = client.post(f"/api/v1/organizations/{organization.id}/retry-ai-setup").json()

    assert retried["aiSetup"]["success"] is True
    assert retried["organization"]["outbound_assistant_id"] == "asst-out"
    assert [c[0] for c in vapi_calls] == ["inbound", "outbound"]


def test_retry_ai_setup_requires_verified(client, login, admin, organization):
    login(admin)

    response = client.post(f"/api/v1/organizations/{organization.id}/retry-ai-setup")

    assert response.status_code == 400


def test_status_change_is_admin_only(client, login, owner, organization):
    login(owner)

    response = client.patch(f"/api/v1/organizations/{organization.id}/status", json={"status": "verified"})

    assert response.status_code == 403


def test_enable_marketing_creates_agents(client, login, owner, organization, vapi_calls):
    login(owner)

    response = client.put(f"/api/v1/organizations/{organization.id}/marketing", json={"hasMarketingEnabled": True})

    assert response.status_code == 200
    assert response.json()["marketing_agents"] == {"inbound": "mk-in", "outbound": "mk-out", "web": "mk-web"}
    assert response.json()["has_marketing_enabled"] is True


def test_members_add_list_remove(client, login, owner, organization, make_user):
    member = make_user()
    login(owner)

    added = client.post(f"/api/v1/organizations/{organization.id}/members", json={"userId": member.id})
    assert added.status_code == 200
    assert [m["user_id"] for m in added.json()["members"]] == [member.id]

    duplicate = client.post(f"/api/v1/organizations/{organization.id}/members", json={"userId": member.id})
    assert duplicate.status_code == 400

    login(member)
    listing = client.get(f"/api/v1/organizations/{organization.id}/members").json()
    assert listing["meta"]["totalItems"] == 1

    login(owner)
    removed = client.delete(f"/api/v1/organizations/{organization.id}/members/{member.id}")
    assert removed.json()["members"] == []


def test_outsider_cannot_read_organization(client, login, organization, make_user):
    login(make_user())

    assert client.get(f"/api/v1/organizations/{organization.id}").status_code == 403


def test_upsert_policies_flags(client, login, admin, organization, make_organization):
    other = make_organization(company_name="Second")
    login(admin)

    single = client.put(f"/api/v1/organizations/{organization.id}/upsert-policies", json={"shouldUpsertPolicies": True})
    assert single.json() == {"organizationId": organization.id, "shouldUpsertPolicies": True}

    bulk = client.put(
        "/api/v1/organizations/upsert-policies/bulk",
        json={"organizationIds": [organization.id, other.id], "shouldUpsertPolicies": True},
    ).json()
    assert bulk["matchedCount"] == 2
    assert bulk["modifiedCount"] == 1

    empty = client.put("/api/v1/organizations/upsert-policies/bulk", json={"organizationIds": [], "shouldUpsertPolicies": True})
    assert empty.status_code == 400


def test_organization_by_policy_number(client, login, owner, organization, db):
    db.add(Policy(organization_id=organization.id, policy_number="ABC-123"))
    db.commit()
    login(owner)

    found = client.get("/api/v1/organizations/by-policy/abc-123")

    assert found.status_code == 200
    assert found.json() == {"organizationId": organization.id, "companyName": "Acme Towing"}
    assert client.get("/api/v1/organizations/by-policy/nope").status_code == 404


def test_delete_organization_removes_its_tickets(client, login, admin, organization, db, foreign_keys):
    db.add(Ticket(organization_id=organization.id, current_cell_number="5550000000"))
    db.commit()
    login(admin)

    response = client.delete(f"/api/v1/organizations/{organization.id}")

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Ticket).count() == 0
