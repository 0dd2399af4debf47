import pytest

from roadside.domain.mechanics.service import MechanicService
from roadside.models import Mechanic, ServiceRequest, Ticket

NEW_MECHANIC = {
    "firstName": "Sam",
    "lastName": "Bolt",
    "email": "Sam@Bolt.com",
    "mobileNumber": "+15552223333",
    "city": "Austin",
    "state": "TX",
}


@pytest.fixture(autouse=True)
def fake_geocoder(monkeypatch):
    async def fake_geocode(address):
        return {"latitude": 30.2, "longitude": -97.7} if address else None

    monkeypatch.setattr("roadside.domain.mechanics.service.geocode_address", fake_geocode)


def test_create_mechanic_geocodes_and_links_organization(client, login, owner, organization, db):
    login(owner)

    response = client.post("/api/v1/mechanics", json=NEW_MECHANIC)

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "sam@bolt.com"
    assert body["latitude"] == 30.2
    assert body["is_accepted"] is False
    mechanic = db.get(Mechanic, body["id"])
    assert mechanic.organization_ids == [organization.id]


@pytest.mark.parametrize("missing,label", [("firstName", "First name"), ("mobileNumber", "Mobile number")])
def test_create_mechanic_required_fields(client, login, owner, organization, missing, label):
    login(owner)

    response = client.post("/api/v1/mechanics", json={**NEW_MECHANIC, missing: None})

    assert response.status_code == 400
    assert response.json()["detail"] == f"{label} is required"


def test_duplicate_mobile_number(client, login, owner, organization, mechanic):
    login(owner)

    response = client.post("/api/v1/mechanics", json={**NEW_MECHANIC, "mobileNumber": mechanic.mobile_number})

    assert response.status_code == 400
    assert response.json()["detail"] == "Mobile number already exists"


def test_invalid_email_is_rejected(client, login, owner):
    login(owner)

    assert client.post("/api/v1/mechanics", json={**NEW_MECHANIC, "email": "nope"}).status_code == 422


def test_blacklisted_mechanics_are_hidden_by_default(client, login, owner, organization, mechanic):
    login(owner)

    listed = client.get("/api/v1/mechanics").json()["data"]
    assert listed["totalDocs"] == 1

    blacklisted = client.post(f"/api/v1/mechanics/{mechanic.id}/blacklist", json={"reason": "No show"})
    assert blacklisted.json()["data"]["blacklisted"] is True

    assert client.get("/api/v1/mechanics").json()["data"]["totalDocs"] == 0
    assert client.get("/api/v1/mechanics", params={"blacklist": "false"}).json()["data"]["totalDocs"] == 1

    client.delete(f"/api/v1/mechanics/{mechanic.id}/blacklist")
    assert client.get("/api/v1/mechanics").json()["data"]["totalDocs"] == 1


def test_invalid_sort_field(client, login, owner, organization):
    login(owner)

    response = client.get("/api/v1/mechanics", params={"sortField": "password"})

    assert response.status_code == 400


def test_only_admins_accept_mechanics(client, login, owner, admin, mechanic):
    login(owner)
    assert client.patch(f"/api/v1/mechanics/{mechanic.id}", json={"isAccepted": True}).status_code == 403

    login(admin)
    response = client.patch(f"/api/v1/mechanics/{mechanic.id}", json={"isAccepted": True})
    assert response.status_code == 200
    assert response.json()["is_accepted"] is True


def test_other_organizations_cannot_see_mechanic(client, login, make_user, make_organization, mechanic):
    stranger = make_user()
    make_organization(owner=stranger, company_name="Elsewhere")
    login(stranger)

    assert client.get(f"/api/v1/mechanics/{mechanic.id}").status_code == 403


def test_bulk_upload_links_existing_and_dedupes(db, organization, owner, mechanic, make_organization):
    other = make_organization(company_name="Fleet Two")
    rows = [
        {"firstName": "Ann", "lastName": "Lug", "primaryEmail": "ann@lug.com", "officeNumber": "+15557770000"},
        {"firstName": "Ann", "lastName": "Lug", "primaryEmail": "ANN@lug.com", "officeNumber": "+15557770000"},
        {"firstName": "Mike", "primaryEmail": "other@x.com", "officeNumber": mechanic.mobile_number},
    ]

    result = MechanicService(db).bulk_upload(rows, "client", owner.id, other.id, provider_type="service_provider")

    assert result["count"] == 2
    assert result["updated"] == 1
    assert len(result["uploaded"]) == 1
    assert result["uploaded"][0]["provider_type"] == "service_provider"
    db.refresh(mechanic)
    assert sorted(mechanic.organization_ids) == sorted([organization.id, other.id])


def test_bulk_upload_without_rows():
    with pytest.raises(ValueError):
        MechanicService(None).bulk_upload([], "client", 1, 1)


def test_delete_mechanic_releases_tickets_and_offers(
    client, login, admin, organization, mechanic, db, foreign_keys
):
    ticket = Ticket(
        organization_id=organization.id,
        current_cell_number="5550000000",
        assigned_subcontractor_id=mechanic.id,
        status="assigned",
    )
    db.add(ticket)
    db.commit()
    db.add(ServiceRequest(ticket_id=ticket.id, mechanic_id=mechanic.id, total_cost=80.0))
    db.commit()
    login(admin)

    response = client.delete(f"/api/v1/mechanics/{mechanic.id}")

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Ticket, ticket.id).assigned_subcontractor_id is None
    assert db.query(ServiceRequest).count() == 0
