import pytest

from roadside.models import Service, VehicleClassification


@pytest.fixture
def jump_start(db, organization):
    service = Service(
        name="Jump Start",
        organization_id=organization.id,
        weight_classification=[
            {"type": "light_duty", "price": 50},
            {"type": "medium_duty", "price": 75},
            {"type": "heavy_duty", "price": 120},
        ],
        states_specific_price=[
            {"state": "CA", "weight_classification": [{"type": "light_duty", "price": 65}]},
        ],
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def system_lockout(db):
    service = Service(name="Lockout", weight_classification=[{"type": "light_duty", "price": 40}])
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def quote(client, **fields):
    return client.post("/api/v1/services/calculate-pricing", json=fields)


def test_create_service_checks_duplicates(client, login, owner, organization):
    login(owner)

    created = client.post(
        "/api/v1/services",
        json={"name": " Winch Out ", "weight_classification": [{"type": "light_duty", "price": 90}]},
    )
    assert created.status_code == 201
    assert created.json()["data"]["name"] == "Winch Out"
    assert created.json()["data"]["organization_id"] == organization.id

    duplicate = client.post(
        "/api/v1/services",
        json={
            "name": "Tire",
            "weight_classification": [{"type": "light_duty", "price": 1}, {"type": "light_duty", "price": 2}],
        },
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Duplicate weight classifications found: light_duty"

    empty_state = client.post(
        "/api/v1/services", json={"name": "Tire", "statesSpecificPrice": [{"state": "TX", "weight_classification": []}]}
    )
    assert empty_state.status_code == 400


def test_list_includes_system_services(client, db, login, owner, jump_start, system_lockout, make_organization):
    foreign = make_organization(company_name="Elsewhere")
    db.add(Service(name="Fuel", organization_id=foreign.id))
    db.commit()

    login(owner)
    names = [s["name"] for s in client.get("/api/v1/services").json()["data"]]

    assert names == ["Jump Start", "Lockout"]


def test_system_service_is_read_only_for_owner(client, login, owner, organization, system_lockout):
    login(owner)

    assert client.get(f"/api/v1/services/{system_lockout.id}").status_code == 200
    assert client.put(f"/api/v1/services/{system_lockout.id}", json={"name": "Mine"}).status_code == 403
    assert client.delete(f"/api/v1/services/{system_lockout.id}").status_code == 403


def test_state_price_entries(client, login, owner, jump_start):
    login(owner)
    base = f"/api/v1/services/{jump_start.id}/states"

    assert client.post(base, json={"state": "ca", "weight_classification": [{"type": "light_duty", "price": 1}]}).status_code == 400
    added = client.post(base, json={"state": "tx", "weight_classification": [{"type": "heavy_duty", "price": 150}]})
    assert [e["state"] for e in added.json()["data"]["states_specific_price"]] == ["CA", "TX"]

    removed = client.delete(f"{base}/tx")
    assert [e["state"] for e in removed.json()["data"]["states_specific_price"]] == ["CA"]
    assert client.delete(f"{base}/TX").status_code == 404


def test_quote_uses_lowest_price_without_vehicle_type(client, login, owner, jump_start, system_lockout):
    login(owner)

    result = quote(client, services=[jump_start.id, str(system_lockout.id)], amount=100, state="ny").json()

    assert result["serviceTotal"] == 90.0
    assert result["total"] == 90.0
    assert result["state"] == "NY"
    assert result["isAcceptable"] is False
    assert result["towingDetails"] is None


def test_quote_state_table_replaces_base(client, login, owner, jump_start):
    login(owner)

    california = quote(client, services=[jump_start.id], amount=65, state="CA", vehicleType="light_duty").json()
    assert california["serviceTotal"] == 65.0
    assert california["isAcceptable"] is True

    # Weight class missing from the state table falls back to the base table
    heavy = quote(client, services=[jump_start.id], amount=0, state="CA", vehicleType="heavy_duty").json()
    assert heavy["serviceTotal"] == 120.0


def test_quote_with_towing(client, login, owner, organization, db, jump_start):
    db.add(
        VehicleClassification(
            organization_id=organization.id,
            rate_per_mile=4,
            states_specific=[{"state": "TX", "returnMileageThreshold": 0, "ratePerMile": 6}],
        )
    )
    db.commit()
    login(owner)

    result = quote(
        client,
        services=[jump_start.id],
        amount=200,
        state="TX",
        vehicleType="medium_duty",
        milesToCover=12.5,
        isTowing=True,
    ).json()

    assert result["towingDetails"]["billableMiles"] == 7.5
    assert result["towingDetails"]["ratePerMile"] == 6.0
    assert result["towingCost"] == 45.0
    assert result["total"] == 120.0

    short = quote(
        client, services=[jump_start.id], amount=0, state="NY", vehicleType="light_duty", milesToCover=3, isTowing=True
    ).json()
    assert short["towingCost"] == 0.0


@pytest.mark.parametrize(
    "fields, detail",
    [
        ({"amount": 1, "state": "TX"}, "Services array is required and cannot be empty"),
        ({"services": [1], "state": "TX"}, "Amount is required"),
        ({"services": [1], "amount": -1, "state": "TX"}, "Amount must be >= 0"),
        ({"services": [1], "amount": 1}, "State is required"),
        ({"services": [1], "amount": 1, "state": "TX", "vehicleType": "bus"}, "Invalid vehicle type. Valid types: light_duty, medium_duty, heavy_duty"),
    ],
)
def test_quote_validation(client, login, owner, organization, fields, detail):
    login(owner)

    response = quote(client, **fields)

    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_quote_reports_inaccessible_services(client, login, owner, organization, jump_start):
    login(owner)

    response = quote(client, services=[jump_start.id, 999], amount=1, state="TX")

    assert response.status_code == 404
    assert response.json()["detail"] == "Services not found or not accessible: 999"
