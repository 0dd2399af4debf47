from datetime import datetime, timedelta

import pytest

from roadside.domain.policies.service import PolicyService, build_policy_address, policy_validation_result
from roadside.models import Policy


def _date(days):
    return (datetime.utcnow() + timedelta(days=days)).strftime("%m/%d/%Y")


@pytest.fixture
def policy(db, organization):
    policy = Policy(
        organization_id=organization.id,
        policy_number="POL-100",
        insured_first_name="Jane",
        insured_last_name="Driver",
        policy_expiration_date=_date(60),
        vehicles=[{"vehicle_manufacturer": "Ford", "vehicle_model": "F-150"}],
    )
    db.add(policy)
    db.commit()
    db.refresh(policy)
    return policy


def test_build_policy_address_joins_non_empty_parts():
    row = {"risk_address_line_1": "1 Main St", "risk_address_city": "Austin", "risk_address_state": "", "risk_address_zip_code": 78701}

    assert build_policy_address(row) == "1 Main St Austin 78701"


def test_validation_result_states(policy):
    now = datetime.utcnow()

    assert policy_validation_result(None, now)["exists"] is False

    valid = policy_validation_result(policy, now)
    assert valid["exists"] is True and valid["expired"] is False
    assert valid["policyData"]["policy_number"] == "POL-100"

    expired = policy_validation_result(policy, now + timedelta(days=365))
    assert expired == {"exists": True, "expired": True, "message": "The policy exists but is expired"}


def test_validate_endpoint_is_case_insensitive(client, login, owner, policy):
    login(owner)

    assert client.post("/api/v1/policies/validate", json={"policy_number": "pol-100"}).json()["exists"] is True
    assert client.post("/api/v1/policies/validate", json={}).json()["message"] == "Policy number is required"


def test_create_policy_builds_address_and_rejects_duplicates(client, login, owner, organization):
    login(owner)
    payload = {
        "policy_number": " NEW-1 ",
        "risk_address_line_1": "9 Elm",
        "risk_address_city": "Dallas",
        "risk_address_state": "TX",
    }

    created = client.post("/api/v1/policies", json=payload)
    assert created.status_code == 201
    assert created.json()["policy_number"] == "NEW-1"
    assert created.json()["address"] == "9 Elm Dallas TX"

    duplicate = client.post("/api/v1/policies", json={**payload, "policy_number": "new-1"})
    assert duplicate.status_code == 400


def test_policies_are_scoped_to_organization(client, login, policy, make_user, make_organization):
    stranger = make_user()
    make_organization(owner=stranger, company_name="Elsewhere")
    login(stranger)

    assert client.get(f"/api/v1/policies/{policy.id}").status_code == 404
    assert client.get("/api/v1/policies").json()["totalDocs"] == 0


def test_update_policy_recomputes_address(client, login, owner, policy):
    login(owner)

    response = client.patch(f"/api/v1/policies/{policy.id}", json={"risk_address_city": "Houston"})

    assert response.status_code == 200
    assert response.json()["address"] == "Houston"


def test_bulk_upload_individual_mode_skips_existing(db, organization, policy):
    rows = [{"policy_number": "POL-100"}, {"policy_number": "POL-200"}, {"insured_first_name": "No number"}]

    result = PolicyService(db).bulk_upload(rows, organization.id)

    assert result["mode"] == "individual"
    assert result["summary"]["successful"] == 1
    assert result["summary"]["failed"] == 2
    assert result["summary"]["successRate"] == 33.33
    assert {e["policy_number"] for e in result["summary"]["errors"]} == {"POL-100", "unknown"}


def test_bulk_upload_upsert_mode_replaces_policies(db, organization, policy):
    organization.should_upsert_policies = True
    db.commit()

    result = PolicyService(db).bulk_upload([{"policy_number": "A"}, {"policy_number": "B"}], organization.id)

    assert result["mode"] == "upsert"
    assert result["count"] == 2
    numbers = sorted(p.policy_number for p in db.query(Policy).filter(Policy.organization_id == organization.id))
    assert numbers == ["A", "B"]


def test_bulk_upload_unknown_organization(db):
    with pytest.raises(ValueError, match="Organization not found"):
        PolicyService(db).bulk_upload([{"policy_number": "A"}], 999)
