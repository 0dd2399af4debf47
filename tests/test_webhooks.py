import json
from datetime import datetime, timedelta

import pytest

from roadside import config
from roadside.models import AICallActivity, Policy, ServiceRequest, Ticket
from roadside.services import openai_service


def _date(days):
    return (datetime.utcnow() + timedelta(days=days)).strftime("%m/%d/%Y")


def tool_event(arguments, assistant_id="asst-in", customer="+1-555-222-3333"):
    return {
        "message": {
            "type": "tool-calls",
            "toolCalls": [{"id": "tc-1", "function": {"name": "createTicket", "arguments": arguments}}],
            "call": {"id": "call-1", "assistantId": assistant_id, "customer": {"number": customer}},
        }
    }


def tool_payload(response):
    [result] = response.json()["results"]
    assert result["toolCallId"] == "tc-1"
    return json.loads(result["result"])


@pytest.fixture
def ai_organization(db, organization):
    organization.inbound_assistant_id = "asst-in"
    organization.ai_phone_number = "+15559990000"
    organization.inbound_ai = True
    organization.marketing_phone_number = "+15558880000"
    organization.marketing_agents = {"inbound": "mk-in", "outbound": "mk-out", "web": "mk-web"}
    db.commit()
    return organization


@pytest.fixture
def categorize(monkeypatch):
    async def fake_categorize(description):
        return [{"key": "tow", "label": "Towing"}] if description else []

    monkeypatch.setattr(openai_service, "categorize_breakdown_reason", fake_categorize)


@pytest.fixture
def policy(db, ai_organization):
    policy = Policy(
        organization_id=ai_organization.id,
        policy_number="POL-7",
        insured_first_name="Jane",
        insured_last_name="Driver",
        policy_expiration_date=_date(30),
        agency_name="Best Agency",
        vehicles=[{"vehicle_manufacturer": "Ford", "vehicle_model": "F-150", "vehicle_color": "Red"}],
    )
    db.add(policy)
    db.commit()
    return policy


def assistant_request(number):
    return {"message": {"type": "assistant-request", "phoneNumber": {"number": number}, "call": {"id": "call-9"}}}


def test_inbound_hands_call_to_organization_assistant(client, db, ai_organization):
    response = client.post("/api/v1/webhook/inbound-hook", json=assistant_request("+15559990000"))

    assert response.status_code == 200
    body = response.json()["messageResponse"]
    assert body["assistantId"] == "asst-in"
    assert body["assistantOverrides"]["variableValues"]["companyName"] == "Acme Towing"
    activity = db.query(AICallActivity).one()
    assert (activity.call_id, activity.call_type) == ("call-9", "inbound")


def test_inbound_refusals_are_spoken(client, db, ai_organization, monkeypatch):
    unknown = client.post("/api/v1/webhook/inbound-hook", json=assistant_request("+10000000000"))
    assert unknown.status_code == 200
    assert unknown.json()["assistant"]["firstMessage"] == "No AI config found for this number"

    ai_organization.inbound_ai = False
    db.commit()
    disabled = client.post("/api/v1/webhook/inbound-hook", json=assistant_request("+15559990000"))
    assert disabled.json()["assistant"]["firstMessage"] == "Sorry, This call feature is not activated from your end"

    monkeypatch.setattr(config, "INBOUND_CALLS_ENABLED", False)
    off = client.post("/api/v1/webhook/inbound-hook", json=assistant_request("+15559990000"))
    assert off.json()["assistant"]["firstMessage"] == "Sorry, this service is currently unavailable"


def test_inbound_status_update(client):
    response = client.post("/api/v1/webhook/inbound-hook", json={"message": {"type": "status-update", "status": "ended"}})

    assert response.json() == {"status": "ok"}


def test_marketing_inbound_uses_marketing_agent(client, ai_organization):
    response = client.post("/api/v1/webhook/marketing-inbound-hook", json=assistant_request("+15558880000"))

    assert response.json()["messageResponse"]["assistantId"] == "mk-in"


def test_marketing_web_report(client, db, ai_organization):
    started = {"message": {"type": "status-update", "call": {"id": "web-1", "assistantId": "mk-web"}}}
    assert client.post("/api/v1/webhook/marketing-web-hook", json=started).json()["message"] == "AI call activity created"

    report = {
        "message": {
            "type": "end-of-call-report",
            "call": {"id": "web-1"},
            "summary": "Asked about pricing",
            "transcript": "AI: Hi\nUser: Price?",
            "analysis": {"structuredData": {"interested": True}},
        }
    }
    assert client.post("/api/v1/webhook/marketing-web-hook", json=report).json()["success"] is True

    activity = db.query(AICallActivity).one()
    assert activity.organization_id == ai_organization.id
    assert activity.call_type == "web-call"
    assert activity.summary == "Asked about pricing"
    assert activity.structured_data == {"interested": True}


def test_outbound_records_mechanic_offer(client, db, organization, mechanic):
    ticket = Ticket(organization_id=organization.id, current_cell_number="5550000000")
    db.add(ticket)
    db.commit()
    event = {
        "message": {
            "functionCall": {
                "output": {"ticket_id": ticket.id, "sp_id": mechanic.id, "total_cost": 95, "eta": 30}
            }
        }
    }

    response = client.post("/api/v1/webhook/call-mechanics", json=event)

    assert response.json()["success"] is True
    request = db.query(ServiceRequest).one()
    assert (request.status, request.eta, request.total_cost) == ("wait", "30", 95.0)

    event["message"]["functionCall"]["output"]["ticket_id"] = 999
    assert client.post("/api/v1/webhook/outbound-hook", json=event).json()["success"] is False


def test_create_ticket_tool_with_verified_policy(client, db, policy, categorize):
    arguments = json.dumps(
        {"policy_number": "pol-7", "breakdown_reason": "Engine smoke", "current_address": "I-35 exit 12"}
    )

    payload = tool_payload(client.post("/api/v1/webhook/create-ticket", json=tool_event(arguments)))

    assert payload["success"] is True
    ticket = db.get(Ticket, payload["ticketId"])
    assert ticket.insured_name == "Jane Driver"
    assert ticket.vehicle_make == "Ford"
    assert ticket.vehicle_color == "Red"
    assert ticket.policy_number == "POL-7"
    assert ticket.current_cell_number == "+15552223333"
    assert ticket.breakdown_reason == [{"key": "tow", "label": "Towing"}]
    assert ticket.assigned_by_ai is True


def test_create_ticket_tool_keeps_unverified_policy_number(client, db, ai_organization, categorize):
    arguments = {"policy_number": "NOPE-1", "customer_name": "Sam", "vehicle_make": "Kia", "vehicle_model": "Rio"}

    payload = tool_payload(client.post("/api/v1/webhook/create-ticket", json=tool_event(arguments)))

    ticket = db.get(Ticket, payload["ticketId"])
    assert ticket.policy_number is None
    assert ticket.notes == "Unverified policy number: NOPE-1"
    assert ticket.breakdown_reason_text == "N/A"


def test_create_ticket_tool_unknown_assistant(client, ai_organization, categorize):
    payload = tool_payload(client.post("/api/v1/webhook/create-ticket", json=tool_event({}, assistant_id="other")))

    assert payload == {"success": False, "message": "Configuration not found for this assistant"}


def test_validate_policy_tool(client, policy):
    event = tool_event({"policy_number": "POL-7"})

    payload = tool_payload(client.post("/api/v1/webhook/policies/validate", json=event))

    assert payload["exists"] is True
    assert payload["expired"] is False

    missing = tool_payload(client.post("/api/v1/webhook/policies/validate", json=tool_event({})))
    assert missing["message"] == "Policy number is required"


def test_create_call_returns_web_agent(client, ai_organization, mechanic):
    mechanic_agent = client.get("/api/v1/webhook/create-call", params={"mechanicId": mechanic.id})
    assert mechanic_agent.json()["data"] == {"agentId": "web-agent-mech", "type": "mechanic"}

    org_agent = client.get(
        "/api/v1/webhook/create-call", params={"organizationId": ai_organization.id, "isOrg": "true"}
    )
    assert org_agent.json()["data"] == {"agentId": "mk-web", "type": "organization"}

    assert client.get("/api/v1/webhook/create-call").status_code == 400
    assert client.get("/api/v1/webhook/create-call", params={"mechanicId": 999}).status_code == 404


def test_webhook_health(client):
    body = client.get("/api/v1/webhook/health").json()

    assert body["success"] is True
    assert "/webhook/create-ticket" in body["endpoints"]
