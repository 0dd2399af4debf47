from datetime import datetime, timedelta

import pytest

from roadside.domain.campaigns import tasks
from roadside.domain.campaigns.timer import CampaignTimerService, is_lead_ready
from roadside.models_campaigns import Campaign, CampaignLead, CampaignMessagingSequence
from roadside.services import twilio_service

MESSAGES = [
    {"id": "m1", "message": "Need a tow plan?", "nextContactHourInterval": 24},
    {"id": "m2", "message": "Still interested?", "nextContactHourInterval": 48},
]


@pytest.fixture
def sms(monkeypatch):
    sent = []

    async def fake_send_sms(to_phone, message_body, from_number=None):
        sent.append((to_phone, message_body))
        if to_phone == "+15550000000":
            return False, None, "Invalid 'To' Phone Number", 21211
        return True, f"SM{len(sent)}", None, None

    monkeypatch.setattr(twilio_service, "send_sms", fake_send_sms)
    return sent


@pytest.fixture
def running_campaign(db, organization):
    campaign = Campaign(
        name="Spring promo", organization_id=organization.id, is_active=True, status="active", messages_list=MESSAGES
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


@pytest.fixture
def make_lead(db):
    def _make_lead(campaign, phone="+15551234567", **fields):
        lead = CampaignLead(
            campaign_id=campaign.id, organization_id=campaign.organization_id, name="Lee", phone_number=phone, **fields
        )
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead

    return _make_lead


class TestLeadReadiness:
    now = datetime(2026, 3, 1, 12, 0)

    def test_new_lead_is_ready(self):
        assert is_lead_ready(CampaignLead(status="active", contact_attempts=0), MESSAGES, self.now)

    def test_waits_for_interval_of_next_message(self):
        lead = CampaignLead(status="contacted", contact_attempts=1, last_contacted_at=self.now - timedelta(hours=47))
        assert not is_lead_ready(lead, MESSAGES, self.now)

        lead.last_contacted_at = self.now - timedelta(hours=48)
        assert is_lead_ready(lead, MESSAGES, self.now)

    def test_stopped_leads_are_never_ready(self):
        assert not is_lead_ready(CampaignLead(status="do_not_contact", contact_attempts=0), MESSAGES, self.now)
        assert not is_lead_ready(CampaignLead(status="active", contact_attempts=0), [], self.now)


async def test_timer_sends_next_message_and_records_sequence(db, running_campaign, make_lead, sms):
    lead = make_lead(running_campaign)
    now = datetime(2026, 3, 1, 12, 0)

    result = await CampaignTimerService(db).process_campaign(running_campaign, now)

    assert result["sent"] == 1
    assert sms == [("+15551234567", "Need a tow plan?")]
    db.refresh(lead)
    assert lead.status == "contacted"
    assert lead.contact_attempts == 1
    sequence = db.query(CampaignMessagingSequence).one()
    assert sequence.sequence_order == 1
    assert sequence.message_id == "SM1"
    assert sequence.next_scheduled_at == now + timedelta(hours=24)

    # Not due again until the second message's interval has passed
    again = await CampaignTimerService(db).process_campaign(running_campaign, now + timedelta(hours=24))
    assert again["processed"] == 0


async def test_exhausted_lead_is_completed(db, running_campaign, make_lead, sms):
    lead = make_lead(
        running_campaign, status="contacted", contact_attempts=2, last_contacted_at=datetime(2026, 1, 1)
    )

    result = await CampaignTimerService(db).process_campaign(running_campaign, datetime(2026, 3, 1))

    assert result["leadResults"][0]["completed"] is True
    assert sms == []
    db.refresh(lead)
    assert lead.status == "completed"


async def test_invalid_number_disables_lead(db, running_campaign, make_lead, sms):
    lead = make_lead(running_campaign, phone="+15550000000")

    result = await CampaignTimerService(db).process_campaign(running_campaign)

    assert result["errors"] == 1
    db.refresh(lead)
    assert lead.status == "inactive"
    assert lead.contact_attempts == 0


async def test_paused_campaign_is_skipped(db, running_campaign, make_lead, sms):
    running_campaign.status = "paused"
    db.commit()
    make_lead(running_campaign)

    result = await CampaignTimerService(db).process_campaign(running_campaign)

    assert result["success"] is False
    assert sms == []


async def test_timer_task_summarises_run(db, session_factory, running_campaign, make_lead, sms, monkeypatch):
    monkeypatch.setattr(tasks, "SessionLocal", session_factory)
    make_lead(running_campaign)
    make_lead(running_campaign, phone="+15559876543")

    summary = await tasks.campaign_timer_task({})

    assert summary["campaignsProcessed"] == 1
    assert summary["totalSent"] == 2
    assert "results" not in summary


def test_campaign_lifecycle(client, login, owner, organization, sms):
    login(owner)

    campaign = client.post(
        "/api/v1/campaigns",
        json={"name": "Winter", "messagesList": [{"message": "Hello", "nextContactHourInterval": 2}]},
    ).json()["data"]
    assert campaign["status"] == "draft"
    assert campaign["organization_id"] == organization.id
    assert campaign["messages_list"][0]["id"]

    lead = client.post(f"/api/v1/campaigns/{campaign['id']}/leads", json={"name": "Lee", "phoneNumber": "+15551234567"})
    assert lead.status_code == 201
    assert sms == []

    activated = client.post(f"/api/v1/campaigns/{campaign['id']}/activate").json()["data"]
    assert activated["status"] == "active"
    assert sms == [("+15551234567", "Hello")]

    stats = client.get(f"/api/v1/campaigns/{campaign['id']}/stats").json()["data"]
    assert stats["leads"]["contacted"] == 1
    assert stats["messages"]["sent"] == 1

    sequences = client.get(f"/api/v1/campaigns/{campaign['id']}/messaging-sequences").json()["data"]
    assert sequences["totalDocs"] == 1

    paused = client.post(f"/api/v1/campaigns/{campaign['id']}/deactivate").json()["data"]
    assert paused["status"] == "paused"


def test_activation_requires_messages(client, login, owner, organization):
    login(owner)
    campaign = client.post("/api/v1/campaigns", json={"name": "Empty"}).json()["data"]

    response = client.post(f"/api/v1/campaigns/{campaign['id']}/activate")

    assert response.status_code == 400


def test_leads_on_active_campaign_get_first_message(client, login, owner, running_campaign, sms):
    login(owner)

    response = client.post(
        f"/api/v1/campaigns/{running_campaign.id}/leads/bulk",
        json={"leads": [{"name": "A", "phoneNumber": "+15551112222"}, {"name": "B", "phoneNumber": "+15553334444"}]},
    )

    assert response.json()["message"] == "2 leads added successfully"
    assert [lead["status"] for lead in response.json()["data"]] == ["contacted", "contacted"]
    assert len(sms) == 2


def test_lead_phone_validation(client, login, owner, running_campaign):
    login(owner)

    response = client.post(f"/api/v1/campaigns/{running_campaign.id}/leads", json={"name": "A", "phoneNumber": "abc"})

    assert response.status_code == 422


def test_other_organization_cannot_see_campaign(client, login, running_campaign, make_user):
    login(make_user())

    assert client.get(f"/api/v1/campaigns/{running_campaign.id}").status_code == 403


def test_timer_process_is_admin_only(client, login, owner, admin, running_campaign, sms):
    login(owner)
    assert client.post("/api/v1/campaign-timer/process").status_code == 403

    login(admin)
    result = client.post("/api/v1/campaign-timer/process").json()
    assert result["campaignsProcessed"] == 1
    assert client.get("/api/v1/campaign-timer/health").json()["status"] == "healthy"
