import httpx
import pytest

from roadside.services import kb_ingestion_service


@pytest.fixture
def ingestion(monkeypatch):
    calls = {"uploaded": [], "deleted": []}

    async def fake_upload(url, kb_item_id, organization_id=None, mechanic_id=None):
        calls["uploaded"].append((url, kb_item_id, organization_id, mechanic_id))
        return {"document_id": "doc-1"}

    async def fake_delete(kb_item_id):
        calls["deleted"].append(kb_item_id)

    monkeypatch.setattr(kb_ingestion_service, "upload_document_url", fake_upload)
    monkeypatch.setattr(kb_ingestion_service, "delete_document", fake_delete)
    return calls


def test_create_url_item_becomes_active(client, login, owner, organization, ingestion):
    login(owner)

    response = client.post(
        "/api/v1/kb-items",
        json={
            "type": "url",
            "key": "faq",
            "title": " FAQ ",
            "url": "https://example.com/faq",
            "tags": "towing, , billing",
            "organization": organization.id,
        },
    )

    assert response.status_code == 201
    item = response.json()["data"]
    assert item["status"] == "active"
    assert item["title"] == "FAQ"
    assert item["tags"] == ["towing", "billing"]
    assert item["external_document_id"] == "doc-1"
    assert ingestion["uploaded"] == [("https://example.com/faq", item["id"], organization.id, None)]


def test_create_item_without_tags(client, login, owner, organization, ingestion):
    login(owner)

    response = client.post(
        "/api/v1/kb-items",
        json={"type": "url", "key": "faq", "title": "FAQ", "url": "https://example.com/faq", "organization": organization.id},
    )

    assert response.status_code == 201
    assert response.json()["data"]["tags"] == []


def test_create_item_owner_rules(client, login, owner, organization, mechanic, ingestion):
    login(owner)
    base = {"type": "file", "key": "manual.pdf", "title": "Manual"}

    neither = client.post("/api/v1/kb-items", json=base)
    assert neither.json()["detail"] == "Either organization or mechanic must be provided"

    both = client.post("/api/v1/kb-items", json={**base, "organization": organization.id, "mechanic": mechanic.id})
    assert both.json()["detail"] == "Cannot have both organization and mechanic"

    missing = client.post("/api/v1/kb-items", json={**base, "mechanic": 999})
    assert missing.status_code == 404

    assert client.post("/api/v1/kb-items", json={**base, "type": "video", "organization": organization.id}).status_code == 422


def test_ingestion_failure_marks_item_failed(client, login, owner, mechanic, monkeypatch):
    async def failing(*args, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(kb_ingestion_service, "upload_document_url", failing)
    login(owner)

    item = client.post(
        "/api/v1/kb-items", json={"type": "file", "key": "a.pdf", "title": "A", "mechanic": mechanic.id}
    ).json()["data"]

    assert item["status"] == "failed"
    assert "connection refused" in item["error_message"]


def test_listing_filters_and_soft_delete(client, login, owner, organization, mechanic, ingestion):
    login(owner)
    org_item = client.post(
        "/api/v1/kb-items", json={"type": "url", "key": "k1", "title": "Org doc", "organization": organization.id}
    ).json()["data"]
    client.post("/api/v1/kb-items", json={"type": "url", "key": "k2", "title": "Mech doc", "mechanic": mechanic.id})

    assert client.get("/api/v1/kb-items").json()["data"]["totalDocs"] == 2
    assert client.get(f"/api/v1/kb-items/organization/{organization.id}").json()["data"]["totalDocs"] == 1
    assert client.get(f"/api/v1/kb-items/mechanic/{mechanic.id}").json()["data"]["totalDocs"] == 1
    assert client.get("/api/v1/kb-items", params={"search": "mech"}).json()["data"]["totalDocs"] == 1

    updated = client.put(f"/api/v1/kb-items/{org_item['id']}", json={"title": "Renamed"})
    assert updated.json()["data"]["title"] == "Renamed"

    deleted = client.delete(f"/api/v1/kb-items/{org_item['id']}")
    assert deleted.json()["data"]["status"] == "deleted"
    assert ingestion["deleted"] == [org_item["id"]]
    assert client.get(f"/api/v1/kb-items/{org_item['id']}").status_code == 404
    assert client.get("/api/v1/kb-items").json()["data"]["totalDocs"] == 1
