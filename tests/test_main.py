import redis

from roadside import rate_limiter


class PingingRedis:
    def ping(self):
        return True


def test_root(client):
    assert client.get("/").json() == {"message": "Roadside Assistance API is running"}


def test_health_reports_redis(client, monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: PingingRedis())

    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["redis"]["connected"] is True


def test_health_degraded_without_redis(client, monkeypatch):
    def unavailable():
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)

    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["redis"] == {"connected": False, "error": "connection refused"}


def test_validation_errors_are_json(client, login, owner):
    login(owner)

    response = client.post("/api/v1/campaigns/1/leads", json={"name": "A", "phoneNumber": "abc"})

    assert response.status_code == 422
    [error] = response.json()["detail"]
    assert "ctx" not in error
    assert error["loc"] == ["body", "phoneNumber"]
