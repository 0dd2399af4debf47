"""Shared fixtures - in-memory SQLite, dependency overrides and a fake Redis."""

import os

# Must be set before the roadside package is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import time
from types import SimpleNamespace

import pytest
from arq.constants import job_key_prefix
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roadside import cache as cache_module
from roadside.auth import get_current_user
from roadside.database import Base, get_db
from roadside.main import app
from roadside.models import ADMIN, CLIENT, Mechanic, Organization, OrganizationMember, User
from roadside.queue import get_job_pool

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeRedis:
    """The async Redis / arq pool commands the job tracker and enqueue paths use"""

    def __init__(self):
        self.values = {}
        self.expiry = {}
        self.zsets = {}
        self.jobs = []

    async def set(self, key, value, ex=None):
        self.values[key] = value
        if ex:
            self.expiry[key] = time.time() + ex
        else:
            self.expiry.pop(key, None)
        return True

    async def get(self, key):
        return self.values.get(key)

    async def ttl(self, key):
        if key not in self.values:
            return -2
        if key not in self.expiry:
            return -1
        return int(self.expiry[key] - time.time())

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            self.expiry.pop(key, None)
        return removed

    async def expire(self, key, seconds):
        self.expiry[key] = time.time() + seconds
        return True

    async def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def zrange(self, key, start, end):
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1])
        names = [m for m, _ in members]
        return names[start:] if end == -1 else names[start : end + 1]

    async def zrem(self, key, *members):
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    async def enqueue_job(self, function, *args, _job_id=None, **kwargs):
        # arq refuses a job id whose job key still exists
        if _job_id and job_key_prefix + _job_id in self.values:
            return None
        if _job_id:
            self.values[job_key_prefix + _job_id] = b"job"
        job = {"function": function, "args": args, "job_id": _job_id, "options": kwargs}
        self.jobs.append(job)
        return SimpleNamespace(job_id=_job_id)

    def jobs_for(self, function):
        return [job for job in self.jobs if job["function"] == function]


class FakeSyncRedis:
    """Sync client for the JSON cache"""

    def __init__(self):
        self.values = {}

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value

    def delete(self, key):
        self.values.pop(key, None)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def foreign_keys(db):
    """Enforce ON DELETE rules the way Postgres does"""
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
    yield
    db.rollback()
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")


@pytest.fixture
def session_factory(db):
    """Stand-in for SessionLocal in background tasks"""
    return TestingSessionLocal


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def fake_cache(monkeypatch):
    client = FakeSyncRedis()
    monkeypatch.setattr(cache_module.cache, "redis_client", client)
    return client


@pytest.fixture
def auth_state():
    return {"user": None}


@pytest.fixture
def client(db, fake_redis, auth_state, monkeypatch):
    def override_get_db():
        yield db

    async def override_current_user():
        if auth_state["user"] is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return auth_state["user"]

    async def override_job_pool():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    app.dependency_overrides[get_job_pool] = override_job_pool
    monkeypatch.setattr("roadside.domain.chat.service.get_job_pool", override_job_pool)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def login(auth_state):
    def _login(user):
        auth_state["user"] = user
        return user

    return _login


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=CLIENT, **fields):
        counter["n"] += 1
        user = User(
            auth_sub=f"sub-{counter['n']}",
            email=f"user{counter['n']}@example.com",
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_organization(db, make_user):
    def _make_organization(owner=None, **fields):
        owner = owner or make_user()
        fields.setdefault("company_name", "Acme Towing")
        organization = Organization(owner_id=owner.id, **fields)
        db.add(organization)
        db.commit()
        db.refresh(organization)
        return organization

    return _make_organization


@pytest.fixture
def admin(make_user):
    return make_user(role=ADMIN)


@pytest.fixture
def owner(make_user):
    return make_user(role=CLIENT, first_name="Olivia", last_name="Owner")


@pytest.fixture
def organization(make_organization, owner):
    return make_organization(owner=owner)


@pytest.fixture
def add_member(db):
    def _add_member(organization, user, status="approved"):
        member = OrganizationMember(organization_id=organization.id, user_id=user.id, status=status)
        db.add(member)
        db.commit()
        return member

    return _add_member


@pytest.fixture
def mechanic(db, organization):
    mechanic = Mechanic(
        first_name="Mike",
        last_name="Wrench",
        company_name="Mike's Garage",
        mobile_number="+15550001111",
        latitude=40.0,
        longitude=-75.0,
        web_agent_id="web-agent-mech",
    )
    mechanic.organizations.append(organization)
    db.add(mechanic)
    db.commit()
    db.refresh(mechanic)
    return mechanic
