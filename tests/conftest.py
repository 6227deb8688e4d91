"""
Shared fixtures: an in-memory database and an API client bound to it.
"""

import os
from datetime import date, datetime, timedelta

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from agenda import models  # noqa: F401
from agenda.db import get_session
from agenda.main import app

OPEN_WEEK = {
    key: {"enabled": key != "sun", "start": "09:00", "end": "18:00"}
    for key in ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
}


def next_monday() -> date:
    """A Monday at least a week ahead, so bookings are never in the past."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) + 7)


def at(day: date, hhmm: str) -> datetime:
    hours, minutes = map(int, hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hours, minutes)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email, role, password="password123", full_name=""):
    resp = client.post("/users", json={
        "email": email,
        "password": password,
        "role": role,
        "full_name": full_name,
    })
    assert resp.status_code == 201, resp.text
    login = client.post("/auth/login", data={"username": email, "password": password})
    assert login.status_code == 200, login.text
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


@pytest.fixture
def owner_headers(client):
    return register(client, "owner@example.com", "owner", full_name="Olga Owner")


@pytest.fixture
def client_headers(client):
    return register(client, "carla@example.com", "client", full_name="Carla Client")


@pytest.fixture
def business(client, owner_headers):
    resp = client.post("/businesses", json={
        "name": "Studio Norte",
        "category": "beauty",
        "timezone": "UTC",
        "slot_minutes": 30,
        "opening_hours": OPEN_WEEK,
    }, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def service(client, owner_headers, business):
    resp = client.post(f"/businesses/{business['id']}/services", json={
        "name": "Haircut",
        "duration_minutes": 30,
        "price": 25,
    }, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def employee(client, owner_headers, business, service):
    resp = client.post(f"/businesses/{business['id']}/employees", json={
        "name": "Eva",
        "role": "Senior stylist",
        "role_type": "technician",
        "service_ids": [service["id"]],
    }, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def failing_writes():
    """Call with a model class to make every flush that inserts one raise."""
    listeners = []

    def fail(model):
        def before_flush(session, flush_context, instances):
            if any(isinstance(obj, model) for obj in session.new):
                raise SQLAlchemyError(f"cannot write {model.__name__}")

        event.listen(Session, "before_flush", before_flush)
        listeners.append(before_flush)

    yield fail
    for listener in listeners:
        event.remove(Session, "before_flush", listener)
