from datetime import timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app
from security import create_access_token

PASSWORD = "Secret1"


@pytest.fixture
def db():
    database = mongomock.MongoClient().db
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    # no context manager: the lifespan would try to reach a real server
    yield TestClient(app)
    app.dependency_overrides.clear()


def register_payload(**overrides):
    payload = {
        "email": "ana@example.com",
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
        "firstName": "Ana",
        "lastName": "Lopez",
        "address": "Calle Mayor 1",
    }
    payload.update(overrides)
    return payload


def auth_headers(session):
    return {"Authorization": f"Bearer {session['authToken']}", "Refresh-Token": session["refreshToken"]}


def expired_access_token(user_id):
    return create_access_token(user_id, expires_delta=timedelta(seconds=-30))


@pytest.fixture
def session(client):
    """A registered user who has just logged in."""
    assert client.post("/users/register", json=register_payload()).status_code == 201
    resp = client.post("/users/login", json={"email": "ana@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def headers(session):
    return auth_headers(session)


@pytest.fixture
def make_product(db):
    def _make(name="Lamp", price=25.0):
        result = db["product"].insert_one({
            "name": name,
            "price": price,
            "description": f"{name} description",
            "image_url": f"https://img.example.com/{name}.png",
            "additional_info": {"category": "home"},
        })
        return str(result.inserted_id)
    return _make
