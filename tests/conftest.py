import json

import pytest

import config
from app import create_app
from models import db
from security import PasswordHasher, TokenSigner
from services import AuthService, TaskService
from stores import MemoryTaskStore, MemoryUserStore

from .fakes import FakeClock


@pytest.fixture()
def app():
    """
    App wired to an in-memory SQLite database.

    Tables are created when the fixture starts and dropped when it ends,
    so every test gets an empty store.
    """
    app = create_app(config.TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def rpc(client):
    """Call a procedure and return (status code, decoded JSON body)."""

    def call(name, payload=None, token=None, method="POST"):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        if method == "GET":
            query = {"input": json.dumps(payload)} if payload is not None else {}
            response = client.get(f"/rpc/{name}", query_string=query, headers=headers)
        else:
            response = client.post(f"/rpc/{name}", json=payload, headers=headers)
        return response.status_code, response.get_json()

    return call


@pytest.fixture()
def sign_up(rpc):
    """Register a user over HTTP and return its {user, token} data."""

    def register(username="testuser", email="test@example.com", password="password123"):
        status, body = rpc("signUp", {"username": username, "email": email, "password": password})
        assert status == 200, body
        return body["result"]["data"]

    return register


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def tokens():
    return TokenSigner("unit-test-secret")


@pytest.fixture()
def user_store():
    return MemoryUserStore()


@pytest.fixture()
def task_store():
    return MemoryTaskStore()


@pytest.fixture()
def auth_service(user_store, tokens, clock):
    return AuthService(user_store, PasswordHasher("pbkdf2:sha256:1000"), tokens, clock=clock)


@pytest.fixture()
def task_service(task_store, clock):
    return TaskService(task_store, clock=clock)
