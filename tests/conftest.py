import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", bcrypt_rounds=4, database_name="crescevendas_test")


@pytest.fixture
def db(settings):
    return mongomock.MongoClient()[settings.database_name]


@pytest.fixture
def app(settings, db):
    return create_app(settings=settings, db=db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, name="Maria Silva", email="maria@example.com", password="s3cret!"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    return register(client).json()["data"]["token"]
