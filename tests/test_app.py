import logging

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

import database
from config import Settings
from main import create_app


def test_startup_aborts_when_database_unreachable(settings, db, monkeypatch):
    def unreachable(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    monkeypatch.setattr(mongomock.Collection, "create_index", unreachable)
    with pytest.raises(PyMongoError):
        with TestClient(create_app(settings=settings, db=db)):
            pass


def test_create_app_configures_logging(db):
    root = logging.getLogger()
    previous = root.level
    try:
        create_app(settings=Settings(log_level="debug"), db=db)
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(previous)


def test_database_client_connects_lazily(settings, monkeypatch):
    seen = {}

    def fake_client(url, **kwargs):
        seen.update(kwargs, url=url)
        return mongomock.MongoClient()

    monkeypatch.setattr(database, "MongoClient", fake_client)
    db = database.get_database(settings)
    assert db.name == settings.database_name
    assert seen["connect"] is False
    assert seen["url"] == settings.database_url
