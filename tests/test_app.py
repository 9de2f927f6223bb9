import os
import sys

import httpx
import pytest
import pytest_asyncio

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import app as app_module
from mongo_session import MongoSessionStore, config, database
from mongo_session import store as store_module


class DummySettings:
    MONGO_URL = "mongodb://localhost"
    MONGO_DB_NAME = "testdb"
    MONGO_COLLECTION_NAME = "web_sessions"
    SESSION_TTL_SECONDS = 90
    SESSION_COOKIE_NAME = "mongo.sid"


@pytest_asyncio.fixture
async def connected(monkeypatch, mongo_client):
    monkeypatch.setattr(database, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(store_module, "AsyncIOMotorClient", lambda uri, **kw: mongo_client)
    await database.connect()
    yield database.get_store()
    await database.close()


@pytest.mark.asyncio
async def test_connect_uses_settings(connected, mongo_client):
    assert isinstance(connected, MongoSessionStore)
    assert connected.default_ttl == 90
    assert connected.collection.name == "web_sessions"
    indexes = await mongo_client["testdb"]["web_sessions"].index_information()
    assert "session_expire_index_expireAt" in indexes


@pytest.mark.asyncio
async def test_close_forgets_store(connected, mongo_client, closed_clients):
    await database.close()
    assert closed_clients == [mongo_client]
    with pytest.raises(AssertionError):
        database.get_store()


def test_settings_defaults(monkeypatch):
    for name in ("MONGO_URL", "SESSION_TTL_SECONDS", "SESSION_COOKIE_NAME"):
        monkeypatch.delenv(name, raising=False)
    settings = config.Settings(_env_file=None)
    assert settings.MONGO_URL == "mongodb://127.0.0.1:27017"
    assert settings.SESSION_TTL_SECONDS == 1200
    assert settings.SESSION_COOKIE_NAME == "mongo.sid"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SESSION_TTL_SECONDS", "300")
    monkeypatch.setenv("MONGO_COLLECTION_NAME", "other")
    settings = config.Settings(_env_file=None)
    assert settings.SESSION_TTL_SECONDS == 300
    assert settings.MONGO_COLLECTION_NAME == "other"


@pytest.mark.asyncio
async def test_visit_counter_and_logout(connected):
    transport = httpx.ASGITransport(app=app_module.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        assert (await client.get("/")).json() == {"message": "Session store running"}
        assert (await client.get("/visits")).json() == {"visits": 1}
        assert (await client.get("/visits")).json() == {"visits": 2}

        assert (await client.post("/logout")).json() == {"status": "logged out"}
        assert await connected.collection.count_documents({}) == 0
        assert (await client.get("/visits")).json() == {"visits": 1}
