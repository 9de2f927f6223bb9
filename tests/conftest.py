import os
import sys

import mongomock_motor
import pytest
import pytest_asyncio

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mongo_session import MongoSessionStore


@pytest.fixture
def mongo_client():
    return mongomock_motor.AsyncMongoMockClient()


@pytest.fixture
def closed_clients(monkeypatch, mongo_client):
    """Record calls to ``mongo_client.close()``."""
    calls = []
    monkeypatch.setattr(mongo_client, "close", lambda: calls.append(mongo_client))
    return calls


@pytest_asyncio.fixture
async def store(mongo_client):
    session_store = MongoSessionStore.from_client(mongo_client, "db_name", "collection")
    await session_store.initialize()
    yield session_store


@pytest.fixture
def collection(mongo_client):
    return mongo_client["db_name"]["collection"]
