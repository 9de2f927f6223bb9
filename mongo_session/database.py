from .config import get_settings
from .store import MongoSessionStore

store: MongoSessionStore | None = None


async def connect() -> None:
    """Open the process-wide session store from settings."""
    global store
    settings = get_settings()
    # Documents expire at their own ``expireAt``; sessions stored without an
    # expiry get ``SESSION_TTL_SECONDS`` from the time of the write.
    store = await MongoSessionStore.connect(
        settings.MONGO_URL,
        settings.MONGO_DB_NAME,
        settings.MONGO_COLLECTION_NAME,
        default_ttl=settings.SESSION_TTL_SECONDS,
    )


def get_store() -> MongoSessionStore:
    assert store is not None, "Session store not initialized"
    return store


async def close() -> None:
    global store
    if store:
        store.close()
        store = None
