"""Async MongoDB session store."""

from .errors import (
    DecodeError,
    DeleteError,
    DeserializationError,
    DropError,
    IndexCreationError,
    ReadError,
    SerializationError,
    SessionStoreError,
    StoreConnectionError,
    WriteError,
)
from .models import Session, SessionDocument, SessionLike
from .store import DEFAULT_TTL_SECONDS, MongoSessionStore, SessionStore

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "DecodeError",
    "DeleteError",
    "DeserializationError",
    "DropError",
    "IndexCreationError",
    "MongoSessionStore",
    "ReadError",
    "SerializationError",
    "Session",
    "SessionDocument",
    "SessionLike",
    "SessionStore",
    "SessionStoreError",
    "StoreConnectionError",
    "WriteError",
]
