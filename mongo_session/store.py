"""MongoDB-backed session store."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Optional, Type

import bson
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConfigurationError, PyMongoError

from .errors import (
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
from .models import Session, SessionDocument, SessionLike, as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 1200
EXPIRY_FIELD = "expireAt"


class SessionStore(ABC):
    """Persistence interface for sessions."""

    @abstractmethod
    async def load_session(self, cookie_value: str) -> Optional[SessionLike]:
        """Return the session behind ``cookie_value`` or ``None``."""

    @abstractmethod
    async def store_session(self, session: SessionLike) -> Optional[str]:
        """Persist ``session`` and return the cookie value to hand out, if any."""

    @abstractmethod
    async def destroy_session(self, session: SessionLike) -> None:
        """Remove ``session`` from the store."""

    @abstractmethod
    async def clear_store(self) -> None:
        """Remove every session."""


class MongoSessionStore(SessionStore):
    """Keeps one document per session in a MongoDB collection.

    Documents look like::

        {"session_id": ..., "session": {...}, "expireAt": ..., "created": ...}

    ``expireAt`` is an absolute deadline: the expiry index is created with
    ``expireAfterSeconds=0`` so MongoDB deletes the document once that time
    has passed. The TTL monitor only runs about once a minute, so
    ``load_session`` also checks ``expireAt`` itself.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        collection: AsyncIOMotorCollection,
        *,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        session_class: Type[SessionLike] = Session,
        client: Optional[AsyncIOMotorClient] = None,
    ) -> None:
        self.database = database
        self.collection = collection
        self.default_ttl = default_ttl
        self.session_class = session_class
        # only set when this store opened the connection itself
        self._client = client

    @classmethod
    async def connect(
        cls,
        uri: str,
        db_name: str,
        collection_name: str,
        *,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        session_class: Type[SessionLike] = Session,
        **client_options: Any,
    ) -> "MongoSessionStore":
        """Open a client for ``uri``, check the server answers and ensure the expiry index."""
        try:
            client = AsyncIOMotorClient(uri, **client_options)
        except ConfigurationError as exc:
            raise StoreConnectionError(f"invalid MongoDB URI: {exc}") from exc
        try:
            await client.admin.command("ping")
        except PyMongoError as exc:
            client.close()
            logger.exception("MongoDB for %s.%s did not answer ping", db_name, collection_name)
            raise StoreConnectionError(f"cannot connect to MongoDB: {exc}") from exc

        database = client[db_name]
        store = cls(
            database,
            database[collection_name],
            default_ttl=default_ttl,
            session_class=session_class,
            client=client,
        )
        try:
            await store.index_on_expiry_at()
        except IndexCreationError:
            client.close()
            raise
        logger.info("Session store connected to %s.%s", db_name, collection_name)
        return store

    @classmethod
    def from_client(
        cls,
        client: AsyncIOMotorClient,
        db_name: str,
        collection_name: str,
        *,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        session_class: Type[SessionLike] = Session,
    ) -> "MongoSessionStore":
        """Wrap an already open client. No index is created."""
        database = client[db_name]
        return cls(
            database,
            database[collection_name],
            default_ttl=default_ttl,
            session_class=session_class,
        )

    async def initialize(self) -> None:
        """Ensure the expiry index. Safe to call repeatedly."""
        await self.index_on_expiry_at()

    async def index_on_expiry_at(self) -> None:
        """Expire documents at the clock time stored in ``expireAt``."""
        await self._create_expire_index(EXPIRY_FIELD, 0)

    async def _create_expire_index(self, field_name: str, expire_after_seconds: int) -> None:
        # MongoDB treats an identical index definition as a no-op.
        try:
            await self.collection.create_index(
                field_name,
                expireAfterSeconds=expire_after_seconds,
                name=f"session_expire_index_{field_name}",
            )
        except PyMongoError as exc:
            logger.exception("Creating the expiry index on %s failed", field_name)
            raise IndexCreationError(f"cannot create expiry index on {field_name}") from exc
        logger.info("Expiry index on %s ensured", field_name)

    def _serialize(self, session: SessionLike) -> dict:
        try:
            payload = session.to_document()
            bson.encode(payload)
        except (BSONError, TypeError, ValueError) as exc:
            raise SerializationError(f"cannot serialize session {session.id}") from exc
        return payload

    def _expire_at(self, session: SessionLike, now: datetime) -> datetime:
        if session.expiry is None:
            return now + timedelta(seconds=self.default_ttl)
        return session.expiry

    async def store_session(self, session: SessionLike) -> Optional[str]:
        now = utcnow()
        document = SessionDocument(
            session_id=session.id,
            session=self._serialize(session),
            expire_at=self._expire_at(session, now),
            created=now,
        ).model_dump(by_alias=True)
        try:
            await self.collection.replace_one(
                {"session_id": session.id}, document, upsert=True
            )
        except PyMongoError as exc:
            logger.exception("Storing session %s failed", session.id)
            raise WriteError(f"cannot store session {session.id}") from exc
        logger.debug("Stored session %s until %s", session.id, document[EXPIRY_FIELD])
        return session.into_cookie_value()

    async def load_session(self, cookie_value: str) -> Optional[SessionLike]:
        session_id = self.session_class.id_from_cookie_value(cookie_value)
        try:
            document = await self.collection.find_one({"session_id": session_id})
        except PyMongoError as exc:
            logger.exception("Loading session %s failed", session_id)
            raise ReadError(f"cannot load session {session_id}") from exc

        if document is None:
            return None
        payload = document.get("session")
        if payload is None:
            logger.debug("Session %s has no payload, ignoring it", session_id)
            return None
        # Expired documents linger until the next TTL monitor pass.
        expire_at = document.get(EXPIRY_FIELD)
        if isinstance(expire_at, datetime) and as_utc(expire_at) < utcnow():
            logger.debug("Session %s expired at %s", session_id, expire_at)
            return None
        try:
            return self.session_class.from_document(payload)
        except SessionStoreError:
            raise
        except Exception as exc:
            raise DeserializationError(f"cannot deserialize session {session_id}") from exc

    async def destroy_session(self, session: SessionLike) -> None:
        try:
            await self.collection.delete_one({"session_id": session.id})
        except PyMongoError as exc:
            logger.exception("Destroying session %s failed", session.id)
            raise DeleteError(f"cannot destroy session {session.id}") from exc
        logger.debug("Destroyed session %s", session.id)

    async def clear_store(self) -> None:
        """Drop the whole collection and recreate its indexes.

        Every document in the collection goes, not only sessions.
        """
        try:
            await self.collection.drop()
        except PyMongoError as exc:
            logger.exception("Dropping %s failed", self.collection.name)
            raise DropError(f"cannot drop collection {self.collection.name}") from exc
        logger.info("Dropped session collection %s", self.collection.name)
        await self.initialize()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
