from __future__ import annotations

import base64
import binascii
import hashlib
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from .errors import DecodeError, DeserializationError, SerializationError

# raw bytes behind every cookie value
COOKIE_BYTES = 64


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    pymongo hands back naive datetimes unless the client is ``tz_aware``;
    those are always UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _decode_cookie(cookie_value: str) -> bytes:
    padded = cookie_value + "=" * (-len(cookie_value) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("malformed session cookie") from exc
    if len(raw) != COOKIE_BYTES:
        raise DecodeError(
            f"session cookie decodes to {len(raw)} bytes, expected {COOKIE_BYTES}"
        )
    return raw


class SessionLike(Protocol):
    """What the store needs from a session implementation."""

    id: str
    expiry: Optional[datetime]

    def into_cookie_value(self) -> Optional[str]: ...

    def to_document(self) -> Dict[str, Any]: ...

    @classmethod
    def id_from_cookie_value(cls, cookie_value: str) -> str: ...

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SessionLike": ...


class Session(BaseModel):
    """Server-side session state addressed by a cookie value.

    A new ``Session()`` carries a random cookie value and an ``id`` derived
    from it. The cookie value is never serialized, so a session read back
    from the database has no cookie value and ``into_cookie_value`` returns
    ``None``: the client already holds it.

    Values in ``data`` are kept JSON-encoded.
    """

    id: str = ""
    expiry: Optional[datetime] = None
    data: Dict[str, str] = Field(default_factory=dict)

    _cookie_value: Optional[str] = PrivateAttr(default=None)
    _data_changed: bool = PrivateAttr(default=False)
    _destroyed: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: Any) -> None:
        if not self.id:
            cookie_value = secrets.token_urlsafe(COOKIE_BYTES)
            self._cookie_value = cookie_value
            self.id = self.id_from_cookie_value(cookie_value)

    @field_validator("expiry")
    @classmethod
    def _expiry_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @classmethod
    def id_from_cookie_value(cls, cookie_value: str) -> str:
        """Map a cookie value to the id it addresses.

        Raises ``DecodeError`` when the value is not one this class issued.
        """
        digest = hashlib.blake2b(_decode_cookie(cookie_value), digest_size=32).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")

    def into_cookie_value(self) -> Optional[str]:
        return self._cookie_value

    # payload

    def insert(self, key: str, value: Any) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"value for {key!r} is not JSON serializable") from exc
        self.insert_raw(key, raw)

    def insert_raw(self, key: str, value: str) -> None:
        if self.data.get(key) != value:
            self.data[key] = value
            self._data_changed = True

    def get(self, key: str, default: Any = None) -> Any:
        raw = self.data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def get_raw(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def remove(self, key: str) -> None:
        if key in self.data:
            del self.data[key]
            self._data_changed = True

    def clear(self) -> None:
        if self.data:
            self.data.clear()
            self._data_changed = True

    def keys(self) -> List[str]:
        return list(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data

    # expiry

    def set_expiry(self, expiry: datetime) -> None:
        self.expiry = as_utc(expiry)
        self._data_changed = True

    def expire_in(self, ttl: Union[int, float, timedelta]) -> None:
        if not isinstance(ttl, timedelta):
            ttl = timedelta(seconds=ttl)
        self.set_expiry(utcnow() + ttl)

    def expires_in(self) -> Optional[timedelta]:
        """Time left before expiry, ``None`` when the session never expires."""
        if self.expiry is None:
            return None
        return max(self.expiry - utcnow(), timedelta(0))

    @property
    def is_expired(self) -> bool:
        return self.expiry is not None and self.expiry < utcnow()

    # lifecycle

    def destroy(self) -> None:
        self._destroyed = True

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def data_changed(self) -> bool:
        return self._data_changed

    def reset_data_changed(self) -> None:
        self._data_changed = False

    # serialization used by the store

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Session":
        try:
            return cls.model_validate(document)
        except ValidationError as exc:
            raise DeserializationError("stored session is not a valid session") from exc


class SessionDocument(BaseModel):
    """A session as persisted in the collection."""

    session_id: str
    session: Dict[str, Any]
    expire_at: datetime = Field(alias="expireAt")
    created: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True)
