"""Errors raised by the session store.

Driver failures are re-raised as one of these with the original
``pymongo`` exception chained as ``__cause__``.
"""


class SessionStoreError(Exception):
    """Base class for every session store failure."""


class StoreConnectionError(SessionStoreError, ConnectionError):
    """The database could not be reached or the URI is invalid."""


class DecodeError(SessionStoreError, ValueError):
    """A cookie value does not map to a session id."""


class SerializationError(SessionStoreError):
    """A session payload cannot be turned into a document."""


class DeserializationError(SessionStoreError):
    """A stored document cannot be turned back into a session."""


class WriteError(SessionStoreError):
    pass


class ReadError(SessionStoreError):
    pass


class DeleteError(SessionStoreError):
    pass


class DropError(SessionStoreError):
    pass


class IndexCreationError(SessionStoreError):
    pass
