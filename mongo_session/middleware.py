"""Session handling for FastAPI applications."""

import logging
from typing import Literal, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from . import database
from .config import get_settings
from .errors import DecodeError
from .models import Session
from .store import MongoSessionStore

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Load the request's session from its cookie and persist it afterwards.

    Handlers reach the session through ``request.state.session`` (or the
    ``get_session`` dependency). Changed sessions are written back once the
    handler returns; destroyed ones are removed together with the cookie.
    Without an explicit ``store`` the process-wide one from
    ``mongo_session.database`` is used.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: Optional[MongoSessionStore] = None,
        cookie_name: Optional[str] = None,
        cookie_path: str = "/",
        secure: bool = False,
        same_site: Literal["lax", "strict", "none"] = "lax",
    ) -> None:
        super().__init__(app)
        self.store = store
        self.cookie_name = cookie_name or get_settings().SESSION_COOKIE_NAME
        self.cookie_path = cookie_path
        self.secure = secure
        self.same_site = same_site

    async def _load(self, store: MongoSessionStore, cookie_value: Optional[str]) -> Session:
        if cookie_value:
            try:
                session = await store.load_session(cookie_value)
            except DecodeError:
                logger.warning("Ignoring malformed %s cookie", self.cookie_name)
                session = None
            if session is not None:
                return session
        return store.session_class()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        store = self.store or database.get_store()
        session = await self._load(store, request.cookies.get(self.cookie_name))
        request.state.session = session

        response = await call_next(request)

        if session.is_destroyed:
            await store.destroy_session(session)
            response.delete_cookie(self.cookie_name, path=self.cookie_path)
        elif session.data_changed:
            cookie_value = await store.store_session(session)
            if cookie_value is not None:
                response.set_cookie(
                    self.cookie_name,
                    cookie_value,
                    expires=session.expiry,
                    path=self.cookie_path,
                    secure=self.secure,
                    httponly=True,
                    samesite=self.same_site,
                )
        return response


def get_session(request: Request) -> Session:
    """FastAPI dependency returning the current request's session."""
    return request.state.session
