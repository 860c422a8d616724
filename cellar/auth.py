"""Bearer credential verification."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import httpx

from cellar.config import Settings
from cellar.db import Database
from cellar.errors import Unauthorized

LOGGER = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str:
    """Return the raw token of an ``Authorization: Bearer`` header value.

    Raises:
        Unauthorized: if the header is absent, empty, or not a bearer credential.
    """
    if not authorization:
        raise Unauthorized("No authorization header")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized()
    return token.strip()


class Authenticator(ABC):
    """Resolves a bearer credential to a user id."""

    async def authenticate(self, authorization: str | None) -> str:
        token = extract_bearer_token(authorization)
        try:
            user_id = await self.verify(token)
        except Unauthorized:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.warning("Credential verification failed", exc_info=True)
            raise Unauthorized() from None
        if not user_id:
            raise Unauthorized()
        return user_id

    @abstractmethod
    async def verify(self, token: str) -> str | None:
        """Return the user id for ``token`` or None when it is not valid."""


class SessionTokenAuthenticator(Authenticator):
    """Checks tokens against the local auth_sessions table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def verify(self, token: str) -> str | None:
        return self._db.get_session_user(token, datetime.now(timezone.utc))


class RemoteAuthenticator(Authenticator):
    """Asks a hosted auth service who owns the token (``GET {auth_url}/user``)."""

    def __init__(
        self,
        auth_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth_url = auth_url.rstrip("/")
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def verify(self, token: str) -> str | None:
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key
        async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
            response = await client.get(f"{self._auth_url}/user", headers=headers)
        if response.status_code != 200:
            return None
        user_id = response.json().get("id")
        return str(user_id) if user_id else None


def build_authenticator(settings: Settings, db: Database) -> Authenticator:
    if settings.auth_url:
        return RemoteAuthenticator(
            settings.auth_url,
            api_key=settings.auth_api_key,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return SessionTokenAuthenticator(db)
