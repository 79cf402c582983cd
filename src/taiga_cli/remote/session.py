# src/taiga_cli/remote/session.py

"""
Session manager: bearer-token requests with tiered authentication.

Every request walks AuthTier in order:
- TOKEN:   send with the stored access token
- REFRESH: exchange the refresh token for a new pair, persist, retry once
- REAUTH:  re-submit stored (or prompted) credentials, persist, retry once

A tier is used at most once per logical request, and a refresh token the
server has rejected is not offered again until the next login. Only authentication
failures (401/403) advance to the next tier; any other response is handed
back to the caller, and transport failures raise RemoteError right away.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

import httpx

from ..core.models import Credentials, Project, Session
from ..errors import AuthError, RemoteError, SessionExpired
from ..storage import codec
from ..storage.cache_store import SESSION_KEY, CacheStore

logger = logging.getLogger(__name__)

_AUTH_FAILURE_CODES = frozenset({401, 403})

CredentialPrompt = Callable[[], Credentials]


class AuthTier(StrEnum):
    TOKEN = "token"
    REFRESH = "refresh"
    REAUTH = "reauth"


class SessionManager:
    def __init__(
        self,
        store: CacheStore,
        http: httpx.Client,
        *,
        token_ttl_seconds: float,
        remember_credentials: bool = True,
        credential_prompt: CredentialPrompt | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._http = http
        self._ttl = float(token_ttl_seconds)
        self._remember_credentials = remember_credentials
        self._prompt = credential_prompt
        self._clock = clock

        self._session: Session | None = None
        self._loaded = False
        self._expiry_checked = False
        # Set once the refresh token has been rejected; cleared by a fresh login.
        self._refresh_failed = False

    # ---- session state ----

    def current(self) -> Session | None:
        """Cached session, loaded lazily from disk. CacheCorruption propagates."""
        if not self._loaded:
            self._session = self._store.load(SESSION_KEY, codec.load_session)
            self._loaded = True
        return self._session

    def require(self) -> Session:
        session = self.current()
        if session is None:
            raise AuthError("Not logged in.")
        return session

    def _persist(self, session: Session) -> None:
        self._store.put(SESSION_KEY, codec.dump_session(session))
        self._session = session
        self._loaded = True

    def remember_projects(self, projects: list[Project]) -> Session:
        session = self.require()
        session.projects = list(projects)
        self._persist(session)
        return session

    def sign_out(self, *, purge: bool = False) -> None:
        """Forget the local session (remote state is untouched)."""
        if purge:
            self._store.clear()
        else:
            self._store.delete(SESSION_KEY)
        self._session = None
        self._loaded = True
        logger.info("Signed out (purge=%s)", purge)

    # ---- auth endpoints ----

    def _post_auth(self, base_url: str, credentials: Credentials) -> dict[str, Any]:
        body = {"username": credentials.username, "password": credentials.password, "type": "normal"}
        try:
            resp = self._http.post(f"{base_url}/auth", json=body)
        except httpx.HTTPError as e:
            raise AuthError(f"Could not reach {base_url}: {e}") from e

        if not resp.is_success:
            logger.info("Auth rejected user=%s status=%s", credentials.username, resp.status_code)
            raise AuthError("Authentication failed. Please check your credentials.")

        try:
            data = resp.json()
            return {
                "auth_token": str(data["auth_token"]),
                "refresh": str(data["refresh"]),
                "id": int(data["id"]),
            }
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("Authentication response was not understood.") from e

    def authenticate(self, credentials: Credentials, base_url: str) -> Session:
        """Mint a brand-new session. Fails with AuthError on bad credentials."""
        base_url = base_url.rstrip("/")
        payload = self._post_auth(base_url, credentials)

        session = Session(
            access_token=payload["auth_token"],
            refresh_token=payload["refresh"],
            expires_at=self._clock() + self._ttl,
            base_url=base_url,
            account_id=payload["id"],
            credentials=credentials if self._remember_credentials else None,
        )
        self._persist(session)
        self._expiry_checked = True
        self._refresh_failed = False
        logger.info("Authenticated user=%s account_id=%s url=%s", credentials.username, session.account_id, base_url)
        return session

    def refresh(self) -> Session:
        """Exchange the refresh token. Raises SessionExpired on any failure."""
        session = self.require()
        try:
            resp = self._http.post(
                f"{session.base_url}/auth/refresh",
                json={"refresh": session.refresh_token},
            )
        except httpx.HTTPError as e:
            raise SessionExpired(f"token refresh failed: {e}") from e

        if not resp.is_success:
            raise SessionExpired(f"token refresh rejected (HTTP {resp.status_code})")

        try:
            data = resp.json()
            access, refresh = str(data["auth_token"]), str(data["refresh"])
        except (ValueError, KeyError, TypeError) as e:
            raise SessionExpired("token refresh response was not understood") from e

        session.access_token = access
        session.refresh_token = refresh
        session.expires_at = self._clock() + self._ttl
        self._persist(session)
        logger.info("Access token refreshed account_id=%s", session.account_id)
        return session

    def reauthenticate(self) -> Session:
        """Full re-login with stored or prompted credentials. Raises AuthError."""
        session = self.require()
        credentials = session.credentials
        if credentials is None:
            if self._prompt is None:
                raise AuthError("Session expired and no credentials are stored.")
            credentials = self._prompt()

        payload = self._post_auth(session.base_url, credentials)
        session.access_token = payload["auth_token"]
        session.refresh_token = payload["refresh"]
        session.account_id = payload["id"]
        session.expires_at = self._clock() + self._ttl
        if self._remember_credentials:
            session.credentials = credentials
        self._persist(session)
        self._refresh_failed = False
        logger.info("Re-authenticated account_id=%s", session.account_id)
        return session

    # ---- requests ----

    def _refresh_if_expired(self, session: Session) -> None:
        """Proactive refresh, at most once per process."""
        if self._expiry_checked:
            return
        self._expiry_checked = True
        if not session.is_expired(self._clock()):
            return
        logger.info("Cached token expired, refreshing before first request")
        try:
            self.refresh()
        except SessionExpired as e:
            self._refresh_failed = True
            logger.warning("Proactive token refresh failed: %s", e)

    def _renew(self, tier: AuthTier) -> bool:
        if tier is AuthTier.TOKEN:
            return True
        if tier is AuthTier.REFRESH:
            if self._refresh_failed:
                logger.debug("Refresh tier skipped, refresh token already rejected")
                return False
            try:
                self.refresh()
            except SessionExpired as e:
                self._refresh_failed = True
                logger.info("Refresh tier failed: %s", e)
                return False
            return True
        self.reauthenticate()
        return True

    def _send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        session = self.require()
        headers = {
            "Authorization": f"Bearer {session.access_token}",
            "Content-Type": "application/json",
        }
        try:
            return self._http.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send an authenticated request, falling back through AuthTier.

        `path` is relative to the session base URL, or an absolute URL
        (pagination links). Returns the first response that is not an
        authentication failure; raises AuthError once every tier is spent.
        """
        session = self.require()
        self._refresh_if_expired(session)
        url = path if path.startswith(("http://", "https://")) else f"{session.base_url}{path}"

        last_status: int | None = None
        for tier in AuthTier:
            if not self._renew(tier):
                continue
            resp = self._send(method, url, json=json, params=params)
            if resp.status_code not in _AUTH_FAILURE_CODES:
                if tier is not AuthTier.TOKEN:
                    logger.debug("%s %s succeeded at tier=%s", method, path, tier)
                return resp
            last_status = resp.status_code
            logger.info("%s %s rejected at tier=%s (HTTP %s)", method, path, tier, resp.status_code)

        raise AuthError(f"Request {method} {path} was not authorized after all retries (HTTP {last_status}).")
