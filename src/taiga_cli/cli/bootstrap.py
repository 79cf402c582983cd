# src/taiga_cli/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- opens the on-disk cache directory,
- wires the HTTP client, session manager, remote API, snapshot cache and
  mutator into AppState.
"""

from __future__ import annotations

import getpass
import logging

import httpx

from ..config import get_settings
from ..core.models import Credentials
from ..core.state import AppState
from ..errors import AuthError
from ..remote.api import TaigaApi
from ..remote.session import CredentialPrompt, SessionManager
from ..storage.cache_store import CacheStore
from ..sync.mutations import TaskMutator
from ..sync.snapshots import SnapshotCache

logger = logging.getLogger(__name__)


def prompt_credentials() -> Credentials:
    """Ask for username/password on the terminal (password not echoed)."""
    try:
        username = input("Username: ").strip()
        password = getpass.getpass("Password: ")
    except (EOFError, KeyboardInterrupt) as e:
        raise AuthError("Login cancelled.") from e
    if not username:
        raise AuthError("Username is required.")
    return Credentials(username=username, password=password)


def build_http_client(settings) -> httpx.Client:
    connect_s = float(getattr(settings, "connect_timeout_seconds", 5.0))
    read_s = float(getattr(settings, "read_timeout_seconds", 30.0))
    timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)
    app_name = str(getattr(settings, "app_name", "taiga"))
    return httpx.Client(timeout=timeout, headers={"User-Agent": f"{app_name}-cli"})


def create_initial_state(
    *,
    settings=None,
    http: httpx.Client | None = None,
    credential_prompt: CredentialPrompt | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings, the HTTP client and the prompt injectable lets tests run
    the whole stack against a fake server in a temp directory.
    """
    if settings is None:
        settings = get_settings()
    if credential_prompt is None:
        credential_prompt = prompt_credentials

    store = CacheStore(settings.cache_dir)
    http = http or build_http_client(settings)

    sessions = SessionManager(
        store,
        http,
        token_ttl_seconds=settings.token_ttl_seconds,
        remember_credentials=settings.remember_credentials,
        credential_prompt=credential_prompt,
    )
    api = TaigaApi(sessions)
    snapshots = SnapshotCache(store, api)

    return AppState(
        settings=settings,
        http=http,
        store=store,
        sessions=sessions,
        api=api,
        snapshots=snapshots,
        mutator=TaskMutator(api, snapshots),
        credential_prompt=credential_prompt,
    )


def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.http.close()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)
