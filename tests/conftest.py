# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taiga_cli.cli.bootstrap import create_initial_state
from taiga_cli.core.models import Credentials
from taiga_cli.core.state import AppState

from .fakes import BASE_URL, FakeTaiga

ALICE = Credentials(username="alice", password="secret")
PROJECT_ID = 7


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    A SimpleNamespace instead of the real config keeps tests independent of
    the developer's environment and .env file.
    """
    return SimpleNamespace(
        app_name="taiga",
        log_level="WARNING",
        log_dir=None,
        base_url=BASE_URL,
        token_ttl_seconds=3600,
        remember_credentials=True,
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture()
def fake() -> FakeTaiga:
    """
    Project "Website" (id 7): members alice/bob, workflow new -> in-progress -> done.
    Three open stories and one closed one.
    """
    server = FakeTaiga()
    server.add_user("alice", "secret", 10)
    server.add_user("bob", "hunter2", 11)
    server.add_project(
        PROJECT_ID,
        "Website",
        members=[(10, "alice"), (11, "bob")],
        statuses=[(1, "new", False), (2, "in-progress", False), (3, "done", True)],
    )
    server.add_project(8, "Backoffice", members=[(11, "bob")], statuses=[(21, "new", False)])
    server.add_story(PROJECT_ID, "Fix login page", 1, assigned_users=[10])
    server.add_story(PROJECT_ID, "Write release notes", 2)
    server.add_story(PROJECT_ID, "Update footer links", 1, is_blocked=True)
    server.add_story(PROJECT_ID, "Old shipped thing", 3)
    return server


@pytest.fixture()
def state(settings: SimpleNamespace, fake: FakeTaiga) -> AppState:
    """Full stack wired against the fake server; nothing is logged in yet."""
    return create_initial_state(settings=settings, http=fake.client(), credential_prompt=lambda: ALICE)


@pytest.fixture()
def logged_in(state: AppState, fake: FakeTaiga) -> AppState:
    """Session for alice with the project list cached; call counters reset."""
    state.sessions.authenticate(ALICE, BASE_URL)
    state.sessions.remember_projects(state.api.list_projects())
    fake.reset_calls()
    return state


@pytest.fixture()
def listed(logged_in: AppState, fake: FakeTaiga) -> AppState:
    """Logged in, with the Website task list snapshot cached (as after `taiga search Website`)."""
    logged_in.snapshots.refresh(PROJECT_ID)
    fake.reset_calls()
    return logged_in
