# src/taiga_cli/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from ..remote.api import TaigaApi
    from ..remote.session import CredentialPrompt, SessionManager
    from ..storage.cache_store import CacheStore
    from ..sync.mutations import TaskMutator
    from ..sync.snapshots import SnapshotCache


@dataclass
class AppState:
    """Everything one command invocation needs, wired once in cli.bootstrap."""

    # Settings object (or a test namespace with the same attributes).
    settings: object

    http: httpx.Client
    store: CacheStore
    sessions: SessionManager
    api: TaigaApi
    snapshots: SnapshotCache
    mutator: TaskMutator
    credential_prompt: CredentialPrompt
