# src/taiga_cli/errors.py

"""Error taxonomy shared by the sync layer and the command layer."""

from __future__ import annotations

from pathlib import Path


class TaigaError(Exception):
    """Base class for every error the CLI reports to the user."""


class AuthError(TaigaError):
    """Bad credentials, unreachable auth endpoint, or all auth tiers exhausted."""


class SessionExpired(TaigaError):
    """Token refresh failed. Handled inside the session manager, never surfaced."""


class InvalidProjectReference(TaigaError):
    def __init__(self, project_id: int) -> None:
        self.project_id = project_id
        super().__init__(
            f"No cached task list for project id={project_id}. List its tasks first (taiga search <project>)."
        )


class ConflictError(TaigaError):
    """The server rejected a write because the submitted version is outdated."""

    def __init__(self, message: str, *, task_id: int | None = None) -> None:
        self.task_id = task_id
        super().__init__(message)


class CacheCorruption(TaigaError):
    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class RemoteError(TaigaError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotFound(TaigaError):
    """A project name, status slug, username or task position did not resolve."""


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip() or err.__class__.__name__
    if isinstance(err, CacheCorruption):
        where = f" ({err.path})" if err.path is not None else ""
        return f"Local cache is unreadable{where}: {msg}. Run `taiga logout --purge` and log in again."
    if isinstance(err, AuthError):
        return f"{msg} Log in again with `taiga login`."
    if isinstance(err, ConflictError):
        return f"{msg} Someone else changed this task; list the tasks again and retry."
    return msg
