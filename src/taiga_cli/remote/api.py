# src/taiga_cli/remote/api.py

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

import httpx

from ..core.models import Project, Status, Task, TaskPatch, User
from ..errors import ConflictError, RemoteError
from .session import SessionManager

logger = logging.getLogger(__name__)

_CONFLICT_CODES = frozenset({409, 412})
_SLUG_DROP = re.compile(r"[^\w\s]")


def slugify(name: str) -> str:
    """Status label -> slug, e.g. "In Progress!" -> "in-progress"."""
    return _SLUG_DROP.sub("", name).replace("_", "").strip().replace(" ", "-").lower()


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip()[:200]
    if isinstance(body, dict):
        detail = body.get("_error_message") or body.get("detail")
        if detail:
            return str(detail)
    return str(body)[:200]


def _is_version_conflict(resp: httpx.Response) -> bool:
    if resp.status_code in _CONFLICT_CODES:
        return True
    if resp.status_code != 400:
        return False
    try:
        body = resp.json()
    except ValueError:
        return False
    return isinstance(body, dict) and "version" in body


def _check(resp: httpx.Response, action: str, *, task_id: int | None = None) -> httpx.Response:
    if resp.is_success:
        return resp
    if task_id is not None and _is_version_conflict(resp):
        raise ConflictError(
            f"Could not {action}: task {task_id} was modified concurrently ({_error_detail(resp)}).",
            task_id=task_id,
        )
    raise RemoteError(
        f"Could not {action} (HTTP {resp.status_code}): {_error_detail(resp)}",
        status_code=resp.status_code,
    )


def _json(resp: httpx.Response, action: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise RemoteError(f"Could not {action}: response is not JSON") from e


def task_from_story(data: dict[str, Any]) -> Task:
    """Map a remote user story payload onto a Task."""
    try:
        extra = data.get("status_extra_info") or {}
        raw_due = data.get("due_date")
        return Task(
            id=int(data["id"]),
            name=str(data["subject"]),
            status_id=int(data["status"]),
            status_slug=slugify(str(extra.get("name") or "")),
            team=bool(data.get("team_requirement", False)),
            client=bool(data.get("client_requirement", False)),
            blocked=bool(data.get("is_blocked", False)),
            assigned=[int(u) for u in (data.get("assigned_users") or [])],
            due=date.fromisoformat(raw_due) if raw_due else None,
            closed=bool(data.get("is_closed", False)),
            version=int(data["version"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RemoteError(f"Unexpected user story payload: {e}") from e


class TaigaApi:
    """Resource calls used by the sync layer. All requests go through SessionManager."""

    def __init__(self, sessions: SessionManager) -> None:
        self._sessions = sessions

    # ---- projects ----

    def list_projects(self) -> list[Project]:
        account_id = self._sessions.require().account_id
        resp = _check(self._sessions.request("GET", "/projects", params={"member": account_id}), "list projects")
        items = _json(resp, "list projects")
        try:
            return [Project(id=int(p["id"]), name=str(p["name"])) for p in items]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"Unexpected project listing payload: {e}") from e

    def get_project(self, project_id: int) -> Project:
        action = f"fetch project {project_id}"
        data = _json(_check(self._sessions.request("GET", f"/projects/{project_id}"), action), action)
        try:
            return Project(
                id=int(data["id"]),
                name=str(data["name"]),
                members=[User(id=int(m["id"]), username=str(m["username"])) for m in data["members"]],
                statuses=[
                    Status(id=int(s["id"]), slug=str(s["slug"]), is_closed=bool(s["is_closed"]))
                    for s in data["us_statuses"]
                ],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"Unexpected project payload: {e}") from e

    # ---- tasks (user stories) ----

    def list_tasks(self, project_id: int) -> list[Task]:
        """All non-archived stories of a project, following pagination links."""
        action = f"list tasks of project {project_id}"
        tasks: list[Task] = []
        path: str | None = "/userstories"
        params: dict[str, Any] | None = {"project": project_id, "status__is_archived": "false"}
        pages = 0
        while path:
            resp = _check(self._sessions.request("GET", path, params=params), action)
            page = _json(resp, action)
            if not isinstance(page, list):
                raise RemoteError(f"Could not {action}: expected a list")
            tasks.extend(task_from_story(item) for item in page)
            pages += 1
            # The next link already carries the query string.
            path = resp.headers.get("x-pagination-next") or None
            params = None
        logger.debug("Fetched %d tasks for project=%s in %d page(s)", len(tasks), project_id, pages)
        return tasks

    def create_task(
        self,
        project_id: int,
        *,
        name: str,
        status_id: int,
        assigned: list[int],
        team: bool = False,
        client: bool = False,
        blocked: bool = False,
    ) -> Task:
        body = {
            "project": project_id,
            "subject": name,
            "status": status_id,
            "assigned_to": assigned[0] if assigned else None,
            "assigned_users": list(assigned),
            "team_requirement": team,
            "client_requirement": client,
            "is_blocked": blocked,
        }
        action = "create task"
        data = _json(_check(self._sessions.request("POST", "/userstories", json=body), action), action)
        return task_from_story(data)

    def patch_task(self, task_id: int, patch: TaskPatch, version: int) -> Task:
        body = {**patch.to_payload(), "version": version}
        action = f"update task {task_id}"
        resp = _check(self._sessions.request("PATCH", f"/userstories/{task_id}", json=body), action, task_id=task_id)
        return task_from_story(_json(resp, action))

    def delete_task(self, task_id: int) -> None:
        _check(self._sessions.request("DELETE", f"/userstories/{task_id}"), f"delete task {task_id}")
