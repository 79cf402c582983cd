# src/taiga_cli/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

_UNSET: Any = object()


@dataclass(frozen=True, slots=True)
class Credentials:
    username: str
    password: str

    def to_dict(self) -> dict[str, Any]:
        return {"username": self.username, "password": self.password}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credentials:
        return cls(username=str(data["username"]), password=str(data["password"]))


@dataclass(frozen=True, slots=True)
class User:
    id: int
    username: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(id=int(data["id"]), username=str(data["username"]))


@dataclass(frozen=True, slots=True)
class Status:
    """A workflow state of one project. `is_closed` marks terminal states."""

    id: int
    slug: str
    is_closed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "slug": self.slug, "is_closed": self.is_closed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Status:
        return cls(id=int(data["id"]), slug=str(data["slug"]), is_closed=bool(data["is_closed"]))


@dataclass(slots=True)
class Project:
    """
    A remote project.

    The listing form carries only id and name; members and statuses are
    populated by the detail form.
    """

    id: int
    name: str
    members: list[User] = field(default_factory=list)
    statuses: list[Status] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": [m.to_dict() for m in self.members],
            "statuses": [s.to_dict() for s in self.statuses],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            members=[User.from_dict(m) for m in data["members"]],
            statuses=[Status.from_dict(s) for s in data["statuses"]],
        )


@dataclass(slots=True)
class Task:
    id: int
    name: str
    status_id: int
    status_slug: str
    team: bool
    client: bool
    blocked: bool
    assigned: list[int]
    due: date | None
    closed: bool
    version: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status_id": self.status_id,
            "status_slug": self.status_slug,
            "team": self.team,
            "client": self.client,
            "blocked": self.blocked,
            "assigned": list(self.assigned),
            "due": self.due.isoformat() if self.due is not None else None,
            "closed": self.closed,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        due = data["due"]
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            status_id=int(data["status_id"]),
            status_slug=str(data["status_slug"]),
            team=bool(data["team"]),
            client=bool(data["client"]),
            blocked=bool(data["blocked"]),
            assigned=[int(u) for u in data["assigned"]],
            due=date.fromisoformat(due) if due else None,
            closed=bool(data["closed"]),
            version=int(data["version"]),
        )


@dataclass(slots=True)
class TaskListSnapshot:
    """
    Cached {tasks, members, statuses} bundle for one project.

    Tasks keep the order of the last listing; users address them by their
    1-based position in that order.
    """

    project_id: int
    tasks: list[Task] = field(default_factory=list)
    members: list[User] = field(default_factory=list)
    statuses: list[Status] = field(default_factory=list)

    def find_status(self, slug: str) -> Status | None:
        return next((s for s in self.statuses if s.slug == slug), None)

    def find_member(self, username: str) -> User | None:
        return next((m for m in self.members if m.username == username), None)

    def member_by_id(self, user_id: int) -> User | None:
        return next((m for m in self.members if m.id == user_id), None)

    def task_at(self, position: int) -> Task | None:
        if position < 1 or position > len(self.tasks):
            return None
        return self.tasks[position - 1]

    def replace_task(self, task: Task) -> None:
        """Overwrite the entry with the same id; the caller's old handle is dropped."""
        for i, existing in enumerate(self.tasks):
            if existing.id == task.id:
                self.tasks[i] = task
                return
        self.tasks.append(task)

    def remove_task(self, task_id: int) -> None:
        self.tasks = [t for t in self.tasks if t.id != task_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "tasks": [t.to_dict() for t in self.tasks],
            "members": [m.to_dict() for m in self.members],
            "statuses": [s.to_dict() for s in self.statuses],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskListSnapshot:
        return cls(
            project_id=int(data["project_id"]),
            tasks=[Task.from_dict(t) for t in data["tasks"]],
            members=[User.from_dict(m) for m in data["members"]],
            statuses=[Status.from_dict(s) for s in data["statuses"]],
        )


@dataclass(slots=True)
class Session:
    access_token: str
    refresh_token: str
    expires_at: float
    base_url: str
    account_id: int
    credentials: Credentials | None = None
    projects: list[Project] = field(default_factory=list)

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "base_url": self.base_url,
            "account_id": self.account_id,
            "credentials": self.credentials.to_dict() if self.credentials is not None else None,
            "projects": [p.to_dict() for p in self.projects],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        creds = data["credentials"]
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=str(data["refresh_token"]),
            expires_at=float(data["expires_at"]),
            base_url=str(data["base_url"]),
            account_id=int(data["account_id"]),
            credentials=Credentials.from_dict(creds) if creds is not None else None,
            projects=[Project.from_dict(p) for p in data["projects"]],
        )


@dataclass(slots=True)
class TaskPatch:
    """
    Fields to change on one task. Unset fields are not sent.

    `due=None` clears the due date; leaving `due` unset keeps it.
    """

    status_id: int | None = None
    name: str | None = None
    assigned: list[int] | None = None
    due: Any = _UNSET
    team: bool | None = None
    client: bool | None = None
    blocked: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.status_id is not None:
            out["status"] = self.status_id
        if self.name is not None:
            out["subject"] = self.name
        if self.assigned is not None:
            out["assigned_users"] = list(self.assigned)
        if self.due is not _UNSET:
            out["due_date"] = self.due.isoformat() if self.due is not None else None
        if self.team is not None:
            out["team_requirement"] = self.team
        if self.client is not None:
            out["client_requirement"] = self.client
        if self.blocked is not None:
            out["is_blocked"] = self.blocked
        return out

    def is_empty(self) -> bool:
        return not self.to_payload()
