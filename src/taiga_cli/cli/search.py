# src/taiga_cli/cli/search.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..core.models import Task

ANY_DUE: Any = object()


def fuzzy_match(name: str, query: list[str]) -> bool:
    """
    Case-insensitive: true if the query words appear, in order, inside successive words of name.

    "fix log" matches "Fix the login page": each query word must be a
    substring of a later word than the previous match.
    """
    if not query:
        return True
    query = [q.lower() for q in query]
    matched = 0
    for word in name.lower().split():
        if matched == len(query):
            break
        if query[matched] in word:
            matched += 1
    return matched == len(query)


@dataclass(slots=True)
class TaskFilter:
    """Resolved search criteria (ids, not names)."""

    query: list[str] = field(default_factory=list)
    include_status_ids: set[int] = field(default_factory=set)
    exclude_status_ids: set[int] = field(default_factory=set)
    include_member_ids: set[int] = field(default_factory=set)
    exclude_member_ids: set[int] = field(default_factory=set)
    team: bool | None = None
    client: bool | None = None
    blocked: bool | None = None
    # ANY_DUE: any due date; None: tasks without one; a date: due on or before it.
    due: Any = ANY_DUE

    def matches(self, task: Task) -> bool:
        if self.team is not None and task.team != self.team:
            return False
        if self.client is not None and task.client != self.client:
            return False
        if self.blocked is not None and task.blocked != self.blocked:
            return False

        if self.due is not ANY_DUE:
            if self.due is None:
                if task.due is not None:
                    return False
            elif task.due is None or task.due > self.due:
                return False

        assigned = set(task.assigned)
        if self.include_member_ids and not assigned & self.include_member_ids:
            return False
        if self.exclude_member_ids and assigned & self.exclude_member_ids:
            return False

        if self.include_status_ids and task.status_id not in self.include_status_ids:
            return False
        if self.exclude_status_ids and task.status_id in self.exclude_status_ids:
            return False

        return fuzzy_match(task.name, self.query)

    def apply(self, tasks: list[Task]) -> list[Task]:
        return [t for t in tasks if self.matches(t)]
