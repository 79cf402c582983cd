# src/taiga_cli/sync/rules.py

"""
Staleness predicates for SnapshotCache.get_snapshot.

A rule returns True when the cached snapshot cannot satisfy what the caller
is about to do (e.g. the status it wants to move a task into is unknown),
which forces one refetch. Rules describe need, not age.
"""

from __future__ import annotations

from collections.abc import Callable

from ..core.models import TaskListSnapshot

StaleRule = Callable[[TaskListSnapshot], bool]

ME = "me"


def never(_snapshot: TaskListSnapshot) -> bool:
    return False


def always(_snapshot: TaskListSnapshot) -> bool:
    return True


def needs_workflow() -> StaleRule:
    """Stale until the snapshot knows the project's statuses."""

    def rule(snapshot: TaskListSnapshot) -> bool:
        return not snapshot.statuses

    return rule


def needs_statuses(*slugs: str) -> StaleRule:
    wanted = [s for s in slugs if s]

    def rule(snapshot: TaskListSnapshot) -> bool:
        return any(snapshot.find_status(slug) is None for slug in wanted)

    return rule


def needs_members(*usernames: str) -> StaleRule:
    """Stale if any username is unknown. "me" resolves through the session, not the snapshot."""
    wanted = [u for u in usernames if u and u != ME]

    def rule(snapshot: TaskListSnapshot) -> bool:
        return any(snapshot.find_member(name) is None for name in wanted)

    return rule


def any_of(*rules: StaleRule) -> StaleRule:
    def rule(snapshot: TaskListSnapshot) -> bool:
        return any(r(snapshot) for r in rules)

    return rule


def unknown_assignees(snapshot: TaskListSnapshot) -> bool:
    """Stale if a listed task is assigned to someone the snapshot's members do not include."""
    return any(snapshot.member_by_id(user_id) is None for task in snapshot.tasks for user_id in task.assigned)
