# src/taiga_cli/sync/mutations.py

from __future__ import annotations

import logging
from datetime import date

from ..core.models import Task, TaskListSnapshot, TaskPatch
from ..core.ports import RemoteApi
from ..errors import RemoteError
from .snapshots import SnapshotCache

logger = logging.getLogger(__name__)


class TaskMutator:
    """
    Optimistic-concurrency writes to single tasks.

    The server is the only judge of conflicts: every write carries the
    version last seen locally. The returned task replaces the cached copy
    wholesale (server-derived fields such as the status label or the closed
    flag may change beyond the patch). The snapshot is persisted only after
    the remote write succeeded, so a failure keeps the last good cache.
    """

    def __init__(self, api: RemoteApi, snapshots: SnapshotCache) -> None:
        self._api = api
        self._snapshots = snapshots

    def mutate(self, task_id: int, patch: TaskPatch, expected_version: int) -> Task:
        """Send one patch. Raises ConflictError on a version mismatch, RemoteError otherwise."""
        updated = self._api.patch_task(task_id, patch, expected_version)
        if updated.id != task_id:
            raise RemoteError(f"Update of task {task_id} returned task {updated.id}")
        if updated.version <= expected_version:
            raise RemoteError(
                f"Update of task {task_id} returned version {updated.version}, expected more than {expected_version}"
            )
        logger.info("Task %s updated version %s -> %s", task_id, expected_version, updated.version)
        return updated

    def apply(self, snapshot: TaskListSnapshot, task: Task, patch: TaskPatch) -> Task:
        """mutate() + replace the snapshot entry in place + persist."""
        updated = self.mutate(task.id, patch, task.version)
        snapshot.replace_task(updated)
        self._snapshots.save(snapshot)
        return updated

    def create(
        self,
        snapshot: TaskListSnapshot,
        *,
        name: str,
        status_id: int,
        assigned: list[int],
        due: date | None = None,
        team: bool = False,
        client: bool = False,
        blocked: bool = False,
    ) -> Task:
        created = self._api.create_task(
            snapshot.project_id,
            name=name,
            status_id=status_id,
            assigned=assigned,
            team=team,
            client=client,
            blocked=blocked,
        )
        logger.info("Task %s created in project=%s", created.id, snapshot.project_id)

        # Creation does not take every field (due date, extra assignees): follow up with one patch.
        follow_up = TaskPatch()
        if due is not None:
            follow_up.due = due
        if sorted(created.assigned) != sorted(assigned):
            follow_up.assigned = list(assigned)
        if not follow_up.is_empty():
            # Keep the created task cached even if the follow-up fails.
            snapshot.replace_task(created)
            self._snapshots.save(snapshot)
            created = self.mutate(created.id, follow_up, created.version)

        snapshot.replace_task(created)
        self._snapshots.save(snapshot)
        return created

    def delete(self, snapshot: TaskListSnapshot, task: Task) -> None:
        self._api.delete_task(task.id)
        snapshot.remove_task(task.id)
        self._snapshots.save(snapshot)
        logger.info("Task %s deleted from project=%s", task.id, snapshot.project_id)
