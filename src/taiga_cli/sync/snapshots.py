# src/taiga_cli/sync/snapshots.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.models import Project, Task, TaskListSnapshot
from ..core.ports import RemoteApi
from ..errors import InvalidProjectReference
from ..storage import codec
from ..storage.cache_store import CacheStore, project_key, snapshot_key
from . import rules
from .rules import StaleRule

logger = logging.getLogger(__name__)

ProjectRule = Callable[[Project], bool]


def listing_order(tasks: list[Task]) -> list[Task]:
    """Open tasks, most advanced status first (stable within a status)."""
    open_tasks = [t for t in tasks if not t.closed]
    return sorted(open_tasks, key=lambda t: t.status_id, reverse=True)


class SnapshotCache:
    """
    Per-project task list cache with caller-driven invalidation.

    The cache trusts what is on disk by default. A caller states, through a
    staleness rule, the minimal condition under which it cannot proceed;
    only then is the project refetched, exactly once.
    """

    def __init__(self, store: CacheStore, api: RemoteApi) -> None:
        self._store = store
        self._api = api

    # ---- task list snapshots ----

    def load(self, project_id: int) -> TaskListSnapshot | None:
        return self._store.load(snapshot_key(project_id), codec.load_snapshot)

    def save(self, snapshot: TaskListSnapshot) -> None:
        self._store.put(snapshot_key(snapshot.project_id), codec.dump_snapshot(snapshot))
        logger.debug("Snapshot saved project=%s tasks=%d", snapshot.project_id, len(snapshot.tasks))

    def get_snapshot(self, project_id: int, stale_rule: StaleRule) -> TaskListSnapshot:
        snapshot = self.load(project_id)
        if snapshot is None:
            raise InvalidProjectReference(project_id)

        if not stale_rule(snapshot):
            logger.debug("Snapshot for project=%s is usable as cached", project_id)
            return snapshot

        logger.info("Snapshot for project=%s does not satisfy caller, refetching in place", project_id)
        return self._refetch_in_place(snapshot)

    def _refetch_in_place(self, snapshot: TaskListSnapshot) -> TaskListSnapshot:
        """
        Refetch members, statuses and task data in place.

        The task list keeps its membership and order: a position from the last
        listing must keep naming the same task. Listed tasks pick up the remote
        copy by id; tasks missing from the remote listing keep their cached entry.
        """
        project = self._api.get_project(snapshot.project_id)
        self.save_project(project)
        remote = {t.id: t for t in self._api.list_tasks(snapshot.project_id)}

        snapshot.members = list(project.members)
        snapshot.statuses = list(project.statuses)
        snapshot.tasks = [remote.get(t.id, t) for t in snapshot.tasks]
        self.save(snapshot)
        return snapshot

    def refresh(self, project_id: int, stale_rule: StaleRule = rules.never) -> TaskListSnapshot:
        """
        The listing path: refetch open tasks and replace the snapshot wholesale.

        Project detail comes from the cache unless it has no workflow yet, a
        listed task is assigned to someone it does not know, or stale_rule
        (the caller's own filters) rejects it.
        """
        tasks = listing_order(self._api.list_tasks(project_id))

        def with_detail(project: Project) -> TaskListSnapshot:
            return TaskListSnapshot(
                project_id=project_id,
                tasks=tasks,
                members=list(project.members),
                statuses=list(project.statuses),
            )

        detail_is_stale = rules.any_of(rules.needs_workflow(), rules.unknown_assignees, stale_rule)
        snapshot = with_detail(self.project(project_id, lambda p: detail_is_stale(with_detail(p))))
        self.save(snapshot)
        logger.info(
            "Snapshot refreshed project=%s tasks=%d members=%d statuses=%d",
            project_id,
            len(snapshot.tasks),
            len(snapshot.members),
            len(snapshot.statuses),
        )
        return snapshot

    # ---- project detail records ----

    def load_project(self, project_id: int) -> Project | None:
        return self._store.load(project_key(project_id), codec.load_project)

    def save_project(self, project: Project) -> None:
        self._store.put(project_key(project.id), codec.dump_project(project))

    def project(self, project_id: int, stale_rule: ProjectRule) -> Project:
        """Cached project detail; fetched when absent or when stale_rule says so."""
        cached = self.load_project(project_id)
        if cached is not None and not stale_rule(cached):
            return cached

        logger.info("Project detail for id=%s missing or stale, fetching", project_id)
        project = self._api.get_project(project_id)
        self.save_project(project)
        return project
