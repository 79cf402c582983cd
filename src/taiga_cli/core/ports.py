# src/taiga_cli/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync layer.

SnapshotCache and TaskMutator depend on this Protocol rather than on the
concrete TaigaApi, so tests can drive them with in-memory fakes.
"""

from typing import Protocol

from .models import Project, Task, TaskPatch


class RemoteApi(Protocol):
    """Remote resource calls the sync layer relies on."""

    def list_projects(self) -> list[Project]: ...
    def get_project(self, project_id: int) -> Project: ...
    def list_tasks(self, project_id: int) -> list[Task]: ...

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
    ) -> Task: ...

    def patch_task(self, task_id: int, patch: TaskPatch, version: int) -> Task: ...
    def delete_task(self, task_id: int) -> None: ...
