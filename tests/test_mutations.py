# tests/test_mutations.py

from __future__ import annotations

import json
from datetime import date

import pytest

from taiga_cli.core.models import TaskPatch
from taiga_cli.errors import ConflictError, RemoteError
from taiga_cli.storage import codec
from taiga_cli.storage.cache_store import CacheStore, snapshot_key
from taiga_cli.sync import rules
from taiga_cli.sync.mutations import TaskMutator

from .conftest import PROJECT_ID
from .fakes import FrozenVersionApi


def _disk_bytes(settings) -> bytes | None:
    return CacheStore(settings.cache_dir).get(snapshot_key(PROJECT_ID))


def _disk_snapshot(settings):
    return CacheStore(settings.cache_dir).load(snapshot_key(PROJECT_ID), codec.load_snapshot)


def test_apply_replaces_entry_with_server_copy_and_persists(listed, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)
    assert task.name == "Write release notes"

    updated = listed.mutator.apply(snapshot, task, TaskPatch(status_id=3))

    assert updated.version == task.version + 1
    # Server-derived fields come along even though the patch only named a status.
    assert updated.status_slug == "done"
    assert updated.closed is True
    assert snapshot.task_at(1) is updated
    assert task.version == 1

    on_disk = _disk_snapshot(settings)
    assert on_disk.task_at(1) == updated
    assert [t.id for t in on_disk.tasks] == [t.id for t in snapshot.tasks]


def test_patch_sends_the_cached_version(listed, fake) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(2)

    listed.mutator.apply(snapshot, task, TaskPatch(name="Fix the login page", blocked=True))

    sent = fake.requests[-1]
    assert sent.method == "PATCH"
    assert sent.url.path.endswith(f"/userstories/{task.id}")
    body = json.loads(sent.content)
    assert body == {"subject": "Fix the login page", "is_blocked": True, "version": 1}


def test_concurrent_edit_is_a_conflict_and_cache_is_untouched(listed, fake, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)
    fake.stories[task.id]["version"] = 5
    before = _disk_bytes(settings)

    with pytest.raises(ConflictError) as exc:
        listed.mutator.apply(snapshot, task, TaskPatch(name="Renamed"))

    assert exc.value.task_id == task.id
    assert _disk_bytes(settings) == before
    assert snapshot.task_at(1) is task
    # A conflict is not an auth failure: no retries.
    assert fake.calls[f"PATCH /userstories/{task.id}"] == 1
    assert fake.calls["POST /auth/refresh"] == 0


def test_server_error_is_remote_error_and_cache_is_untouched(listed, fake, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)
    fake.fail_next(f"PATCH /userstories/{task.id}", 500)
    before = _disk_bytes(settings)

    with pytest.raises(RemoteError) as exc:
        listed.mutator.apply(snapshot, task, TaskPatch(name="Renamed"))

    assert exc.value.status_code == 500
    assert _disk_bytes(settings) == before


def test_write_that_does_not_advance_version_is_rejected(listed, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)
    api = FrozenVersionApi(snapshot.tasks)
    mutator = TaskMutator(api, listed.snapshots)
    before = _disk_bytes(settings)

    with pytest.raises(RemoteError, match="version"):
        mutator.apply(snapshot, task, TaskPatch(name="Renamed"))

    assert api.calls["patch_task"] == 1
    assert _disk_bytes(settings) == before


def test_create_follows_up_with_fields_creation_does_not_take(listed, fake, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)

    created = listed.mutator.create(
        snapshot,
        name="Ship it",
        status_id=1,
        assigned=[10, 11],
        due=date(2026, 12, 1),
    )

    assert created.assigned == [10, 11]
    assert created.due == date(2026, 12, 1)
    assert created.version == 2
    assert fake.calls["POST /userstories"] == 1
    assert fake.calls[f"PATCH /userstories/{created.id}"] == 1

    assert snapshot.tasks[-1] is created
    assert _disk_snapshot(settings).tasks[-1] == created


def test_create_without_extra_fields_is_a_single_call(listed, fake) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)

    created = listed.mutator.create(snapshot, name="Small thing", status_id=2, assigned=[11], team=True)

    assert created.version == 1
    assert created.team is True
    assert created.status_slug == "in-progress"
    assert fake.network_calls() == 1


def test_delete_removes_task_remotely_and_locally(listed, fake, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)

    listed.mutator.delete(snapshot, task)

    assert task.id not in fake.stories
    assert task.id not in [t.id for t in snapshot.tasks]
    assert [t.id for t in _disk_snapshot(settings).tasks] == [t.id for t in snapshot.tasks]


def test_failed_delete_keeps_cache(listed, fake, settings) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.never)
    task = snapshot.task_at(1)
    fake.fail_next(f"DELETE /userstories/{task.id}", 404)
    before = _disk_bytes(settings)

    with pytest.raises(RemoteError):
        listed.mutator.delete(snapshot, task)

    assert _disk_bytes(settings) == before
    assert snapshot.task_at(1) is task
