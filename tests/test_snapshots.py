# tests/test_snapshots.py

from __future__ import annotations

import pytest

from taiga_cli.core.models import Status, Task, TaskListSnapshot, User
from taiga_cli.errors import CacheCorruption, InvalidProjectReference
from taiga_cli.storage.cache_store import CacheStore, snapshot_key
from taiga_cli.sync import rules

from .conftest import PROJECT_ID

PROJECT = "GET /projects/7"
STORIES = "GET /userstories"


def test_unknown_project_requires_a_listing_first(logged_in, fake) -> None:
    with pytest.raises(InvalidProjectReference) as exc:
        logged_in.snapshots.get_snapshot(PROJECT_ID, rules.never)

    assert exc.value.project_id == PROJECT_ID
    assert fake.network_calls() == 0


def test_refresh_keeps_open_tasks_most_advanced_first(logged_in) -> None:
    snapshot = logged_in.snapshots.refresh(PROJECT_ID)

    assert [t.name for t in snapshot.tasks] == [
        "Write release notes",
        "Fix login page",
        "Update footer links",
    ]
    assert [s.slug for s in snapshot.statuses] == ["new", "in-progress", "done"]
    assert {m.username for m in snapshot.members} == {"alice", "bob"}
    assert snapshot.tasks[0].status_slug == "in-progress"


def test_refresh_follows_pagination(logged_in, fake) -> None:
    fake.page_size = 2
    snapshot = logged_in.snapshots.refresh(PROJECT_ID)

    assert len(snapshot.tasks) == 3
    assert fake.calls[STORIES] == 2


def test_fresh_enough_snapshot_costs_no_network(listed, fake) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.needs_statuses("done"))

    assert snapshot.find_status("done") is not None
    assert fake.network_calls() == 0


def test_stale_snapshot_is_refetched_exactly_once(listed, fake) -> None:
    fake.add_status(PROJECT_ID, 4, "review")

    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.needs_statuses("review"))

    assert snapshot.find_status("review") is not None
    assert fake.calls[PROJECT] == 1
    assert fake.calls[STORIES] == 1

    # The refetched record replaced the one on disk.
    fake.reset_calls()
    again = listed.snapshots.get_snapshot(PROJECT_ID, rules.needs_statuses("review"))
    assert again == snapshot
    assert fake.network_calls() == 0


def test_rule_still_unsatisfied_after_refetch_does_not_loop(listed, fake) -> None:
    snapshot = listed.snapshots.get_snapshot(PROJECT_ID, rules.needs_statuses("nonexistent"))

    assert snapshot.find_status("nonexistent") is None
    assert fake.calls[PROJECT] == 1
    assert fake.calls[STORIES] == 1


def test_workflow_refetch_keeps_listed_tasks_and_order(logged_in, fake) -> None:
    # A filtered listing leaves a single task at position 1.
    snapshot = logged_in.snapshots.refresh(PROJECT_ID)
    snapshot.tasks = [t for t in snapshot.tasks if t.id == 100]
    logged_in.snapshots.save(snapshot)
    fake.add_status(PROJECT_ID, 4, "review")
    fake.add_story(PROJECT_ID, "Created elsewhere", 2)
    fake.stories[100]["subject"] = "Fix the login page"
    fake.reset_calls()

    again = logged_in.snapshots.get_snapshot(PROJECT_ID, rules.needs_statuses("review"))

    assert [t.id for t in again.tasks] == [100]
    assert again.tasks[0].name == "Fix the login page"
    assert again.find_status("review") is not None
    assert fake.calls[STORIES] == 1
    detail = logged_in.snapshots.load_project(PROJECT_ID)
    assert "review" in [s.slug for s in detail.statuses]


def test_relisting_reuses_cached_project_detail(listed, fake) -> None:
    listed.snapshots.refresh(PROJECT_ID)

    assert fake.calls[STORIES] == 1
    assert fake.calls[PROJECT] == 0


def test_relisting_refetches_detail_for_unknown_assignee(listed, fake) -> None:
    fake.projects[PROJECT_ID]["members"].append({"id": 12, "username": "carol"})
    fake.add_story(PROJECT_ID, "Carol's task", 1, assigned_users=[12])

    snapshot = listed.snapshots.refresh(PROJECT_ID)

    assert fake.calls[PROJECT] == 1
    assert snapshot.member_by_id(12).username == "carol"


def test_relisting_refetches_detail_when_caller_rule_is_unmet(listed, fake) -> None:
    fake.add_status(PROJECT_ID, 4, "review")

    snapshot = listed.snapshots.refresh(PROJECT_ID, rules.needs_statuses("review"))

    assert fake.calls[PROJECT] == 1
    assert snapshot.find_status("review") is not None


def test_corrupt_snapshot_is_reported_not_refetched(listed, fake, settings) -> None:
    store = CacheStore(settings.cache_dir)
    store.put(snapshot_key(PROJECT_ID), b"{broken")

    with pytest.raises(CacheCorruption):
        listed.snapshots.get_snapshot(PROJECT_ID, rules.always)
    assert fake.network_calls() == 0


def test_project_detail_fetched_only_when_missing_or_stale(logged_in, fake) -> None:
    first = logged_in.snapshots.project(PROJECT_ID, lambda p: not p.members)
    assert [m.username for m in first.members] == ["alice", "bob"]
    assert fake.calls[PROJECT] == 1

    cached = logged_in.snapshots.project(PROJECT_ID, lambda p: not p.members)
    assert cached == first
    assert fake.calls[PROJECT] == 1

    logged_in.snapshots.project(PROJECT_ID, lambda _p: True)
    assert fake.calls[PROJECT] == 2


def test_refresh_also_caches_project_detail(listed, fake) -> None:
    detail = listed.snapshots.project(PROJECT_ID, lambda p: not p.statuses)

    assert [s.slug for s in detail.statuses] == ["new", "in-progress", "done"]
    assert fake.network_calls() == 0


def test_rules_compose() -> None:
    snap = TaskListSnapshot(project_id=1, members=[User(1, "alice")], statuses=[Status(1, "new", False)])

    assert not rules.needs_workflow()(snap)
    assert rules.needs_workflow()(TaskListSnapshot(project_id=1))
    assert not rules.needs_members("alice", rules.ME)(snap)
    assert rules.needs_members("carol")(snap)
    assert not rules.needs_statuses("new", "")(snap)
    assert rules.any_of(rules.never, rules.needs_statuses("done"))(snap)
    assert not rules.any_of(rules.never, rules.needs_members("alice"))(snap)


def test_unknown_assignees_rule() -> None:
    task = Task(
        id=5,
        name="x",
        status_id=1,
        status_slug="new",
        team=False,
        client=False,
        blocked=False,
        assigned=[1],
        due=None,
        closed=False,
        version=1,
    )
    snap = TaskListSnapshot(project_id=1, tasks=[task], members=[User(1, "alice")])
    assert not rules.unknown_assignees(snap)

    task.assigned.append(2)
    assert rules.unknown_assignees(snap)
