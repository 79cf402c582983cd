# src/taiga_cli/cli/commands.py

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from datetime import date

from ..core.models import Project, Status, Task, TaskListSnapshot, TaskPatch
from ..core.state import AppState
from ..errors import NotFound, TaigaError
from ..sync import rules
from ..sync.rules import StaleRule
from .render import render_tasks
from .search import ANY_DUE, TaskFilter

CommandHandler = Callable[[AppState, argparse.Namespace], str]
Configure = Callable[[argparse.ArgumentParser], None]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Verb registry: each command contributes an argparse subparser and a handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._configure: dict[str, Configure | None] = {}
        self._aliases: dict[str, list[str]] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        configure: Configure | None = None,
        aliases: list[str] | None = None,
    ) -> None:
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        self._configure[key] = configure
        self._aliases[key] = [a.lower() for a in aliases or []]
        for alias in self._aliases[key]:
            self._handlers[alias] = handler

    def build_parser(self, prog: str = "taiga") -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog=prog, description="Taiga projects and tasks from the terminal.")
        sub = parser.add_subparsers(dest="command", metavar="COMMAND")
        for name, help_text in self._help.items():
            p = sub.add_parser(name, help=help_text, description=help_text, aliases=self._aliases[name])
            configure = self._configure[name]
            if configure is not None:
                configure(p)
        return parser

    def handle(self, state: AppState, args: argparse.Namespace) -> str:
        name = (getattr(args, "command", None) or "").lower()
        handler = self._handlers.get(name)
        if handler is None:
            raise TaigaError(f"Unknown command: {name}. Use --help to list available commands.")
        logger.debug("Running command=%s", name)
        return handler(state, args)


registry = CommandRegistry()


# ---- argument helpers ----

def due_arg(raw: str) -> date | None:
    """argparse type: YYYY-MM-DD, or "none" to mean no due date."""
    value = raw.strip().lower()
    if value in ("", "none", "clear"):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {raw!r}, expected YYYY-MM-DD or 'none'") from e


def _add_project(p: argparse.ArgumentParser) -> None:
    p.add_argument("project", help="project name as shown by `taiga projects`")


def _add_project_task(p: argparse.ArgumentParser) -> None:
    _add_project(p)
    p.add_argument("id", type=int, help="task number from the last `taiga search` listing")


def _add_remove(p: argparse.ArgumentParser) -> None:
    p.add_argument("-r", "--remove", action="store_true", help="unset instead of set")


# ---- resolution helpers ----

def find_project(state: AppState, name: str) -> Project:
    session = state.sessions.require()
    for project in session.projects:
        if project.name == name:
            return project
    raise NotFound(f"Project '{name}' not found. Run `taiga projects` to refresh the list.")


def require_task(snapshot: TaskListSnapshot, position: int) -> Task:
    task = snapshot.task_at(position)
    if task is None:
        raise NotFound(f"No task #{position} in the last listing ({len(snapshot.tasks)} tasks).")
    return task


def require_status(snapshot: TaskListSnapshot, slug: str) -> Status:
    status = snapshot.find_status(slug)
    if status is None:
        known = ", ".join(s.slug for s in snapshot.statuses) or "none"
        raise NotFound(f"Status '{slug}' not found in this project (known: {known}).")
    return status


def member_id(state: AppState, snapshot: TaskListSnapshot, username: str) -> int:
    if username == rules.ME:
        account_id = state.sessions.require().account_id
        if snapshot.member_by_id(account_id) is None:
            raise NotFound("You are not a member of this project.")
        return account_id
    member = snapshot.find_member(username)
    if member is None:
        raise NotFound(f"User '{username}' is not a member of this project.")
    return member.id


def done_status(statuses: list[Status]) -> Status:
    """First closed status in project order."""
    for status in statuses:
        if status.is_closed:
            return status
    raise NotFound("This project has no closed status to mark tasks as done.")


def _snapshot(state: AppState, project_name: str, rule: StaleRule) -> TaskListSnapshot:
    project = find_project(state, project_name)
    return state.snapshots.get_snapshot(project.id, rule)


def _describe(position: int, task: Task) -> str:
    return f"#{position} '{task.name}' [{task.status_slug}] v{task.version}"


# ---- session / project commands ----

def cmd_login(state: AppState, args: argparse.Namespace) -> str:
    base_url = args.url or state.settings.base_url
    credentials = state.credential_prompt()
    state.sessions.authenticate(credentials, base_url)
    projects = state.api.list_projects()
    state.sessions.remember_projects(projects)
    return f"Logged in as {credentials.username} ({len(projects)} projects)."


def cmd_logout(state: AppState, args: argparse.Namespace) -> str:
    state.sessions.sign_out(purge=args.purge)
    return "Logged out." if not args.purge else "Logged out and local cache cleared."


def cmd_projects(state: AppState, args: argparse.Namespace) -> str:
    if args.cached:
        projects = state.sessions.require().projects
    else:
        projects = state.api.list_projects()
        state.sessions.remember_projects(projects)
    return "\n".join(p.name for p in projects) or "No projects."


def cmd_users(state: AppState, args: argparse.Namespace) -> str:
    project = find_project(state, args.project)
    rule: Callable[[Project], bool] = (lambda _p: True) if args.refresh else (lambda p: not p.members)
    detail = state.snapshots.project(project.id, rule)
    return "\n".join(m.username for m in detail.members) or "No members."


def cmd_statuses(state: AppState, args: argparse.Namespace) -> str:
    project = find_project(state, args.project)
    rule: Callable[[Project], bool] = (lambda _p: True) if args.refresh else (lambda p: not p.statuses)
    detail = state.snapshots.project(project.id, rule)
    return "\n".join(f"{s.slug}{' (closed)' if s.is_closed else ''}" for s in detail.statuses) or "No statuses."


# ---- task commands ----

def cmd_search(state: AppState, args: argparse.Namespace) -> str:
    project = find_project(state, args.project)
    filters_unresolved = rules.any_of(
        rules.needs_statuses(*args.status, *args.exclude_status),
        rules.needs_members(*args.assigned, *args.exclude_assigned),
    )
    snapshot = state.snapshots.refresh(project.id, filters_unresolved)

    flt = TaskFilter(
        query=list(args.query),
        include_status_ids={require_status(snapshot, s).id for s in args.status},
        exclude_status_ids={require_status(snapshot, s).id for s in args.exclude_status},
        include_member_ids={member_id(state, snapshot, u) for u in args.assigned},
        exclude_member_ids={member_id(state, snapshot, u) for u in args.exclude_assigned},
        team=args.team,
        client=args.client,
        blocked=args.blocked,
        due=getattr(args, "due", ANY_DUE),
    )
    # The listing defines the positions the other commands refer to.
    snapshot.tasks = flt.apply(snapshot.tasks)
    state.snapshots.save(snapshot)
    return render_tasks(snapshot)


def cmd_new(state: AppState, args: argparse.Namespace) -> str:
    rule = rules.any_of(
        rules.needs_workflow(),
        rules.needs_statuses(args.status) if args.status else rules.never,
        rules.needs_members(*args.assign),
    )
    snapshot = _snapshot(state, args.project, rule)

    if args.status:
        status = require_status(snapshot, args.status)
    elif snapshot.statuses:
        status = snapshot.statuses[0]
    else:
        raise NotFound("This project does not have any statuses.")
    assigned = list(dict.fromkeys(member_id(state, snapshot, u) for u in args.assign))

    task = state.mutator.create(
        snapshot,
        name=" ".join(args.name),
        status_id=status.id,
        assigned=assigned,
        due=getattr(args, "due", None),
        team=args.team,
        client=args.client,
        blocked=args.block,
    )
    position = snapshot.tasks.index(task) + 1
    return f"Created {_describe(position, task)}"


def cmd_move(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.needs_statuses(args.status))
    status = require_status(snapshot, args.status)
    task = require_task(snapshot, args.id)
    updated = state.mutator.apply(snapshot, task, TaskPatch(status_id=status.id))
    return f"Moved {_describe(args.id, updated)}"


def cmd_done(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.needs_workflow())
    status = done_status(snapshot.statuses)
    task = require_task(snapshot, args.id)
    updated = state.mutator.apply(snapshot, task, TaskPatch(status_id=status.id))
    return f"Done {_describe(args.id, updated)}"


def cmd_rename(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.never)
    task = require_task(snapshot, args.id)
    updated = state.mutator.apply(snapshot, task, TaskPatch(name=" ".join(args.name)))
    return f"Renamed {_describe(args.id, updated)}"


def cmd_assign(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.needs_members(args.username))
    user_id = member_id(state, snapshot, args.username)
    task = require_task(snapshot, args.id)

    assigned = list(task.assigned)
    if args.remove:
        if user_id not in assigned:
            raise TaigaError(f"{args.username} is not assigned to task #{args.id}.")
        assigned.remove(user_id)
    else:
        if user_id in assigned:
            raise TaigaError(f"{args.username} is already assigned to task #{args.id}.")
        assigned.append(user_id)

    updated = state.mutator.apply(snapshot, task, TaskPatch(assigned=assigned))
    verb = "Unassigned" if args.remove else "Assigned"
    return f"{verb} {args.username}: {_describe(args.id, updated)}"


def cmd_due(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.never)
    task = require_task(snapshot, args.id)
    updated = state.mutator.apply(snapshot, task, TaskPatch(due=args.date))
    when = updated.due.isoformat() if updated.due is not None else "none"
    return f"Due {when}: {_describe(args.id, updated)}"


def _flag_command(field_name: str, label: str) -> CommandHandler:
    def handler(state: AppState, args: argparse.Namespace) -> str:
        snapshot = _snapshot(state, args.project, rules.never)
        task = require_task(snapshot, args.id)
        updated = state.mutator.apply(snapshot, task, TaskPatch(**{field_name: not args.remove}))
        return f"{label} {'off' if args.remove else 'on'}: {_describe(args.id, updated)}"

    return handler


cmd_team = _flag_command("team", "Team requirement")
cmd_client = _flag_command("client", "Client requirement")
cmd_block = _flag_command("blocked", "Blocked")


def cmd_modify(state: AppState, args: argparse.Namespace) -> str:
    rule = rules.any_of(
        rules.needs_statuses(args.status) if args.status else rules.never,
        rules.needs_members(*args.assign),
    )
    snapshot = _snapshot(state, args.project, rule)
    task = require_task(snapshot, args.id)

    patch = TaskPatch(team=args.team, client=args.client, blocked=args.blocked)
    if args.status:
        patch.status_id = require_status(snapshot, args.status).id
    if args.name:
        patch.name = " ".join(args.name)
    if args.assign:
        added = [member_id(state, snapshot, u) for u in args.assign]
        patch.assigned = sorted(set(task.assigned) | set(added))
    if hasattr(args, "due"):
        patch.due = args.due
    if patch.is_empty():
        raise TaigaError("Nothing to modify. Pass at least one option (see --help).")

    updated = state.mutator.apply(snapshot, task, patch)
    return f"Modified {_describe(args.id, updated)}"


def cmd_delete(state: AppState, args: argparse.Namespace) -> str:
    snapshot = _snapshot(state, args.project, rules.never)
    task = require_task(snapshot, args.id)
    state.mutator.delete(snapshot, task)
    return f"Deleted '{task.name}'. Task numbers changed; list the tasks again."


# ---- parser configuration ----

def _conf_login(p: argparse.ArgumentParser) -> None:
    p.add_argument("--url", help="API base URL (default: TAIGA_BASE_URL)")


def _conf_logout(p: argparse.ArgumentParser) -> None:
    p.add_argument("--purge", action="store_true", help="also delete every cached project and task list")


def _conf_projects(p: argparse.ArgumentParser) -> None:
    p.add_argument("--cached", action="store_true", help="print the cached list without contacting the server")


def _conf_project_detail(p: argparse.ArgumentParser) -> None:
    _add_project(p)
    p.add_argument("--refresh", action="store_true", help="refetch from the server")


def _conf_search(p: argparse.ArgumentParser) -> None:
    _add_project(p)
    p.add_argument("query", nargs="*", help="words to match, in order, in task names")
    p.add_argument("-s", "--status", action="append", default=[], help="only this status (repeatable)")
    p.add_argument("-S", "--exclude-status", action="append", default=[], help="hide this status (repeatable)")
    p.add_argument("-a", "--assigned", action="append", default=[], help="only tasks assigned to user or 'me'")
    p.add_argument("-A", "--exclude-assigned", action="append", default=[], help="hide tasks assigned to user")
    p.add_argument("--team", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--client", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--blocked", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--due", type=due_arg, default=argparse.SUPPRESS, help="due on or before DATE; 'none' = no due date")


def _conf_new(p: argparse.ArgumentParser) -> None:
    _add_project(p)
    p.add_argument("name", nargs="+")
    p.add_argument("-s", "--status", help="initial status slug (default: first status)")
    p.add_argument("-a", "--assign", action="append", default=[], help="username or 'me' (repeatable)")
    p.add_argument("--due", type=due_arg, default=argparse.SUPPRESS, help="YYYY-MM-DD")
    p.add_argument("--team", action="store_true")
    p.add_argument("--client", action="store_true")
    p.add_argument("--block", action="store_true")


def _conf_move(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    p.add_argument("status", help="target status slug")


def _conf_rename(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    p.add_argument("name", nargs="+")


def _conf_assign(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    p.add_argument("username", help="username or 'me'")
    _add_remove(p)


def _conf_due(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    p.add_argument("date", type=due_arg, help="YYYY-MM-DD or 'none'")


def _conf_flag(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    _add_remove(p)


def _conf_modify(p: argparse.ArgumentParser) -> None:
    _add_project_task(p)
    p.add_argument("-s", "--status")
    p.add_argument("-n", "--name", nargs="+")
    p.add_argument("-a", "--assign", action="append", default=[], help="add assignee (repeatable)")
    p.add_argument("--due", type=due_arg, default=argparse.SUPPRESS, help="YYYY-MM-DD or 'none'")
    p.add_argument("--team", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--client", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--blocked", action=argparse.BooleanOptionalAction, default=None)


registry.register("login", cmd_login, "Log in and cache the project list.", _conf_login)
registry.register("logout", cmd_logout, "Forget the local session.", _conf_logout)
registry.register("projects", cmd_projects, "List your projects.", _conf_projects)
registry.register("users", cmd_users, "List project members.", _conf_project_detail)
registry.register("statuses", cmd_statuses, "List project workflow statuses.", _conf_project_detail)
registry.register("search", cmd_search, "List and filter open tasks.", _conf_search, aliases=["ls"])
registry.register("new", cmd_new, "Create a task.", _conf_new)
registry.register("move", cmd_move, "Move a task to another status.", _conf_move, aliases=["mv"])
registry.register("done", cmd_done, "Move a task to the project's closed status.", _add_project_task)
registry.register("rename", cmd_rename, "Rename a task.", _conf_rename)
registry.register("assign", cmd_assign, "Assign (or --remove) a user.", _conf_assign)
registry.register("due", cmd_due, "Set or clear a due date.", _conf_due)
registry.register("team", cmd_team, "Toggle the team requirement flag.", _conf_flag)
registry.register("client", cmd_client, "Toggle the client requirement flag.", _conf_flag)
registry.register("block", cmd_block, "Toggle the blocked flag.", _conf_flag)
registry.register("modify", cmd_modify, "Change several fields at once.", _conf_modify)
registry.register("delete", cmd_delete, "Delete a task.", _add_project_task, aliases=["rm"])
