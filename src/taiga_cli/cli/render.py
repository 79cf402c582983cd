# src/taiga_cli/cli/render.py

from __future__ import annotations

from datetime import date

from ..core.models import TaskListSnapshot

_HEADER = ("ID", "STATUS", "DUE", "NAME", "ASSIGN", "T", "C", "B")


def format_due(due: date, today: date | None = None) -> str:
    """Compact relative due date: "3d", "2w", "-1m" (negative = overdue)."""
    today = today or date.today()
    days = (due - today).days
    sign = "-" if days < 0 else ""
    days = abs(days)
    if days >= 365:
        return f"{sign}{days // 365}y"
    if days >= 30:
        return f"{sign}{days // 30}m"
    if days >= 7:
        return f"{sign}{days // 7}w"
    return f"{sign}{days}d"


def _flag(value: bool) -> str:
    return "Y" if value else ""


def render_tasks(snapshot: TaskListSnapshot, today: date | None = None) -> str:
    """Plain aligned table; positions are what the other commands take as ID."""
    rows: list[tuple[str, ...]] = [_HEADER]
    for i, task in enumerate(snapshot.tasks, start=1):
        names = []
        for user_id in task.assigned:
            member = snapshot.member_by_id(user_id)
            names.append(member.username if member is not None else f"#{user_id}")
        rows.append(
            (
                str(i),
                task.status_slug,
                format_due(task.due, today) if task.due is not None else "",
                task.name,
                ", ".join(names),
                _flag(task.team),
                _flag(task.client),
                _flag(task.blocked),
            )
        )

    widths = [max(len(row[col]) for row in rows) for col in range(len(_HEADER))]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in rows]
    return "\n".join(lines)
