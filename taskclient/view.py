"""Derived view: search, filter and sort a task collection for display.

Nothing here mutates its input. ``derive_view`` returns a new tuple and the
stats are recomputed on every call rather than stored.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence, Tuple, Union

from .schemas import (
    DueStatus,
    MissingDuePosition,
    PRIORITY_RANK,
    PriorityFilter,
    SortKey,
    StatusFilter,
    Task,
    TaskStats,
    ViewOptions,
)


def _matches_search(task: Task, needle: str) -> bool:
    return needle in task.title.lower()


def _sort_tasks(tasks: Iterable[Task], sort_key: SortKey, missing_due: MissingDuePosition) -> list[Task]:
    # sorted() is stable, so ties keep collection order
    if sort_key == SortKey.NEWEST:
        return sorted(tasks, key=lambda t: t.created_at or 0, reverse=True)
    if sort_key == SortKey.OLDEST:
        return sorted(tasks, key=lambda t: t.created_at or 0)
    if sort_key == SortKey.PRIORITY:
        return sorted(tasks, key=lambda t: PRIORITY_RANK[t.priority])
    if sort_key == SortKey.DUE_DATE:
        missing_rank = 1 if missing_due == MissingDuePosition.LAST else -1
        return sorted(
            tasks,
            key=lambda t: (0, t.due_date) if t.due_date is not None else (missing_rank, date.min),
        )
    # manual: by order, unordered tasks after ordered ones
    return sorted(tasks, key=lambda t: (t.order is None, t.order or 0))


def derive_view(
    existing: Sequence[Task],
    options: Optional[ViewOptions] = None,
    *,
    missing_due: MissingDuePosition = MissingDuePosition.LAST,
) -> Tuple[Task, ...]:
    """Project ``existing`` through search, priority, status and sort."""
    options = options or ViewOptions()
    result: Iterable[Task] = existing

    term = options.search_term or ''
    # whitespace-only skips the search; otherwise the term is matched as typed
    if term.strip():
        needle = term.lower()
        result = [t for t in result if _matches_search(t, needle)]

    if options.priority_filter != PriorityFilter.ALL:
        wanted = options.priority_filter.value
        result = [t for t in result if t.priority.value == wanted]

    if options.status_filter == StatusFilter.ACTIVE:
        result = [t for t in result if not t.completed]
    elif options.status_filter == StatusFilter.COMPLETED:
        result = [t for t in result if t.completed]

    return tuple(_sort_tasks(result, options.sort_key, missing_due))


def task_stats(existing: Sequence[Task]) -> TaskStats:
    total = len(existing)
    completed = sum(1 for t in existing if t.completed)
    percent = int(completed * 100 / total + 0.5) if total else 0
    return TaskStats(total=total, active=total - completed, completed=completed, percent_complete=percent)


def due_status(task: Union[Task, date, None], today: Optional[date] = None) -> DueStatus:
    """Classify a due date against ``today`` (date-only comparison)."""
    due = task.due_date if isinstance(task, Task) else task
    if due is None:
        return DueStatus.NONE
    today = today or date.today()
    if due < today:
        return DueStatus.OVERDUE
    if due == today:
        return DueStatus.TODAY
    return DueStatus.UPCOMING


def is_overdue(task: Union[Task, date, None], today: Optional[date] = None) -> bool:
    return due_status(task, today) == DueStatus.OVERDUE
