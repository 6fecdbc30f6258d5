"""Store interfaces the engine depends on.

The engine is handed a store rather than reaching for storage itself, so the
snapshot and remote backends (and test fakes) are interchangeable.
"""
from __future__ import annotations

from typing import List, Protocol, Sequence, runtime_checkable

from .schemas import Task, TaskCreate


@runtime_checkable
class TaskStore(Protocol):
    """Whole-collection persistence."""

    def load(self) -> List[Task]: ...

    def save(self, tasks: Sequence[Task]) -> None: ...


@runtime_checkable
class RemoteTaskOps(TaskStore, Protocol):
    """Per-operation persistence against the task API.

    ``save`` persists the ``order`` of every given task (the reorder call).
    """

    def create(self, payload: TaskCreate) -> Task: ...

    def toggle(self, task_id: str) -> Task: ...

    def rename(self, task_id: str, title: str) -> Task: ...

    def delete(self, task_id: str) -> None: ...
