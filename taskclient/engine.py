"""Task List Engine.

The module-level functions are the pure transformations: each takes the
current collection and returns a new tuple (or raises ``ValidationError`` /
``NotFoundError``). ``TaskListEngine`` owns the current collection, applies
those transformations, and keeps the store in step with it:

- snapshot mode: apply locally, then save the whole collection;
- remote mode: each action is a round trip through the task API, after
  which the collection is refetched and sorted by ``order``.

The engine is single-threaded by contract; the collection is only ever
replaced, never modified in place.
"""
from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Optional, Sequence, Tuple

from .config import EngineSettings
from .errors import NotFoundError, PersistenceError, ValidationError
from .ports import TaskStore
from .schemas import (
    ActionResult,
    PersistenceMode,
    Priority,
    Task,
    TaskCreate,
    TaskEvent,
    TaskView,
    ValidationMode,
    ViewOptions,
    new_task_id,
    parse_due_date,
)
from .view import derive_view, due_status, task_stats

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 50

Tasks = Tuple[Task, ...]


# ---- pure transformations ----

def validate_title(title: Optional[str], existing: Sequence[Task], mode: ValidationMode = ValidationMode.STRICT) -> str:
    """Return the trimmed title or raise ``ValidationError``.

    Checks run in order and stop at the first failure. Minimal mode only
    requires a non-empty title.
    """
    clean = (title or '').strip()
    if not clean:
        raise ValidationError('title required')
    if mode == ValidationMode.MINIMAL:
        return clean
    if len(clean) < TITLE_MIN_LENGTH:
        raise ValidationError('too short')
    if len(clean) > TITLE_MAX_LENGTH:
        raise ValidationError('too long')
    lowered = clean.lower()
    if any(t.title.lower() == lowered for t in existing):
        raise ValidationError('duplicate')
    return clean


def _coerce_priority(priority) -> Priority:
    try:
        return Priority(priority or Priority.MEDIUM)
    except ValueError:
        raise ValidationError('invalid priority')


def _coerce_due_date(due_date):
    try:
        return parse_due_date(due_date)
    except ValueError:
        raise ValidationError('invalid due date')


def next_order(existing: Sequence[Task]) -> int:
    orders = [t.order for t in existing if t.order is not None]
    return max(orders) + 1 if orders else 1


def sort_by_order(tasks: Sequence[Task]) -> Tasks:
    return tuple(sorted(tasks, key=lambda t: (t.order is None, t.order or 0)))


def renumber(tasks: Sequence[Task]) -> Tasks:
    """Give every task its 1-based collection position as ``order``."""
    return tuple(
        t if t.order == pos else t.model_copy(update={'order': pos})
        for pos, t in enumerate(tasks, start=1)
    )


def _index_of(existing: Sequence[Task], task_id: str) -> int:
    for idx, task in enumerate(existing):
        if task.id == task_id:
            return idx
    raise NotFoundError(task_id)


def add_task(
    existing: Sequence[Task],
    title: Optional[str],
    due_date=None,
    priority=Priority.MEDIUM,
    *,
    mode: ValidationMode = ValidationMode.STRICT,
    now: Optional[float] = None,
    id_factory: Callable[[], str] = new_task_id,
) -> Tasks:
    """Append a new, not yet completed task to ``existing``.

    Snapshots written without ``order`` are renumbered by position first so
    the new task still lands at the end of the manual order.
    """
    clean = validate_title(title, existing, mode)
    if any(t.order is None for t in existing):
        existing = renumber(existing)
    task = Task(
        id=id_factory(),
        title=clean,
        completed=False,
        due_date=_coerce_due_date(due_date),
        priority=_coerce_priority(priority),
        created_at=time.time() if now is None else now,
        order=next_order(existing),
    )
    return (*existing, task)


def toggle_task(existing: Sequence[Task], task_id: str) -> Tasks:
    idx = _index_of(existing, task_id)
    task = existing[idx]
    return (*existing[:idx], task.model_copy(update={'completed': not task.completed}), *existing[idx + 1:])


def edit_task(existing: Sequence[Task], task_id: str, new_title: Optional[str]) -> Tasks:
    """Replace a task's title. A blank title leaves the collection as it was."""
    clean = (new_title or '').strip()
    if not clean:
        return tuple(existing)
    idx = _index_of(existing, task_id)
    return (*existing[:idx], existing[idx].model_copy(update={'title': clean}), *existing[idx + 1:])


def delete_task(existing: Sequence[Task], task_id: str) -> Tasks:
    idx = _index_of(existing, task_id)
    return (*existing[:idx], *existing[idx + 1:])


def clear_completed(existing: Sequence[Task]) -> Tasks:
    return tuple(t for t in existing if not t.completed)


def reorder_tasks(existing: Sequence[Task], moved_id: str, target_id: str) -> Tasks:
    """Move ``moved_id`` into the slot ``target_id`` occupies.

    Tasks in between shift by one. Every task is renumbered with its new
    1-based position. Moving onto itself or an unknown id returns the
    collection unchanged.
    """
    if moved_id == target_id:
        return tuple(existing)
    try:
        src = _index_of(existing, moved_id)
        dst = _index_of(existing, target_id)
    except NotFoundError:
        return tuple(existing)
    items = list(existing)
    moved = items.pop(src)
    items.insert(dst, moved)
    return renumber(items)


# ---- stateful owner ----

class TaskListEngine:
    """Owns the task collection and keeps its store in step with it."""

    def __init__(
        self,
        store: TaskStore,
        settings: Optional[EngineSettings] = None,
        *,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = new_task_id,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: Tasks = ()
        self._previous: Optional[Tasks] = None

    @property
    def tasks(self) -> Tasks:
        return self._tasks

    @property
    def remote(self) -> bool:
        return self.settings.persistence_mode == PersistenceMode.REMOTE

    # ---- loading ----

    def load(self) -> Tasks:
        """Load the collection; a failing store yields an empty collection."""
        try:
            loaded = self.store.load()
        except PersistenceError:
            logger.exception('task load failed; starting with an empty list')
            loaded = []
        self._tasks = sort_by_order(loaded) if self.remote else tuple(loaded)
        self._previous = None
        logger.debug('loaded %d tasks', len(self._tasks))
        return self._tasks

    def _refresh(self) -> Tasks:
        self._tasks = sort_by_order(self.store.load())
        return self._tasks

    # ---- result helpers ----

    def _rejected(self, message: str) -> ActionResult:
        logger.info('task action rejected: %s', message)
        return ActionResult(tasks=self._tasks, ok=False, message=message)

    def _unchanged(self, task_id: Optional[str] = None, message: Optional[str] = None) -> ActionResult:
        return ActionResult(tasks=self._tasks, task_id=task_id, message=message)

    def _commit(self, new_tasks: Tasks, event: TaskEvent, task_id: Optional[str] = None) -> ActionResult:
        previous = self._tasks
        self._tasks = new_tasks
        try:
            self.store.save(new_tasks)
        except PersistenceError:
            logger.exception('saving tasks after %s failed', event.value)
            if self.settings.rollback_on_save_failure:
                self._tasks = previous
            else:
                # undo reverts the unsaved change
                self._previous = None if event == TaskEvent.RESTORED else previous
            raise
        self._previous = previous
        logger.debug('%s task=%s count=%d', event.value, task_id, len(new_tasks))
        return ActionResult(tasks=new_tasks, event=event, task_id=task_id)

    def _round_trip(self, call: Callable[[], object], event: TaskEvent, task_id: Optional[str] = None) -> ActionResult:
        try:
            created = call()
        except NotFoundError as exc:
            return self._unchanged(exc.task_id, 'not found')
        except ValidationError as exc:
            return self._rejected(str(exc))
        if task_id is None and isinstance(created, Task):
            task_id = created.id
        self._refresh()
        logger.debug('%s task=%s count=%d (remote)', event.value, task_id, len(self._tasks))
        return ActionResult(tasks=self._tasks, event=event, task_id=task_id)

    # ---- actions ----

    def add(self, title: Optional[str], due_date=None, priority=Priority.MEDIUM) -> ActionResult:
        try:
            if self.remote:
                payload = TaskCreate(
                    title=validate_title(title, self._tasks, self.settings.validation_mode),
                    due_date=_coerce_due_date(due_date),
                    priority=_coerce_priority(priority),
                )
            else:
                new_tasks = add_task(
                    self._tasks,
                    title,
                    due_date,
                    priority,
                    mode=self.settings.validation_mode,
                    now=self._clock(),
                    id_factory=self._id_factory,
                )
        except ValidationError as exc:
            return self._rejected(str(exc))
        if self.remote:
            return self._round_trip(lambda: self.store.create(payload), TaskEvent.CREATED)
        return self._commit(new_tasks, TaskEvent.CREATED, new_tasks[-1].id)

    def toggle(self, task_id: str) -> ActionResult:
        if self.remote:
            return self._round_trip(lambda: self.store.toggle(task_id), TaskEvent.UPDATED, task_id)
        try:
            new_tasks = toggle_task(self._tasks, task_id)
        except NotFoundError:
            return self._unchanged(task_id, 'not found')
        return self._commit(new_tasks, TaskEvent.UPDATED, task_id)

    def edit(self, task_id: str, new_title: Optional[str]) -> ActionResult:
        clean = (new_title or '').strip()
        if not clean:
            # blank edits are discarded, the old title stays
            return self._unchanged(task_id)
        if self.remote:
            return self._round_trip(lambda: self.store.rename(task_id, clean), TaskEvent.UPDATED, task_id)
        try:
            new_tasks = edit_task(self._tasks, task_id, clean)
        except NotFoundError:
            return self._unchanged(task_id, 'not found')
        return self._commit(new_tasks, TaskEvent.UPDATED, task_id)

    def delete(self, task_id: str) -> ActionResult:
        if self.remote:
            return self._round_trip(lambda: self.store.delete(task_id), TaskEvent.DELETED, task_id)
        try:
            new_tasks = delete_task(self._tasks, task_id)
        except NotFoundError:
            return self._unchanged(task_id, 'not found')
        return self._commit(new_tasks, TaskEvent.DELETED, task_id)

    def clear_completed(self) -> ActionResult:
        done = [t.id for t in self._tasks if t.completed]
        if not done:
            return self._unchanged()
        if self.remote:
            def _delete_all():
                try:
                    for task_id in done:
                        try:
                            self.store.delete(task_id)
                        except NotFoundError:
                            # already gone on the server
                            pass
                except PersistenceError:
                    logger.exception('clearing completed tasks failed part way')
                    try:
                        self._refresh()
                    except PersistenceError:
                        logger.warning('could not refresh tasks after failed clear')
                    raise
            return self._round_trip(_delete_all, TaskEvent.CLEARED)
        return self._commit(clear_completed(self._tasks), TaskEvent.CLEARED)

    def reorder(self, moved_id: str, target_id: str) -> ActionResult:
        new_tasks = reorder_tasks(self._tasks, moved_id, target_id)
        if new_tasks == self._tasks:
            return self._unchanged(moved_id)
        if not self.remote:
            return self._commit(new_tasks, TaskEvent.REORDERED, moved_id)
        # optimistic: show the new order before the server confirms it
        previous = self._tasks
        self._tasks = new_tasks
        try:
            self.store.save(new_tasks)
        except PersistenceError:
            logger.exception('persisting reorder of %s failed', moved_id)
            if self.settings.rollback_on_save_failure:
                self._tasks = previous
            raise
        self._refresh()
        return ActionResult(tasks=self._tasks, event=TaskEvent.REORDERED, task_id=moved_id)

    def undo(self) -> ActionResult:
        """Restore the collection from before the most recent change."""
        if self.remote:
            return self._rejected('undo not supported with remote persistence')
        if self._previous is None:
            return self._unchanged(message='nothing to undo')
        result = self._commit(self._previous, TaskEvent.RESTORED)
        self._previous = None
        return result

    # ---- reads ----

    def view(self, options: Optional[ViewOptions] = None, today: Optional[date] = None) -> TaskView:
        """Derived view plus stats; ``due`` maps each shown task id to its due status."""
        tasks = derive_view(self._tasks, options, missing_due=self.settings.missing_due_date)
        today = today or date.today()
        return TaskView(
            tasks=tasks,
            stats=task_stats(self._tasks),
            due={t.id: due_status(t, today) for t in tasks},
        )


def build_store(settings: EngineSettings, http_client=None) -> TaskStore:
    """Return the store matching ``settings.persistence_mode``."""
    if settings.persistence_mode == PersistenceMode.REMOTE:
        from .client import RemoteTaskStore
        return RemoteTaskStore(base_url=settings.server_url, http_client=http_client)
    from .local_store import SnapshotStore
    return SnapshotStore(settings.snapshot_path)


def open_engine(settings: Optional[EngineSettings] = None, http_client=None) -> TaskListEngine:
    """Build the configured store, wrap it in an engine and load the tasks."""
    settings = settings or EngineSettings()
    engine = TaskListEngine(build_store(settings, http_client), settings)
    engine.load()
    return engine
