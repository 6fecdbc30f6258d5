"""Task types shared by the engine, the view pipeline and the stores.

Tasks are frozen pydantic models: every mutation produces a new ``Task``
via ``model_copy`` and a new tuple for the collection. Wire names are
camelCase (``dueDate``, ``createdAt``) so snapshots and API payloads keep
the shape the browser clients wrote; snake_case is accepted on input too.
"""
from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Dict, Optional, Tuple

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


# lower rank sorts first
PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class PriorityFilter(str, Enum):
    ALL = 'all'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


class StatusFilter(str, Enum):
    ALL = 'all'
    ACTIVE = 'active'
    COMPLETED = 'completed'


class SortKey(str, Enum):
    MANUAL = 'manual'
    NEWEST = 'newest'
    OLDEST = 'oldest'
    PRIORITY = 'priority'
    DUE_DATE = 'dueDate'


class DueStatus(str, Enum):
    NONE = 'none'
    OVERDUE = 'overdue'
    TODAY = 'today'
    UPCOMING = 'upcoming'


class ValidationMode(str, Enum):
    STRICT = 'strict'
    MINIMAL = 'minimal'


class PersistenceMode(str, Enum):
    SNAPSHOT = 'snapshot'
    REMOTE = 'remote'


class MissingDuePosition(str, Enum):
    LAST = 'last'
    FIRST = 'first'


class TaskEvent(str, Enum):
    """What an engine action did, for the presentation layer to announce."""
    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'
    CLEARED = 'cleared'
    REORDERED = 'reordered'
    RESTORED = 'restored'


def new_task_id() -> str:
    return str(uuid.uuid4())


def parse_due_date(value) -> Optional[date]:
    """Coerce a due date from the shapes clients send.

    Accepts ``None``/``""`` (no due date), a ``date``, an ISO date string or
    an ISO datetime string such as ``2025-03-01T00:00:00.000Z`` (the date
    part is kept).
    """
    if value is None:
        return None
    if isinstance(value, date):
        # datetime is a date subclass; drop the time component
        return value if type(value) is date else value.date()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return date_parser.isoparse(value).date()
        except ValueError:
            raise ValueError(f'invalid due date: {value!r}')
    raise ValueError(f'invalid due date: {value!r}')


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class Task(_WireModel):
    id: str = Field(default_factory=new_task_id)
    title: str
    completed: bool = False
    due_date: Optional[date] = None
    priority: Priority = Priority.MEDIUM
    created_at: Optional[float] = None
    order: Optional[int] = None

    @field_validator('id', mode='before')
    @classmethod
    def _id_as_text(cls, v):
        # early snapshots used the numeric creation timestamp as id
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('due_date', mode='before')
    @classmethod
    def _coerce_due_date(cls, v):
        return parse_due_date(v)

    @field_validator('priority', mode='before')
    @classmethod
    def _default_priority(cls, v):
        # older snapshots stored "" or null when no priority was picked
        return v or Priority.MEDIUM


class TaskCreate(_WireModel):
    """Payload for ``POST /tasks``."""
    title: str
    due_date: Optional[date] = None
    priority: Priority = Priority.MEDIUM

    @field_validator('due_date', mode='before')
    @classmethod
    def _coerce_due_date(cls, v):
        return parse_due_date(v)


class ViewOptions(_WireModel):
    priority_filter: PriorityFilter = PriorityFilter.ALL
    status_filter: StatusFilter = StatusFilter.ALL
    search_term: str = ''
    sort_key: SortKey = SortKey.MANUAL


class TaskStats(_WireModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    percent_complete: int = 0


class TaskView(_WireModel):
    tasks: Tuple[Task, ...] = ()
    stats: TaskStats = Field(default_factory=TaskStats)
    due: Dict[str, DueStatus] = Field(default_factory=dict)


class ActionResult(_WireModel):
    """Outcome of one engine action.

    ``ok`` is False only for rejected input; ``message`` then holds the
    user-facing reason. A benign no-op (unknown id, reorder onto itself) is
    ``ok=True`` with ``event=None``.
    """
    tasks: Tuple[Task, ...] = ()
    ok: bool = True
    event: Optional[TaskEvent] = None
    task_id: Optional[str] = None
    message: Optional[str] = None
