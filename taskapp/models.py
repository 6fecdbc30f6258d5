from typing import Optional
from datetime import date
from enum import Enum

from sqlmodel import SQLModel, Field
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .utils import now_ts, new_task_id, parse_due_date


class Priority(str, Enum):
    high = 'high'
    medium = 'medium'
    low = 'low'


class TaskRow(SQLModel, table=True):
    """A single to-do item. ``order`` holds the manual drag-and-drop position."""
    __tablename__ = 'task'

    id: str = Field(default_factory=new_task_id, primary_key=True)
    title: str
    completed: bool = Field(default=False)
    due_date: Optional[date] = None
    priority: str = Field(default=Priority.medium.value, index=True)
    created_at: Optional[float] = Field(default_factory=now_ts)
    # Positions are 1-based; new rows get max(order) + 1.
    order: int = Field(default=1, index=True)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskOut(_CamelModel):
    id: str
    title: str
    completed: bool
    due_date: Optional[date] = None
    priority: Priority
    created_at: Optional[float] = None
    order: int

    @classmethod
    def from_row(cls, row: TaskRow) -> 'TaskOut':
        return cls(
            id=row.id,
            title=row.title,
            completed=row.completed,
            due_date=row.due_date,
            priority=row.priority,
            created_at=row.created_at,
            order=row.order,
        )


class TaskCreateRequest(_CamelModel):
    title: str
    due_date: Optional[date] = None
    priority: Optional[Priority] = None

    @field_validator('due_date', mode='before')
    @classmethod
    def _due(cls, v):
        return parse_due_date(v)

    @field_validator('priority', mode='before')
    @classmethod
    def _blank_priority(cls, v):
        # form posts send "" when nothing was picked
        return v or None


class TaskRenameRequest(_CamelModel):
    title: str


class ReorderItem(_CamelModel):
    # other task fields sent along by clients are ignored
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    id: str
    order: int


class ReorderRequest(_CamelModel):
    tasks: list[ReorderItem]
