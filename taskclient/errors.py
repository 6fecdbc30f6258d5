"""Exceptions raised by the engine and the task stores."""
from typing import Optional


class TaskError(Exception):
    """Base class for task list errors."""


class ValidationError(TaskError):
    """Rejected task input. ``str(exc)`` is the user-facing reason."""


class NotFoundError(TaskError):
    def __init__(self, task_id: Optional[str], message: str = 'not found'):
        super().__init__(message)
        self.task_id = task_id


class PersistenceError(TaskError):
    """A store failed to load or save; the cause is chained."""
