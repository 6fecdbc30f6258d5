import time
import uuid
from datetime import date, datetime

from dateutil import parser as date_parser


def now_ts() -> float:
    """Return the current time as epoch seconds."""
    return time.time()


def new_task_id() -> str:
    return str(uuid.uuid4())


def parse_due_date(value) -> date | None:
    """Parse a due date sent by a client.

    ``None`` and blank strings mean "no due date". Full ISO datetimes are
    accepted and truncated to their date part.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date_parser.isoparse(s).date()
    except ValueError:
        raise ValueError(f'invalid due date: {s!r}')


def normalize_title(title: str | None) -> str:
    """Strip surrounding whitespace from a task title."""
    if title is None:
        return ''
    return title.strip()
