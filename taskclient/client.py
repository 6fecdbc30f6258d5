"""Remote task store: per-operation calls against the task API."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError as SchemaError

from .errors import NotFoundError, PersistenceError, ValidationError
from .schemas import Task, TaskCreate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class RemoteTaskStore:
    """Client for the ``/tasks`` API.

    Unknown ids come back as ``NotFoundError``, rejected input as
    ``ValidationError`` and every other HTTP or transport failure as
    ``PersistenceError``.
    """

    def __init__(self, base_url: str = None, http_client: Optional[httpx.Client] = None):
        if http_client is None:
            if not base_url:
                raise ValueError('base_url or http_client is required')
            http_client = httpx.Client(base_url=base_url, timeout=DEFAULT_TIMEOUT)
        self.base_url = base_url or str(http_client.base_url)
        self.session = http_client

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, path: str, *, task_id: Optional[str] = None, json: Any = None) -> Any:
        try:
            response = self.session.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise PersistenceError(f'{method} {path} failed: {exc}') from exc
        if response.status_code == 404:
            raise NotFoundError(task_id)
        if response.status_code in (400, 422):
            raise ValidationError(self._detail(response))
        if response.is_error:
            raise PersistenceError(f'{method} {path} returned {response.status_code}')
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(f'{method} {path} returned invalid JSON') from exc

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            detail = response.json().get('detail')
        except (ValueError, AttributeError):
            detail = None
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list) and detail:
            # FastAPI request validation: [{'loc': ..., 'msg': ...}, ...]
            return str(detail[0].get('msg', 'invalid request'))
        return 'invalid request'

    @staticmethod
    def _to_task(data: Dict[str, Any]) -> Task:
        try:
            return Task.model_validate(data)
        except SchemaError as exc:
            raise PersistenceError('server returned a malformed task') from exc

    def load(self) -> List[Task]:
        """Fetch every task, sorted by ``order``."""
        data = self._request('GET', '/tasks')
        tasks = [self._to_task(item) for item in data]
        tasks.sort(key=lambda t: (t.order is None, t.order or 0))
        return tasks

    def save(self, tasks: Sequence[Task]) -> None:
        """Persist the ``order`` of every task (the reorder call)."""
        payload = {'tasks': [t.to_wire() for t in tasks]}
        self._request('POST', '/tasks/reorder', json=payload)
        logger.debug('persisted order for %d tasks', len(tasks))

    def create(self, payload: TaskCreate) -> Task:
        return self._to_task(self._request('POST', '/tasks', json=payload.to_wire()))

    def toggle(self, task_id: str) -> Task:
        return self._to_task(self._request('PATCH', f'/tasks/{task_id}', task_id=task_id))

    def rename(self, task_id: str, title: str) -> Task:
        return self._to_task(self._request('PUT', f'/tasks/{task_id}', task_id=task_id, json={'title': title}))

    def delete(self, task_id: str) -> None:
        self._request('DELETE', f'/tasks/{task_id}', task_id=task_id)
