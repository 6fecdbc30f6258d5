import sys
import os
import pathlib
import tempfile
import logging as _logging

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import delete as sqlalchemy_delete

# Point the server at a throwaway SQLite file before taskapp.db is imported;
# the engine is created from DATABASE_URL at import time.
_TMP_DIR = tempfile.mkdtemp(prefix='taskapp-tests-')
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'tasks_test.db')}"

# Reduce SQLAlchemy logger verbosity during tests
for _name in ('sqlalchemy', 'sqlalchemy.engine', 'sqlalchemy.pool', 'sqlmodel'):
    _logging.getLogger(_name).setLevel(_logging.ERROR)

# ensure project root is on PYTHONPATH for test runs
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from taskapp.main import app
from taskapp.db import init_db, async_session
from taskapp.models import TaskRow
from taskclient.errors import PersistenceError
from taskclient.schemas import Task


class FakeStore:
    """In-memory TaskStore used for engine unit tests.

    ``fail_save`` / ``fail_load`` make the next calls raise
    ``PersistenceError`` so failure handling can be exercised.
    """

    def __init__(self, tasks=None):
        self.saved = list(tasks or [])
        self.save_calls = 0
        self.fail_save = False
        self.fail_load = False

    def load(self):
        if self.fail_load:
            raise PersistenceError('load failed')
        return list(self.saved)

    def save(self, tasks):
        if self.fail_save:
            raise PersistenceError('save failed')
        self.save_calls += 1
        self.saved = list(tasks)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def make_task():
    """Factory for Task values with sensible defaults."""
    counter = {'n': 0}

    def _make(title=None, **kwargs):
        counter['n'] += 1
        n = counter['n']
        kwargs.setdefault('id', f't{n}')
        kwargs.setdefault('created_at', float(n))
        return Task(title=title or f'task {n}', **kwargs)

    return _make


@pytest_asyncio.fixture
async def ensure_db():
    await init_db()


@pytest_asyncio.fixture
async def reset_db(ensure_db):
    async with async_session() as sess:
        await sess.exec(sqlalchemy_delete(TaskRow))
        await sess.commit()


@pytest_asyncio.fixture
async def client(reset_db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
