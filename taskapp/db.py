from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import os
import logging

from . import config

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tasks.db")


def _sqlite_path_from_url(url: str | None) -> str | None:
    if not url:
        return None
    if url.startswith('sqlite+aiosqlite:///'):
        path = url.replace('sqlite+aiosqlite:///', '', 1)
    elif url.startswith('sqlite:///'):
        path = url.replace('sqlite:///', '', 1)
    else:
        return None
    if not path or path.startswith(':memory:'):
        return None
    # normalize leading ./
    if path.startswith('./'):
        path = path[2:]
    return os.path.abspath(path)


def _ensure_sqlite_dir(url: str | None) -> None:
    db_path = _sqlite_path_from_url(url)
    if db_path:
        os.makedirs(os.path.dirname(db_path), exist_ok=True)


_ensure_sqlite_dir(DATABASE_URL)

# NullPool: connections are not shared across event loops (tests drive the
# app from several loops and from TestClient's portal thread).
engine = create_async_engine(DATABASE_URL, echo=config.DEV_MODE, future=True, poolclass=NullPool)

async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    # import models so their tables are registered on the metadata
    from . import models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.debug('database tables ensured for %s', DATABASE_URL)
