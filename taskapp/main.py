from fastapi import FastAPI, HTTPException
from sqlmodel import select
from sqlalchemy import func
from contextlib import asynccontextmanager
import logging
import sys

from . import config
from .db import async_session, init_db
from .models import TaskRow, TaskOut, TaskCreateRequest, TaskRenameRequest, ReorderRequest
from .utils import normalize_title, now_ts

logger = logging.getLogger(__name__)
# Ensure INFO-level messages from this module appear on the server console when
# no handlers are configured (safe fallback for development/testing).
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter('%(asctime)s %(levelname)s:%(name)s: %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    from . import db as _dbmod
    logger.info('starting server using DATABASE_URL=%s', _dbmod.DATABASE_URL)
    yield


app = FastAPI(lifespan=lifespan)


async def _get_task_or_404(sess, task_id: str) -> TaskRow:
    row = await sess.get(TaskRow, task_id)
    if not row:
        raise HTTPException(status_code=404, detail="task not found")
    return row


@app.get('/health')
async def health():
    return {'ok': True}


@app.get("/tasks", response_model=list[TaskOut])
async def list_tasks():
    async with async_session() as sess:
        res = await sess.exec(select(TaskRow).order_by(TaskRow.order.asc(), TaskRow.created_at.asc()))
        return [TaskOut.from_row(r) for r in res.all()]


@app.post("/tasks", response_model=TaskOut)
async def create_task(payload: TaskCreateRequest):
    """
    Create a task at the end of the manual ordering. Expects JSON payload with:
    - title: str (required)
    - dueDate: str (optional, YYYY-MM-DD)
    - priority: high|medium|low (optional, defaults to medium)
    """
    title = normalize_title(payload.title)
    if not title:
        raise HTTPException(status_code=400, detail="title required")
    priority = payload.priority.value if payload.priority else config.DEFAULT_PRIORITY
    async with async_session() as sess:
        q = await sess.exec(select(func.max(TaskRow.order)))
        last_order = q.first()
        row = TaskRow(
            title=title,
            due_date=payload.due_date,
            priority=priority,
            created_at=now_ts(),
            order=(last_order + 1) if last_order is not None else 1,
        )
        sess.add(row)
        await sess.commit()
        await sess.refresh(row)
        logger.info('POST /tasks created id=%s order=%s', row.id, row.order)
        return TaskOut.from_row(row)


@app.patch("/tasks/{task_id}", response_model=TaskOut)
async def toggle_task(task_id: str):
    """Flip the completed flag. The request body, if any, is ignored."""
    async with async_session() as sess:
        row = await _get_task_or_404(sess, task_id)
        row.completed = not row.completed
        sess.add(row)
        await sess.commit()
        await sess.refresh(row)
        logger.debug('PATCH /tasks/%s completed=%s', task_id, row.completed)
        return TaskOut.from_row(row)


@app.put("/tasks/{task_id}", response_model=TaskOut)
async def rename_task(task_id: str, payload: TaskRenameRequest):
    title = normalize_title(payload.title)
    if not title:
        raise HTTPException(status_code=400, detail="title required")
    async with async_session() as sess:
        row = await _get_task_or_404(sess, task_id)
        row.title = title
        sess.add(row)
        await sess.commit()
        await sess.refresh(row)
        return TaskOut.from_row(row)


@app.delete("/tasks/{task_id}")
async def delete_task(task_id: str):
    async with async_session() as sess:
        row = await _get_task_or_404(sess, task_id)
        await sess.delete(row)
        await sess.commit()
    logger.info('DELETE /tasks/%s', task_id)
    return {"success": True}


@app.post("/tasks/reorder")
async def reorder_tasks(payload: ReorderRequest):
    """Adopt the ``order`` of every listed task as given. Unknown ids are skipped."""
    wanted = {item.id: item.order for item in payload.tasks}
    if not wanted:
        return {"success": True, "updated": 0}
    async with async_session() as sess:
        res = await sess.exec(select(TaskRow).where(TaskRow.id.in_(list(wanted))))
        rows = res.all()
        for row in rows:
            row.order = wanted[row.id]
            sess.add(row)
        await sess.commit()
    logger.info('POST /tasks/reorder updated=%d of %d', len(rows), len(wanted))
    return {"success": True, "updated": len(rows)}
