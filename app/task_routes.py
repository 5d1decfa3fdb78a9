"""
Task routes: read back the tasks extracted from messages and tick them off.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .database import get_db, Task
from .dependencies import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskUpdate(BaseModel):
    completed: bool


def _task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "message_id": task.message_id,
        "title": task.title,
        "type": task.type,
        "details": task.details,
        "people": task.people or [],
        "completed": bool(task.completed),
        "created_at": task.created_at.isoformat() if task.created_at else None,
    }


@router.get("")
async def api_get_tasks(
    message_id: Optional[int] = None,
    completed: Optional[bool] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's tasks, newest first."""
    query = db.query(Task).filter(Task.user_id == user_id)
    if message_id is not None:
        query = query.filter(Task.message_id == message_id)
    if completed is not None:
        query = query.filter(Task.completed == completed)

    tasks = query.order_by(Task.created_at.desc(), Task.id.desc()).all()
    return {"tasks": [_task_to_dict(t) for t in tasks]}


@router.patch("/{task_id}")
async def api_update_task(
    task_id: int,
    update: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    task.completed = update.completed
    db.commit()
    db.refresh(task)
    logger.info(f"✅ Task {task_id} marked {'done' if task.completed else 'open'}")
    return _task_to_dict(task)
