# routers/tasks.py — Task CRUD
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Task, TaskAssignee, Project, TaskStatus, TaskPriority, CommentOwner, utcnow
from routers.comments import purge_comments

logger = logging.getLogger("custor-portal.tasks")

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


# --- Schemas ---

class TaskCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.LOW
    deadline: Optional[datetime] = None
    project_id: Optional[int] = Field(default=None, alias="projectId")


class TaskUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    deadline: Optional[datetime] = None


def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _task_out(t: Task) -> dict:
    return {
        "taskKey": t.id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "deadline": _ts(t.deadline),
        "projectKey": t.project_id,
        "projectName": t.project.name if t.project else None,
        "creatorId": t.creator_id,
        "createdAt": _ts(t.created_at),
        "updatedAt": _ts(t.updated_at),
        "assignees": [
            {"userKey": a.user_id, "email": a.user.email if a.user else None}
            for a in t.assignees
        ],
    }


def _new_task_out(task: Task, project: Optional[Project]) -> dict:
    # Fresh rows have no loaded relationships to walk
    return {
        "taskKey": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "deadline": _ts(task.deadline),
        "projectKey": task.project_id,
        "projectName": project.name if project else None,
        "creatorId": task.creator_id,
        "createdAt": _ts(task.created_at),
        "updatedAt": None,
        "assignees": [],
    }


async def _load_task(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(
        select(Task).options(selectinload(Task.assignees)).where(Task.id == task_id)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found.")
    return task


# --- Endpoints ---

@router.get("")
async def list_tasks(
    project_id: Optional[int] = Query(None, alias="projectId"),
    status: Optional[TaskStatus] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    stmt = select(Task).options(selectinload(Task.assignees))
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if status is not None:
        stmt = stmt.where(Task.status == status.value)
    result = await db.execute(stmt.order_by(Task.id))
    return [_task_out(t) for t in result.scalars().all()]


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return _task_out(await _load_task(db, task_id))


@router.post("", status_code=201)
async def create_task(
    data: TaskCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = None
    if data.project_id is not None:
        project = await db.get(Project, data.project_id)
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project with ID {data.project_id} not found.")

    task = Task(
        title=data.title.strip(),
        description=data.description,
        status=data.status.value,
        priority=data.priority.value,
        deadline=data.deadline,
        project_id=data.project_id,
        creator_id=user.id,
        created_at=utcnow(),
    )
    db.add(task)
    await db.commit()
    logger.info(f"Task {task.id} created by user {user.id}")

    return _new_task_out(task, project)


@router.put("/{task_id}")
async def update_task(
    task_id: int,
    data: TaskUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    task = await _load_task(db, task_id)

    if data.title is not None:
        task.title = data.title.strip()
    if data.description is not None:
        task.description = data.description
    if data.status is not None:
        task.status = data.status.value
    if data.priority is not None:
        task.priority = data.priority.value
    if data.deadline is not None:
        task.deadline = data.deadline
    task.updated_at = utcnow()
    await db.commit()
    return _task_out(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found.")

    await purge_comments(db, CommentOwner.TASK, [task.id])
    await db.execute(delete(TaskAssignee).where(TaskAssignee.task_id == task.id))
    await db.delete(task)
    await db.commit()
    logger.info(f"Task {task_id} deleted by user {user.id}")
