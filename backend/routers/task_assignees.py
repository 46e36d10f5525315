# routers/task_assignees.py — Assign and unassign users on a task
# Assignment rows are hard-deleted; unassigning notifies the user in the same commit.
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import Task, TaskAssignee, User, NotificationType
from notify import build_notification

logger = logging.getLogger("custor-portal.tasks")

router = APIRouter(prefix="/api/tasks/{task_id}/assignees", tags=["Task Assignees"])


class AssigneeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_key: int = Field(..., alias="userKey")


def _already_assigned(task_id: int, user_id: int) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"User with ID {user_id} is already assigned to Task with ID {task_id}.",
    )


@router.post("", status_code=201)
async def assign_user(
    task_id: int,
    data: AssigneeRequest,
    db: AsyncSession = Depends(get_db_session),
):
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found.")

    if await db.get(User, data.user_key) is None:
        raise HTTPException(status_code=404, detail=f"User with ID {data.user_key} not found.")

    existing = await db.execute(
        select(TaskAssignee).where(
            TaskAssignee.task_id == task_id, TaskAssignee.user_id == data.user_key,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise _already_assigned(task_id, data.user_key)

    db.add(TaskAssignee(task_id=task_id, user_id=data.user_key))

    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent assign of the same pair
        await db.rollback()
        raise _already_assigned(task_id, data.user_key)

    logger.info(f"User {data.user_key} assigned to task {task_id}")
    return {"taskKey": task_id, "userKey": data.user_key}


@router.get("")
async def list_assignees(task_id: int, db: AsyncSession = Depends(get_db_session)):
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found.")

    result = await db.execute(
        select(TaskAssignee).where(TaskAssignee.task_id == task_id).order_by(TaskAssignee.user_id)
    )
    return [
        {
            "taskKey": a.task_id,
            "userKey": a.user_id,
            "email": a.user.email if a.user else None,
            "firstName": a.user.first_name if a.user else None,
            "lastName": a.user.last_name if a.user else None,
        }
        for a in result.scalars().all()
    ]


@router.delete("/{user_id}", status_code=204)
async def unassign_user(
    task_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(
        select(TaskAssignee).where(TaskAssignee.task_id == task_id, TaskAssignee.user_id == user_id)
    )
    assignee = result.scalar_one_or_none()
    if assignee is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} is not assigned to Task {task_id}.")

    await db.delete(assignee)

    task = await db.get(Task, task_id)
    if task is not None and task.project is not None:
        db.add(build_notification(
            user_id,
            "Task Unassigned",
            f"You have been unassigned from task '{task.title}' in project '{task.project.name}'",
            NotificationType.TASK_UNASSIGNED.value,
            related_id=task.id, related_type="task",
        ))

    await db.commit()
    logger.info(f"User {user_id} unassigned from task {task_id}")
