# routers/task_comments.py — Comments attached to tasks
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import CommentOwner, Task
from notify import MentionMatch
from routers.comments import (
    CommentRequest, comment_out, get_author, require_content,
    add_comment, list_owner_comments, get_owner_comment,
)

router = APIRouter(prefix="/api/tasks/{task_id}/comments", tags=["Task Comments"])


async def _get_task(db: AsyncSession, task_id: int) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found.")
    return task


@router.get("")
async def list_task_comments(task_id: int, db: AsyncSession = Depends(get_db_session)):
    await _get_task(db, task_id)
    comments = await list_owner_comments(db, CommentOwner.TASK, task_id)
    return [comment_out(c, with_user=True) for c in comments]


@router.post("", status_code=201)
async def create_task_comment(
    task_id: int,
    data: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
):
    require_content(data)
    task = await _get_task(db, task_id)
    author = await get_author(db, data.user_id)

    comment = await add_comment(
        db, CommentOwner.TASK, task.id, data, author, MentionMatch.NAME,
        subject=f"task {task.title}",
    )
    return comment_out(comment, author)


@router.delete("/{comment_id}", status_code=204)
async def delete_task_comment(
    task_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    comment = await get_owner_comment(db, CommentOwner.TASK, task_id, comment_id)
    await db.delete(comment)
    await db.commit()
