# routers/file_comments.py — Comments attached to uploaded files
# Two creation entry points resolve @mentions differently:
#   POST /{file_id}/comments          -> full name, case-insensitive
#   POST /comments/by-name/{name}     -> exact email
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import CommentOwner, ProjectFile, utcnow
from notify import MentionMatch, encode_mentions, notify_mentions
from routers.comments import (
    CommentRequest, comment_out, get_author, require_content,
    add_comment, list_owner_comments, get_owner_comment,
)

logger = logging.getLogger("custor-portal.comments")

router = APIRouter(prefix="/api/files", tags=["File Comments"])


async def _get_file(db: AsyncSession, file_id: int) -> ProjectFile:
    f = await db.get(ProjectFile, file_id)
    if f is None:
        raise HTTPException(status_code=404, detail=f"File with ID {file_id} not found.")
    return f


async def _get_file_by_name(db: AsyncSession, file_name: str) -> ProjectFile:
    # Several versions may share a name; the newest current one wins
    result = await db.execute(
        select(ProjectFile)
        .where(ProjectFile.name == file_name)
        .order_by(ProjectFile.is_current.desc(), ProjectFile.version.desc(), ProjectFile.id.desc())
        .limit(1)
    )
    f = result.scalar_one_or_none()
    if f is None:
        raise HTTPException(status_code=404, detail=f"File with name '{file_name}' not found.")
    return f


# ============================================================
# CREATE
# ============================================================

@router.post("/{file_id}/comments", status_code=201)
async def create_file_comment(
    file_id: int,
    data: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
):
    require_content(data)
    f = await _get_file(db, file_id)
    author = await get_author(db, data.user_id)

    comment = await add_comment(
        db, CommentOwner.FILE, f.id, data, author, MentionMatch.NAME,
        subject=f"file {f.name}",
    )
    logger.info(f"Comment {comment.id} added to file {f.id} by user {author.id}")
    return comment_out(comment, author)


@router.post("/comments/by-name/{file_name}", status_code=201)
async def create_file_comment_by_name(
    file_name: str,
    data: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
):
    require_content(data)
    f = await _get_file_by_name(db, file_name)
    author = await get_author(db, data.user_id)

    comment = await add_comment(
        db, CommentOwner.FILE, f.id, data, author, MentionMatch.EMAIL,
        subject=f"file {f.name}",
    )
    logger.info(f"Comment {comment.id} added to file {f.id} by user {author.id}")
    return comment_out(comment, author)


# ============================================================
# READ
# ============================================================

@router.get("/{file_id}/comments")
async def list_file_comments(file_id: int, db: AsyncSession = Depends(get_db_session)):
    await _get_file(db, file_id)
    comments = await list_owner_comments(db, CommentOwner.FILE, file_id)
    return [comment_out(c, with_user=True) for c in comments]


@router.get("/comments/by-name/{file_name}")
async def list_file_comments_by_name(file_name: str, db: AsyncSession = Depends(get_db_session)):
    f = await _get_file_by_name(db, file_name)
    comments = await list_owner_comments(db, CommentOwner.FILE, f.id)
    return [comment_out(c, with_user=True) for c in comments]


# ============================================================
# UPDATE / DELETE
# ============================================================

@router.put("/{file_id}/comments/{comment_id}")
async def update_file_comment(
    file_id: int,
    comment_id: int,
    data: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
):
    comment = await get_owner_comment(db, CommentOwner.FILE, file_id, comment_id)
    require_content(data, "Comment text cannot be empty.")

    comment.text = data.content
    comment.target_user_id = data.target_user_id
    comment.mentions = encode_mentions(data.mentions)
    comment.timestamp = utcnow()

    author = comment.user
    who = f"{author.first_name} {author.last_name}" if author else f"User {comment.user_id}"
    await notify_mentions(
        db, data.mentions, MentionMatch.NAME,
        title="Mentioned in Comment Update",
        message=f"A comment on file was updated with a mention of you by {who}",
        related_id=comment.id,
    )
    await db.commit()
    return comment_out(comment)


@router.delete("/{file_id}/comments/{comment_id}", status_code=204)
async def delete_file_comment(
    file_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    comment = await get_owner_comment(db, CommentOwner.FILE, file_id, comment_id)
    await db.delete(comment)
    await db.commit()
