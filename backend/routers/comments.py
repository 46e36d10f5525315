# routers/comments.py — Comment schema, projection and persistence helpers
from typing import Iterable, List, Optional

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from models import Comment, CommentOwner, User, utcnow
from notify import MentionMatch, encode_mentions, decode_mentions, notify_mentions


# --- Schemas ---

class CommentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = ""
    mentions: Optional[List[str]] = Field(default_factory=list)
    user_id: int = Field(default=0, alias="userId")
    target_user_id: Optional[str] = Field(default=None, alias="targetUserId")


def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def comment_out(c: Comment, author: Optional[User] = None, with_user: bool = False) -> dict:
    author = author or c.user
    out = {
        "id": c.id,
        "content": c.text,
        "userId": c.user_id,
        "author": author.email if author else None,
        "targetUserId": c.target_user_id,
        "timestamp": _ts(c.timestamp),
        "mentions": decode_mentions(c.mentions),
    }
    if with_user and author:
        out["user"] = {
            "userKey": author.id,
            "email": author.email,
            "firstName": author.first_name,
            "lastName": author.last_name,
            "role": {
                "roleKey": author.role_id,
                "roleName": author.role_name,
            },
        }
    return out


async def get_author(db: AsyncSession, user_id: int) -> User:
    author = await db.get(User, user_id)
    if author is None:
        raise HTTPException(status_code=404, detail=f"User with ID {user_id} not found.")
    return author


def require_content(data: CommentRequest, message: str = "Comment cannot be empty") -> None:
    if not data.content or not data.content.strip():
        raise HTTPException(status_code=400, detail=message)


async def add_comment(
    db: AsyncSession,
    owner: CommentOwner,
    owner_id: int,
    data: CommentRequest,
    author: User,
    match: MentionMatch,
    subject: str,
) -> Comment:
    """Insert the comment and its mention notifications, then commit once"""
    comment = Comment(
        owner_type=owner.value,
        owner_id=owner_id,
        text=data.content,
        user_id=author.id,
        timestamp=utcnow(),
        target_user_id=data.target_user_id,
        mentions=encode_mentions(data.mentions),
    )
    db.add(comment)
    await db.flush()

    await notify_mentions(
        db, data.mentions, match,
        title="Mentioned in Comment",
        message=f"{author.first_name} {author.last_name} mentioned you in a comment on {subject}",
        related_id=comment.id,
    )
    await db.commit()
    return comment


async def list_owner_comments(db: AsyncSession, owner: CommentOwner, owner_id: int) -> List[Comment]:
    result = await db.execute(
        select(Comment)
        .where(Comment.owner_type == owner.value, Comment.owner_id == owner_id)
        .order_by(Comment.timestamp.asc(), Comment.id.asc())
    )
    return list(result.scalars().all())


async def get_owner_comment(db: AsyncSession, owner: CommentOwner, owner_id: int, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(
            Comment.id == comment_id,
            Comment.owner_type == owner.value,
            Comment.owner_id == owner_id,
        )
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise HTTPException(
            status_code=404,
            detail=f"Comment with ID {comment_id} for {owner.value.capitalize()} {owner_id} not found.",
        )
    return comment


async def purge_comments(db: AsyncSession, owner: CommentOwner, owner_ids: Iterable[int]) -> None:
    """Hard-delete the comments of removed files or tasks"""
    ids = list(owner_ids)
    if ids:
        await db.execute(
            delete(Comment).where(Comment.owner_type == owner.value, Comment.owner_id.in_(ids))
        )

