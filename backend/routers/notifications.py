# routers/notifications.py — In-app notifications, scoped to the caller
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Notification, User
from notify import build_notification

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


# --- Schemas ---

class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: str
    isRead: bool
    createdAt: Optional[str] = None
    relatedId: Optional[int] = None
    relatedType: Optional[str] = None


class NotificationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=500)
    type: str = Field(..., min_length=1, max_length=50)
    related_id: Optional[int] = Field(default=None, alias="relatedId")
    related_type: Optional[str] = Field(default=None, max_length=50, alias="relatedType")


def _notif_out(n: Notification) -> dict:
    return NotificationOut(
        id=n.id, title=n.title, message=n.message, type=n.type,
        isRead=n.is_read,
        createdAt=n.created_at.isoformat() if n.created_at else None,
        relatedId=n.related_id, relatedType=n.related_type,
    ).model_dump()


async def _get_own(db: AsyncSession, notification_id: int, user: CurrentUser) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user.id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise HTTPException(404, "Notification not found")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("")
async def list_notifications(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return [_notif_out(n) for n in result.scalars().all()]


@router.get("/unread-count")
async def unread_count(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
) -> int:
    return (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.is_read.is_(False),
        )
    )).scalar() or 0


# ============================================================
# CREATE
# ============================================================

@router.post("", status_code=201)
async def create_notification(
    data: NotificationCreate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    if await db.get(User, data.user_id) is None:
        raise HTTPException(400, "Target user not found")

    notif = build_notification(
        data.user_id, data.title, data.message, data.type,
        related_id=data.related_id, related_type=data.related_type,
    )
    db.add(notif)
    await db.commit()
    await db.refresh(notif)
    return _notif_out(notif)


# ============================================================
# MARK READ
# ============================================================

@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own(db, notification_id, user)
    notif.is_read = True
    await db.commit()
    return {"status": "read"}


@router.put("/mark-all-read")
async def mark_all_read(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return {"marked": result.rowcount}


# ============================================================
# DELETE
# ============================================================

@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own(db, notification_id, user)
    await db.delete(notif)
    await db.commit()


@router.delete("")
async def clear_read_notifications(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        select(Notification).where(
            Notification.user_id == user.id,
            Notification.is_read.is_(True),
        )
    )
    notifications = result.scalars().all()
    count = len(notifications)
    for n in notifications:
        await db.delete(n)
    await db.commit()
    return {"deleted": count}
