# notify.py — Notification rows and @mention resolution
"""
Helpers shared by the routers that emit notifications as a side effect.

Nothing here commits: callers add the rows to the request's session and
commit them together with the write that triggered them.

Mentions are resolved with one of two rules:

* ``MentionMatch.NAME``: case-insensitive ``"<first> <last>"`` comparison
* ``MentionMatch.EMAIL``: exact email comparison

Every mention entry that resolves yields one notification; repeated mentions
of the same person are not collapsed and project membership is not checked.
"""
import json
import logging
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import Notification, NotificationType, User

logger = logging.getLogger("custor-portal.notify")

TITLE_MAX = 200
MESSAGE_MAX = 500


class MentionMatch(str, Enum):
    NAME = "name"
    EMAIL = "email"


def build_notification(
    user_id: int,
    title: str,
    message: str,
    type: str,
    related_id: Optional[int] = None,
    related_type: Optional[str] = None,
) -> Notification:
    return Notification(
        user_id=user_id,
        title=title[:TITLE_MAX],
        message=message[:MESSAGE_MAX],
        type=type,
        is_read=False,
        related_id=related_id,
        related_type=related_type,
    )


def encode_mentions(mentions: Optional[Iterable[str]]) -> Optional[str]:
    items = list(mentions or [])
    return json.dumps(items) if items else None


def decode_mentions(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Unreadable mentions blob ignored")
        return []
    return [str(m) for m in value] if isinstance(value, list) else []


async def resolve_mention(db: AsyncSession, mention: str, match: MentionMatch) -> Optional[User]:
    if match is MentionMatch.NAME:
        full_name = func.lower(User.first_name + " " + User.last_name)
        stmt = select(User).where(full_name == mention.lower())
    else:
        stmt = select(User).where(User.email == mention)
    result = await db.execute(stmt.order_by(User.id).limit(1))
    return result.scalar_one_or_none()


async def notify_mentions(
    db: AsyncSession,
    mentions: Optional[Iterable[str]],
    match: MentionMatch,
    title: str,
    message: str,
    related_id: Optional[int] = None,
) -> List[Notification]:
    """Add one comment notification per resolvable mention entry"""
    created = []
    for mention in mentions or []:
        if not mention or not mention.strip():
            continue
        user = await resolve_mention(db, mention, match)
        if user is None:
            logger.debug(f"Mention '{mention}' did not match any user ({match.value})")
            continue
        notif = build_notification(
            user.id, title, message, NotificationType.COMMENT.value,
            related_id=related_id, related_type="comment",
        )
        db.add(notif)
        created.append(notif)
    return created
