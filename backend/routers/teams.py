# routers/teams.py — Team CRUD and membership
# Teams and memberships are never deleted: removal flips is_active.
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Team, TeamMember, User, utcnow

logger = logging.getLogger("custor-portal.teams")

router = APIRouter(prefix="/api/teams", tags=["Teams"])


# --- Schemas ---

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class MemberAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_key: int = Field(..., alias="userKey")


def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def active_members(team: Team) -> List[TeamMember]:
    return [m for m in team.members if m.is_active]


def _member_out(m: TeamMember) -> dict:
    return {
        "userKey": m.user_id,
        "email": m.user.email if m.user else None,
        "firstName": m.user.first_name if m.user else None,
        "lastName": m.user.last_name if m.user else None,
        "joinedAt": _ts(m.joined_at),
    }


def _team_out(team: Team, include_members: bool = True) -> dict:
    members = active_members(team) if include_members else []
    return {
        "teamKey": team.id,
        "name": team.name,
        "description": team.description,
        "createdAt": _ts(team.created_at),
        "updatedAt": _ts(team.updated_at),
        "memberCount": len(members),
        "members": [_member_out(m) for m in members],
    }


async def _get_active_team(db: AsyncSession, team_id: int) -> Team:
    result = await db.execute(select(Team).where(Team.id == team_id, Team.is_active.is_(True)))
    team = result.scalar_one_or_none()
    if not team:
        raise HTTPException(status_code=404, detail=f"Team with ID {team_id} not found.")
    return team


async def activate_membership(
    db: AsyncSession, team_id: int, user_id: int,
    already_member: str = "User is already a member of this team.",
) -> TeamMember:
    """Insert a membership or reactivate a soft-deleted one.

    Raises 400 when the user is already an active member.
    """
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    member = result.scalar_one_or_none()
    if member is not None:
        if member.is_active:
            raise HTTPException(status_code=400, detail=already_member)
        member.is_active = True
        member.joined_at = utcnow()
        return member

    member = TeamMember(team_id=team_id, user_id=user_id, joined_at=utcnow(), is_active=True)
    db.add(member)
    return member


# --- Endpoints ---

@router.get("")
async def list_teams(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(select(Team).where(Team.is_active.is_(True)).order_by(Team.id))
    return [_team_out(t) for t in result.scalars().all()]


@router.get("/{team_id}")
async def get_team(
    team_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    team = await _get_active_team(db, team_id)
    out = _team_out(team)
    out.pop("memberCount")
    return out


@router.post("", status_code=201)
async def create_team(
    data: TeamCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    team = Team(name=data.name.strip(), description=data.description, created_at=utcnow(), is_active=True)
    db.add(team)
    await db.commit()
    logger.info(f"Team {team.id} created by user {user.id}")
    return {
        "teamKey": team.id,
        "name": team.name,
        "description": team.description,
        "createdAt": _ts(team.created_at),
    }


@router.put("/{team_id}")
async def update_team(
    team_id: int,
    data: TeamUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    team = await _get_active_team(db, team_id)
    if data.name is not None:
        team.name = data.name.strip()
    if data.description is not None:
        team.description = data.description
    team.updated_at = utcnow()
    await db.commit()
    return _team_out(team)


@router.delete("/{team_id}")
async def deactivate_team(
    team_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Soft-delete a team together with its memberships"""
    team = await _get_active_team(db, team_id)
    team.is_active = False
    team.updated_at = utcnow()
    for member in team.members:
        member.is_active = False
    await db.commit()
    logger.info(f"Team {team.id} deactivated by user {user.id}")
    return {"message": "Team deactivated successfully.", "teamKey": team.id}


@router.post("/{team_id}/members")
async def add_team_member(
    team_id: int,
    data: MemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await _get_active_team(db, team_id)

    if await db.get(User, data.user_key) is None:
        raise HTTPException(status_code=404, detail=f"User with ID {data.user_key} not found.")

    await activate_membership(db, team_id, data.user_key)
    await db.commit()
    return {"message": "Team member added successfully."}


@router.delete("/{team_id}/members/{user_id}")
async def remove_team_member(
    team_id: int,
    user_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found.")

    member.is_active = False
    await db.commit()
    return {"message": "Team member removed successfully."}
