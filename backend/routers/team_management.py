# routers/team_management.py — Admin-facing team views and user placement
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Team, TeamMember, User, Role, RoleName, utcnow
from routers.teams import active_members, activate_membership

logger = logging.getLogger("custor-portal.teams")

router = APIRouter(prefix="/api/team-management", tags=["Team Management"])


# --- Schemas ---

class CreateTeamRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_name: str = Field(default="", alias="teamName")
    description: Optional[str] = None


class AssignUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_key: int = Field(..., alias="userKey")
    team_key: int = Field(..., alias="teamKey")


class RemoveUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_key: int = Field(..., alias="userKey")


def _user_summary(u: User) -> dict:
    return {
        "userKey": u.id,
        "email": u.email,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "role": u.role_name,
    }


# --- Endpoints ---

@router.get("/teams")
async def get_teams(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(select(Team).where(Team.is_active.is_(True)).order_by(Team.id))
    teams = []
    for t in result.scalars().all():
        members = active_members(t)
        teams.append({
            "teamKey": t.id,
            "teamName": t.name,
            "description": t.description,
            "memberCount": len(members),
            "members": [_user_summary(m.user) for m in members if m.user],
        })
    return teams


@router.post("/teams", status_code=201)
async def create_team(
    data: CreateTeamRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if not data.team_name.strip():
        raise HTTPException(status_code=400, detail="Team name is required")

    team = Team(name=data.team_name.strip(), description=data.description, created_at=utcnow(), is_active=True)
    db.add(team)
    await db.commit()
    logger.info(f"Team {team.id} created by user {user.id}")

    return {"TeamKey": team.id, "TeamName": team.name, "Description": team.description}


@router.post("/assign-user")
async def assign_user_to_team(
    data: AssignUserRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    target = await db.get(User, data.user_key)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    team = await db.get(Team, data.team_key)
    if team is None or not team.is_active:
        raise HTTPException(status_code=404, detail="Team not found")

    await activate_membership(
        db, team.id, target.id, already_member="User is already assigned to this team",
    )
    await db.commit()

    return {
        "message": "User assigned to team successfully",
        "userKey": target.id,
        "email": target.email,
        "teamName": team.name,
    }


@router.post("/remove-user")
async def remove_user_from_team(
    data: RemoveUserRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.user_id == data.user_key, TeamMember.is_active.is_(True))
        .order_by(TeamMember.joined_at)
        .limit(1)
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(status_code=404, detail="User is not assigned to any team")

    member.is_active = False
    await db.commit()

    return {"message": "User removed from team successfully", "userKey": member.user_id}


@router.get("/unassigned-users")
async def get_unassigned_users(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Non-admin users without an active membership"""
    assigned = select(TeamMember.user_id).where(TeamMember.is_active.is_(True))
    stmt = (
        select(User)
        .join(Role, User.role_id == Role.id)
        .where(User.id.not_in(assigned), Role.name != RoleName.ADMIN.value)
        .order_by(User.id)
    )
    result = await db.execute(stmt)
    return [_user_summary(u) for u in result.scalars().all()]


@router.get("/mentor-teams/{mentor_id}")
async def get_mentor_teams(
    mentor_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    mentor = await db.get(User, mentor_id)
    if mentor is None:
        raise HTTPException(status_code=404, detail="Mentor not found")
    if mentor.role_name != RoleName.MENTOR.value:
        raise HTTPException(status_code=400, detail="User is not a mentor")

    stmt = (
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == mentor_id, TeamMember.is_active.is_(True))
        .order_by(Team.id)
    )
    result = await db.execute(stmt)
    teams = []
    for t in result.scalars().unique().all():
        interns = [
            m for m in active_members(t)
            if m.user and m.user.role_name == RoleName.INTERN.value
        ]
        teams.append({
            "TeamKey": t.id,
            "TeamName": t.name,
            "Description": t.description,
            "MemberCount": len(interns),
        })
    return teams
