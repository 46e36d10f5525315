# routers/users.py — User listing, roles and role changes
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, require_admin, CurrentUser
from database import get_db_session
from models import User, Role, RoleName, utcnow

logger = logging.getLogger("custor-portal.users")

router = APIRouter(prefix="/api/users", tags=["Users"])


# --- Schemas ---

class UserOut(BaseModel):
    userKey: int
    email: str
    firstName: str
    lastName: str
    role: str
    teamKey: Optional[int] = None


class RoleOut(BaseModel):
    roleKey: int
    roleName: str
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    role: str


def _user_to_out(u: User) -> UserOut:
    return UserOut(
        userKey=u.id,
        email=u.email,
        firstName=u.first_name or "",
        lastName=u.last_name or "",
        role=u.role_name,
        teamKey=u.team_id,
    )


# --- Endpoints ---

@router.get("", response_model=List[UserOut])
async def list_users(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """List all users with their role"""
    result = await db.execute(select(User).order_by(User.id))
    return [_user_to_out(u) for u in result.scalars().all()]


@router.get("/roles", response_model=List[RoleOut])
async def list_roles(
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(select(Role).order_by(Role.id))
    return [
        RoleOut(roleKey=r.id, roleName=r.name, description=r.description)
        for r in result.scalars().all()
    ]


@router.get("/test-auth")
async def test_auth(user: CurrentUser = Depends(get_current_user)):
    """Echo the caller's claims"""
    return {
        "message": "Authentication successful",
        "claims": [{"type": k, "value": v} for k, v in user.claims.items()],
        "isAdmin": user.role == RoleName.ADMIN.value,
        "isMentor": user.role == RoleName.MENTOR.value,
        "isIntern": user.role == RoleName.INTERN.value,
    }


@router.get("/test-admin")
async def test_admin(admin: CurrentUser = Depends(require_admin)):
    return {"message": "Admin access confirmed!"}


@router.put("/{user_id}")
async def update_user_role(
    user_id: int,
    data: RoleUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """Change a user's role by role name"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User with ID {user_id} not found.")

    role_result = await db.execute(select(Role).where(Role.name == data.role))
    role = role_result.scalar_one_or_none()
    if not role:
        raise HTTPException(status_code=400, detail=f"Role '{data.role}' not found.")

    user.role_id = role.id
    user.role = role
    user.updated_at = utcnow()
    await db.commit()
    logger.info(f"Admin {admin.id} changed role of user {user.id} to {role.name}")

    return {
        "message": "User role updated successfully.",
        "user": {"userKey": user.id, "email": user.email, "role": role.name},
    }
