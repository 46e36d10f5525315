# routers/auth.py — Login, registration and password reset
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import (
    AuthService, LoginRequest, RegisterRequest, ForgotPasswordRequest, ResetPasswordRequest,
    CurrentUser, get_auth_service, require_admin, is_valid_password,
)
from config import Settings, get_settings
from database import get_db_session
from email_service import EmailService, get_email_service
from errors import APIError
from models import User, Role

logger = logging.getLogger("custor-portal.auth")

router = APIRouter(prefix="/api/users", tags=["Authentication"])

FORGOT_PASSWORD_ACK = "If the email exists, a reset link has been sent."


async def _find_user_by_email(db: AsyncSession, email: str):
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


@router.post("/login")
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Authenticate and receive a bearer token"""
    if not credentials.email.strip() or not credentials.password.strip():
        raise HTTPException(status_code=400, detail="Email and Password are required.")

    user = await _find_user_by_email(db, credentials.email)
    # Same answer for unknown email, wrong password and deactivated account
    if (
        not user
        or not user.is_active
        or not AuthService.verify_password(credentials.password, user.password_hash)
    ):
        logger.info("Failed login attempt")
        raise APIError("CP-AUTH-001")

    token = auth_service.create_access_token(user.id, user.email, user.role_name)
    return {
        "token": token,
        "user": {
            "id": user.id,
            "email": user.email,
            "role": user.role_name,
        },
    }


@router.post("/forgot-password")
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
):
    """Mail a reset link. The response never reveals whether the account exists."""
    if not request.email.strip():
        raise HTTPException(status_code=400, detail="Email is required.")

    user = await _find_user_by_email(db, request.email)
    if user is None:
        return {"message": FORGOT_PASSWORD_ACK}

    reset_token = auth_service.create_password_reset_token(user.email)
    reset_link = f"{settings.frontend_base_url}/reset-password?token={quote(reset_token, safe='')}"
    await email_service.send_password_reset_email(user.email, reset_link)
    logger.info(f"Password reset issued for user {user.id}")

    return {"message": FORGOT_PASSWORD_ACK}


@router.post("/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Redeem a reset token and overwrite the stored password hash"""
    if not request.token.strip() or not request.new_password.strip():
        raise HTTPException(status_code=400, detail="Token and new password are required.")

    if not is_valid_password(request.new_password):
        raise APIError("CP-VAL-002")

    email = auth_service.validate_password_reset_token(request.token)
    if not email:
        raise APIError("CP-AUTH-005")

    user = await _find_user_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid user.")

    user.password_hash = AuthService.hash_password(request.new_password)
    await db.commit()
    logger.info(f"Password reset redeemed for user {user.id}")

    return {"message": "Password reset successful."}


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a user account (Admin only)"""
    if not request.email.strip() or not request.password.strip():
        raise HTTPException(status_code=400, detail="Email and Password are required.")

    if not (request.first_name or "").strip() or not (request.last_name or "").strip():
        raise HTTPException(status_code=400, detail="First Name and Last Name are required.")

    if request.role_key <= 0:
        raise HTTPException(status_code=400, detail="Valid Role is required.")

    if not is_valid_password(request.password):
        raise APIError("CP-VAL-002")

    if await _find_user_by_email(db, request.email):
        raise HTTPException(status_code=409, detail="User already exists.")

    role = await db.get(Role, request.role_key)
    if role is None:
        raise HTTPException(status_code=400, detail="Valid Role is required.")

    user = User(
        email=request.email.strip(),
        password_hash=AuthService.hash_password(request.password),
        first_name=request.first_name.strip(),
        last_name=request.last_name.strip(),
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User already exists.")

    logger.info(f"User {user.id} registered by admin {admin.id} with role {role.name}")
    return {"message": "User registered successfully.", "userKey": user.id}
