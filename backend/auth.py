# auth.py — Authentication for Custor Portal
# Features:
# - bcrypt password hashing
# - HS256 access tokens carrying sub / email / role claims, iss + aud checked
# - Narrow password-reset tokens marked with a pwdreset claim
# - Password complexity policy (8 chars to 72 bytes, upper/lower/digit/symbol)
# - Role-gated FastAPI dependencies

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db_session
from errors import APIError
from models import User, RoleName

logger = logging.getLogger("custor-portal.auth")

MIN_PASSWORD_LENGTH = 8
# bcrypt only accepts secrets up to this many bytes
MAX_PASSWORD_BYTES = 72
RESET_MARKER_CLAIM = "pwdreset"

security = HTTPBearer(auto_error=False)


# ============================================================
# PASSWORD POLICY
# ============================================================

def is_valid_password(password: Optional[str]) -> bool:
    """Length bounds plus upper, lower, digit and symbol character classes"""
    if not password or not password.strip() or len(password) < MIN_PASSWORD_LENGTH:
        return False
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_symbol = any(not c.isalnum() for c in password)
    return has_upper and has_lower and has_digit and has_symbol


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    role_key: int = Field(default=0, alias="roleKey")


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = ""
    new_password: str = Field(default="", alias="newPassword")


class CurrentUser(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    claims: Dict[str, Any] = {}

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN.value


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Password hashing plus issuance and validation of signed tokens"""

    def __init__(self, settings: Settings):
        self.settings = settings

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=12)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    def _encode(self, claims: Dict[str, Any], expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
            "iat": now,
            "exp": now + expires_delta,
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)

    def _decode(self, token: str, leeway: int = 0) -> Dict[str, Any]:
        return jwt.decode(
            token,
            self.settings.jwt_secret_key,
            algorithms=[self.settings.jwt_algorithm],
            audience=self.settings.jwt_audience,
            issuer=self.settings.jwt_issuer,
            options={"leeway": leeway},
        )

    def create_access_token(
        self, user_id: int, email: str, role: str, expires_delta: Optional[timedelta] = None,
    ) -> str:
        delta = expires_delta or timedelta(minutes=self.settings.access_token_expire_minutes)
        return self._encode(
            {"sub": str(user_id), "email": email, "role": role, "type": "access"},
            delta,
        )

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = self._decode(token)
        except ExpiredSignatureError:
            raise APIError("CP-AUTH-003", "Token expired", headers={"WWW-Authenticate": "Bearer"})
        except JWTError:
            raise APIError("CP-AUTH-003", headers={"WWW-Authenticate": "Bearer"})

        if payload.get("type") != "access" or RESET_MARKER_CLAIM in payload:
            raise APIError("CP-AUTH-003", "Invalid token type", headers={"WWW-Authenticate": "Bearer"})
        return payload

    def create_password_reset_token(self, email: str, lifetime: Optional[timedelta] = None) -> str:
        delta = lifetime or timedelta(minutes=self.settings.password_reset_expire_minutes)
        return self._encode(
            {"email": email, RESET_MARKER_CLAIM: "1", "type": "password_reset"},
            delta,
        )

    def validate_password_reset_token(self, token: str) -> Optional[str]:
        """Return the email a reset token was issued for, or None when it is unusable"""
        try:
            payload = self._decode(token, leeway=self.settings.password_reset_leeway_seconds)
        except JWTError:
            return None
        if payload.get(RESET_MARKER_CLAIM) != "1":
            return None
        email = payload.get("email")
        return email or None


def get_auth_service(settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(settings)


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    if credentials is None:
        raise APIError("CP-AUTH-002", headers={"WWW-Authenticate": "Bearer"})

    payload = auth_service.verify_access_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise APIError("CP-AUTH-003", "Invalid token payload")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise APIError("CP-AUTH-003", "User not found or inactive")

    return CurrentUser(
        id=user.id,
        email=user.email,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        role=user.role_name,
        is_active=user.is_active,
        claims={k: v for k, v in payload.items() if k in ("sub", "email", "role", "iss", "aud", "exp", "iat")},
    )


def require_role(*roles: RoleName):
    """Dependency factory: require user to have one of the specified roles"""
    allowed = {r.value for r in roles}

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise APIError("CP-AUTH-004")
        return user
    return _check


require_admin = require_role(RoleName.ADMIN)
