from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from fastapi import Depends, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import AppError, ErrorCode

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class AuthRole(str, Enum):
    ADMIN = "admin"  # Everything an editor can do, plus settings
    EDITOR = "editor"  # Content CRUD and media
    VIEWER = "viewer"  # Read only


ROLE_HIERARCHY = {
    AuthRole.ADMIN: 3,
    AuthRole.EDITOR: 2,
    AuthRole.VIEWER: 1,
}


@dataclass
class AuthContext:
    user_id: str = ""
    role: AuthRole = AuthRole.VIEWER
    is_authenticated: bool = False


ANONYMOUS = AuthContext()


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise AppError(ErrorCode.INTERNAL_ERROR, "Authentication is not configured")
    return settings.JWT_SECRET


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject: str, role: AuthRole, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": subject, "role": AuthRole(role).value, "iat": now, "exp": expire}
    return jwt.encode(to_encode, _secret(), algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Decoded claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(token, _secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get("auth_token")


def extract_auth_context(request: Request) -> AuthContext:
    token = _token_from_request(request)
    if not token:
        return ANONYMOUS

    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        return ANONYMOUS

    try:
        role = AuthRole(payload.get("role"))
    except ValueError:
        role = AuthRole.VIEWER

    return AuthContext(user_id=str(payload["sub"]), role=role, is_authenticated=True)


def has_role(context: Optional[AuthContext], required: AuthRole) -> bool:
    if context is None or not context.is_authenticated:
        return False
    return ROLE_HIERARCHY.get(context.role, 0) >= ROLE_HIERARCHY.get(required, 0)


def authenticate_admin(username: str, password: str) -> bool:
    if not (settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD_HASH):
        return False
    if username.strip().lower() != settings.ADMIN_USERNAME.strip().lower():
        return False
    return verify_password(password, settings.ADMIN_PASSWORD_HASH)


# FastAPI dependencies

def get_auth_context(request: Request) -> AuthContext:
    return extract_auth_context(request)


def require_role(required: AuthRole):
    def dependency(request: Request) -> AuthContext:
        # Resolve the secret first so a missing one fails closed even for anonymous calls
        _secret()
        context = extract_auth_context(request)
        if not context.is_authenticated:
            raise AppError(ErrorCode.AUTH_ERROR, "Authentication required", status_code=status.HTTP_401_UNAUTHORIZED)
        if not has_role(context, required):
            raise AppError(ErrorCode.AUTH_ERROR, "Insufficient permissions")
        return context

    return dependency


require_editor = require_role(AuthRole.EDITOR)
