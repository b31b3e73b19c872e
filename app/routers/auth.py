import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.core.errors import AppError, ErrorCode, success_response
from app.core.security import (
    AuthContext,
    AuthRole,
    authenticate_admin,
    create_access_token,
    get_auth_context,
)
from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login")
def login(data: LoginRequest):
    if not settings.JWT_SECRET:
        raise AppError(ErrorCode.INTERNAL_ERROR, "Authentication is not configured")

    if not authenticate_admin(data.username, data.password):
        logger.warning("Failed login attempt for %s", data.username)
        raise AppError(
            ErrorCode.AUTH_ERROR,
            "Invalid username or password",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    token = create_access_token(subject=data.username, role=AuthRole.ADMIN)
    return success_response({
        "token": token,
        "user": {"username": data.username, "role": AuthRole.ADMIN.value},
    })


@router.get("/me")
def read_me(context: AuthContext = Depends(get_auth_context)):
    if not context.is_authenticated:
        raise AppError(ErrorCode.AUTH_ERROR, "Authentication required", status_code=status.HTTP_401_UNAUTHORIZED)
    return success_response({"username": context.user_id, "role": context.role.value})
