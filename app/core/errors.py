"""
Error taxonomy and response envelopes.

Every API response is one of:
    {"success": true, "data": ..., "pagination": {...}?}
    {"success": false, "error": {"code": ..., "message": ..., "details": {...}?}}
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    AUTH_ERROR = "AUTH_ERROR"


ERROR_HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.AUTH_ERROR: status.HTTP_403_FORBIDDEN,
}

PUBLIC_CACHE = "public, max-age=3600"
NO_CACHE = "no-cache, no-store, must-revalidate"


class AppError(Exception):
    """
    Tagged application error.

    Usage:
        raise AppError(ErrorCode.NOT_FOUND, "Category not found")
        raise AppError(ErrorCode.VALIDATION_ERROR, "Missing required fields: slug",
                       details={"missing": ["slug"]})
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code or ERROR_HTTP_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        error: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"success": False, "error": error}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=jsonable_encoder(self.to_dict()))


def require_fields(data: dict, fields: Iterable[str], partial: bool = False) -> None:
    """
    Raise a single VALIDATION_ERROR naming every required field that is empty.

    With ``partial`` only the fields present in ``data`` are checked, so a partial
    update may omit them but can never blank them.
    """
    missing: List[str] = [
        field for field in fields
        if (not partial or field in data) and not data.get(field)
    ]
    if missing:
        raise AppError(
            ErrorCode.VALIDATION_ERROR,
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit if limit > 0 else 0,
    }


def success_response(
    data: Any = None,
    pagination: Optional[dict] = None,
    cache_control: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": True, "data": data}
    if pagination is not None:
        content["pagination"] = pagination
    headers = {"Cache-Control": cache_control} if cache_control else None
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)


def database_error(message: str, exc: Exception) -> AppError:
    """Wrap a persistence failure; the raw text only travels as a debug detail."""
    return AppError(ErrorCode.DATABASE_ERROR, message, details={"originalError": str(exc)})


def register_exception_handlers(app) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[%s] %s %s", exc.code.value, exc.message, exc.details or "")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return AppError(ErrorCode.VALIDATION_ERROR, "Invalid request", details={"errors": errors}).to_response()

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request, exc: StarletteHTTPException):
        code_mapping = {
            401: ErrorCode.AUTH_ERROR,
            403: ErrorCode.AUTH_ERROR,
            404: ErrorCode.NOT_FOUND,
            400: ErrorCode.VALIDATION_ERROR,
            422: ErrorCode.VALIDATION_ERROR,
        }
        code = code_mapping.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        return AppError(code, str(exc.detail), status_code=exc.status_code).to_response()

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return database_error("Database operation failed", exc).to_response()
