"""Application error types and their FastAPI handlers."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all application errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    """Bad input shape or missing required field"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class DatabaseError(AppError):
    """Storage unreachable or statement failed"""
    def __init__(self, message: str = "A database error occurred"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="DATABASE_ERROR",
        )


class SettingsUnavailable(AppError):
    """No settings row for a user that should have one."""
    def __init__(self, user_id: int):
        super().__init__(
            message=(
                "Could not retrieve LLM settings for this user. "
                "Please try re-saving your settings or contact support."
            ),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="SETTINGS_UNAVAILABLE",
            details={"user_id": user_id},
        )


class ProviderError(AppError):
    """Base for failures while dispatching a generation request to an LLM provider.

    ``category`` is either ``misconfigured`` (the user can fix it in their
    settings) or ``gateway`` (the upstream provider misbehaved).
    """
    category = "gateway"

    def __init__(self, message: str, status_code: int, error_code: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status_code, error_code=error_code, details=details)


class ConfigMissing(ProviderError):
    category = "misconfigured"

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=422,
            error_code="LLM_MISCONFIGURED",
        )


class ProviderUnsupported(ProviderError):
    category = "misconfigured"

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            message=f"Unsupported LLM provider: {provider}. Or provider not fully implemented.",
            status_code=422,
            error_code="LLM_MISCONFIGURED",
            details={"provider": provider},
        )


class ProviderCallFailed(ProviderError):
    """Upstream answered with a non-2xx status, or could not be reached (status 0)."""

    def __init__(self, provider: str, status: int, message: str):
        self.provider = provider
        self.status = status
        self.upstream_message = message
        if status:
            text = f"{provider} API error (HTTP {status}): {message}"
        else:
            text = f"Could not reach {provider} API: {message}"
        super().__init__(
            message=text,
            status_code=502,
            error_code="LLM_GATEWAY_ERROR",
            details={"provider": provider, "upstream_status": status},
        )


class ResponseUnparseable(ProviderError):
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(
            message=f"{provider} API returned an unexpected response: {message}",
            status_code=502,
            error_code="LLM_GATEWAY_ERROR",
            details={"provider": provider},
        )


def _error_body(code: str, message: str, details: Dict[str, Any]) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


async def app_error_handler(request: Request, exc: AppError):
    logger.warning(
        "Application error: %s - %s",
        exc.error_code,
        exc.message,
        extra={"error_code": exc.error_code, "status_code": exc.status_code, "path": request.url.path},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s", request.url.path, extra={"path": request.url.path}, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("DATABASE_ERROR", "A database error occurred", {}),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
