"""Response models and error handlers shared by the HTTP services."""
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Dict, List, Literal

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Dict[str, List[str]] = Field(default_factory=dict, description="Per-field error messages")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "ValidationError",
                "message": "Invalid Vote Data",
                "details": {"electionId": ["electionId must be positive"]}
            }
        }


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual dependencies")
    timestamp: datetime = Field(default_factory=_utcnow, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {"postgresql": "connected"},
                "timestamp": "2024-01-15T10:30:00"
            }
        }


def validation_details(exc: RequestValidationError) -> Dict[str, List[str]]:
    """Group validation error messages by field name."""
    details: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        key = ".".join(loc) or "body"
        details.setdefault(key, []).append(error.get("msg", "invalid value"))
    return details


def error_response(status_code: int, message: str, error: str = None, details: dict = None) -> JSONResponse:
    body = ErrorResponse(
        error=error or HTTPStatus(status_code).phrase,
        message=message,
        details=details or {},
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI, invalid_message: str) -> None:
    """
    Install handlers that render every error as an ErrorResponse.

    Request validation failures are reported as 400 with invalid_message.
    """

    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = validation_details(exc)
        logger.warning(f"Rejected {request.method} {request.url.path}: {details}")
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            invalid_message,
            error="ValidationError",
            details=details,
        )

    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
