"""Shared error helpers for the webhook API."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel

_STATUS_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "not_ready",
}


class Error(BaseModel):
    error: str
    message: str
    request_id: Optional[str] = None


def error_payload(
    message: str,
    *,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    resolved_error = error or _STATUS_ERROR_CODES.get(status_code or 0, "error")
    return Error(error=resolved_error, message=message, request_id=request_id).model_dump(exclude_none=True)


def http_error(
    status_code: int,
    message: str,
    *,
    error: Optional[str] = None,
    request_id: Optional[str] = None,
) -> HTTPException:
    payload = error_payload(message, error=error, status_code=status_code, request_id=request_id)
    return HTTPException(status_code=status_code, detail=payload)


def unauthorized(message: str = "Unauthorized") -> HTTPException:
    return http_error(status.HTTP_401_UNAUTHORIZED, message)


def not_found(message: str) -> HTTPException:
    return http_error(status.HTTP_404_NOT_FOUND, message)


def service_unavailable(message: str, *, request_id: Optional[str] = None) -> HTTPException:
    return http_error(status.HTTP_503_SERVICE_UNAVAILABLE, message, request_id=request_id)


def internal_error(message: str, *, request_id: Optional[str] = None) -> HTTPException:
    return http_error(status.HTTP_500_INTERNAL_SERVER_ERROR, message, request_id=request_id)
