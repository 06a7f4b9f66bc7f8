"""Envelope helpers for route handlers and exception handlers."""
from typing import Any, Optional
from fastapi import Request
from app.schemas.base_schema import ApiResponse


def _trace_id(request: Optional[Request]) -> str:
    return getattr(request.state, "trace_id", "") if request else ""


def ok(
    data: Any,
    message: str,
    request: Optional[Request] = None,
    meta: Optional[dict] = None,
) -> ApiResponse:
    """Wrap a successful response in the standard ApiResponse envelope."""
    return ApiResponse(
        success=True,
        data=data,
        meta=meta,
        message=message,
        errors=None,
        trace_id=_trace_id(request),
    )


def fail(message: str, request: Optional[Request] = None, errors: Optional[list] = None) -> dict:
    """Serialized error envelope for JSONResponse bodies."""
    return ApiResponse(
        success=False,
        data=None,
        message=message,
        errors=errors if errors is not None else [message],
        trace_id=_trace_id(request),
    ).model_dump()
