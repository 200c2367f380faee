from __future__ import annotations

import logging
from typing import Any, Dict, Optional, cast

from fastapi import Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from chesstutor.errors import (
    ChessTutorError,
    IllegalMoveRequested,
    MalformedPositionInput,
    SearchExhausted,
)


logger = logging.getLogger(__name__)

HTTP_422 = 422


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: Optional[list[dict[str, str]]] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    if details:
        payload["error"]["details"] = details
    return payload


def _http_error_response(request_id: str, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code
    payload = error_envelope(
        code=_status_to_code(status_code),
        message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        err_type="client_error" if 400 <= status_code < 500 else "server_error",
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=payload)


def _internal_error_response(request_id: str) -> JSONResponse:
    payload = error_envelope(
        code="internal_error",
        message="Internal Server Error",
        err_type="server_error",
        request_id=request_id,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    if isinstance(exc, StarletteHTTPException):
        return _http_error_response(request_id, exc)
    # Fallback (shouldn't happen with registration), treat as 500
    return _internal_error_response(request_id)


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render rules-engine errors: bad moves and FENs are 400, a finished game is 409."""
    request_id = getattr(request.state, "request_id", "")
    details: Optional[Dict[str, Any]] = None
    if isinstance(exc, IllegalMoveRequested):
        status_code, code = status.HTTP_400_BAD_REQUEST, "illegal_move"
    elif isinstance(exc, MalformedPositionInput):
        status_code, code = status.HTTP_400_BAD_REQUEST, "malformed_position"
    elif isinstance(exc, SearchExhausted):
        status_code, code = status.HTTP_409_CONFLICT, "game_over"
        winner = exc.state.winner
        details = {
            "status": exc.state.kind.value,
            "winner": winner.name.lower() if winner is not None else None,
        }
    elif isinstance(exc, ChessTutorError):
        status_code, code = status.HTTP_400_BAD_REQUEST, "bad_request"
    else:
        logger.exception("Unhandled exception", extra={"request_id": request_id})
        return _internal_error_response(request_id)
    logger.info(
        "domain error",
        extra={"request_id": request_id, "code": code, "error": str(exc)},
    )
    payload = error_envelope(
        code=code,
        message=str(exc),
        err_type="client_error",
        request_id=request_id,
        details=details,
    )
    return JSONResponse(status_code=status_code, content=payload)


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    if isinstance(exc, StarletteHTTPException):
        return _http_error_response(request_id, exc)
    if isinstance(exc, ChessTutorError):
        return await domain_exception_handler(request, exc)
    # Otherwise, treat as internal error and log it
    logger.exception("Unhandled exception", extra={"request_id": request_id})
    return _internal_error_response(request_id)


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    # Map Pydantic/FastAPI validation errors to our structured envelope with 422
    errors = []
    rve = cast(RequestValidationError, exc)
    for e in rve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        msg = e.get("msg", "invalid value")
        typ = e.get("type", "value_error")
        errors.append({"field": loc, "code": typ, "message": str(msg)})
    payload = error_envelope(
        code="unprocessable_entity",
        message="Validation error",
        err_type="client_error",
        request_id=request_id,
        field_errors=errors or None,
    )
    return JSONResponse(status_code=HTTP_422, content=payload)


def _status_to_code(status_code: int) -> str:
    if status_code == status.HTTP_404_NOT_FOUND:
        return "not_found"
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "bad_request"
    if status_code == status.HTTP_409_CONFLICT:
        return "conflict"
    if status_code == HTTP_422:
        return "unprocessable_entity"
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
