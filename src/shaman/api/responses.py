"""Request body parsing, JSON responses and exception handlers."""

import logging
from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import ClientDisconnect

from shaman.api.models import ApiError
from shaman.core.codec import encode_json
from shaman.utils.exceptions import BodyReadError, ShamanError, capture_exception

logger = logging.getLogger(__name__)

_HTTP_ERROR_MESSAGES = {
    404: "not found",
    405: "method not allowed",
}


def _remote_addr(request: Request) -> str:
    if request.client is None:
        return "-"

    return f"{request.client.host}:{request.client.port}"


def write_body(
    request: Request,
    payload: Any,
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Encode payload as a JSON response and log the request outcome.

    Args:
        request: The request being answered
        payload: Model, list of models or plain data to encode
        status_code: HTTP status of the response
        headers: Extra response headers

    Returns:
        Response with a newline-terminated JSON body
    """
    error = payload.error if isinstance(payload, ApiError) else ""
    uri = request.url.path

    if request.url.query:
        uri = f"{uri}?{request.url.query}"

    log_func = logger.warning if status_code >= 400 else logger.info
    log_func(
        "%s %d %s %s %s",
        _remote_addr(request),
        status_code,
        request.method,
        uri,
        error,
    )

    return Response(
        content=encode_json(payload) + b"\n",
        status_code=status_code,
        headers=headers,
        media_type="application/json",
    )


def error_response(request: Request, error: ShamanError) -> Response:
    return write_body(request, ApiError(error=error.message), error.status_code)


async def parse_body(request: Request) -> bytes:
    """Read the full request body, raising BodyReadError if the stream fails."""
    try:
        return await request.body()
    except ClientDisconnect as e:
        logger.error(f"Body read failed: {e}")
        raise BodyReadError() from e


async def shaman_error_handler(request: Request, exc: Exception) -> Response:
    """Render ShamanError as an ApiError body, reporting server-side failures."""
    if not isinstance(exc, ShamanError):
        raise TypeError(f"Expected ShamanError, got {type(exc).__name__}")

    if exc.status_code >= 500:
        capture_exception(
            exc,
            {"method": request.method, "path": request.url.path},
        )

    return error_response(request, exc)


async def http_error_handler(request: Request, exc: Exception) -> Response:
    """Render routing errors (unknown path, wrong method) as ApiError bodies."""
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    message = _HTTP_ERROR_MESSAGES.get(exc.status_code, str(exc.detail))

    return write_body(
        request, ApiError(error=message), exc.status_code, headers=exc.headers
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Render query/path validation failures as 400 ApiError bodies."""
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    parts = []

    for item in exc.errors():
        location = ".".join(str(loc) for loc in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg', 'invalid')}")

    message = "invalid request - " + "; ".join(parts)

    return write_body(request, ApiError(error=message), 400)


async def unexpected_error_handler(request: Request, exc: Exception) -> Response:
    """Last resort: keep the JSON contract for errors nothing else handled."""
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
    )

    return error_response(request, ShamanError())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the ApiError renderers to an application."""
    app.add_exception_handler(Exception, unexpected_error_handler)
    app.add_exception_handler(ShamanError, shaman_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
