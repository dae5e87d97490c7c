"""Shared-secret token authentication."""

import secrets
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shaman.api.responses import error_response
from shaman.core.config import DEFAULT_AUTH_HEADER
from shaman.utils.exceptions import UnauthorizedError


def token_matches(presented: str, expected: str) -> bool:
    """Constant-time exact comparison of two tokens."""
    return secrets.compare_digest(
        presented.encode("utf-8", "surrogateescape"),
        expected.encode("utf-8", "surrogateescape"),
    )


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Reject any request whose auth header does not carry the shared token.

    Runs before routing, so unknown paths and disallowed methods are
    rejected the same way as real routes. The response never says whether
    the header was missing or wrong.

    Args:
        app: The ASGI application to wrap.
        token: The shared secret every request must present.
        header: Name of the header carrying the token.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        token: str,
        header: str = DEFAULT_AUTH_HEADER,
    ) -> None:
        super().__init__(app)
        self.token = token
        self.header = header

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        presented = request.headers.get(self.header)

        if presented is None or not token_matches(presented, self.token):
            return error_response(request, UnauthorizedError())

        return await call_next(request)
