"""Custom exceptions and error handling utilities."""

import logging
from typing import Optional

import sentry_sdk

logger = logging.getLogger(__name__)


class ShamanError(Exception):
    """Base exception for Shaman errors.

    Carries the message written into the ``ApiError`` body and the HTTP
    status it maps to.
    """

    message = "internal error"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class BadJSONError(ShamanError):
    """Body could not be parsed as JSON."""

    message = "Bad JSON syntax received in body"
    status_code = 400


class BodyReadError(ShamanError):
    """Request body stream could not be read."""

    message = "Body Read Failed"
    status_code = 400


class InvalidResourceError(ShamanError):
    """Payload parsed but does not describe a valid resource."""

    status_code = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"invalid resource - {detail}")


class UnauthorizedError(ShamanError):
    """Missing or incorrect auth token."""

    message = "unauthorized"
    status_code = 401


class RecordNotFoundError(ShamanError):
    """Domain is not present in the repository."""

    message = "not found"
    status_code = 404


class RecordExistsError(ShamanError):
    """Domain is already present in the repository."""

    message = "resource already exists"
    status_code = 409


class RepositoryError(ShamanError):
    """The record store failed.

    The detail stays server side; only the generic message is sent to clients.
    """

    message = "failed to access record store"
    status_code = 500

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class TransportError(ShamanError):
    """Client could not reach the API (connection, timeout, bad URL)."""


class ApiResponseError(ShamanError):
    """API answered with a non-2xx status and an ApiError body."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(ShamanError):
    """Settings are inconsistent for the requested mode."""


class CertificateError(ShamanError):
    """TLS certificate or key could not be loaded."""


def capture_exception(
    exception: Exception,
    context: Optional[dict] = None,
    level: str = "error",
) -> None:
    """
    Capture exception to Sentry if initialized, and always log it.

    Args:
        exception: The exception to capture
        context: Additional context to include
        level: Log level ('error', 'warning', 'info')
    """
    log_func = getattr(logger, level, logger.error)
    log_func("%s: %s", type(exception).__name__, exception, exc_info=exception)

    if not sentry_sdk.get_client().is_active():
        return

    if context:
        with sentry_sdk.new_scope() as scope:
            for key, value in context.items():
                scope.set_extra(key, value)
            sentry_sdk.capture_exception(exception)
    else:
        sentry_sdk.capture_exception(exception)
