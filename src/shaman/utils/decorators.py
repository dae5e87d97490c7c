"""Decorators for error handling and monitoring."""

import asyncio
import functools
from typing import Callable, TypeVar

import sentry_sdk

from shaman.core.config import Settings
from shaman.utils.exceptions import ShamanError

F = TypeVar("F", bound=Callable)


def _should_report(exc: Exception) -> bool:
    """ShamanErrors are rendered and, when server side, reported by the handler."""
    return not isinstance(exc, ShamanError)


def sentry_exception_catcher(func: F) -> F:
    """
    Decorator to catch exceptions and report to Sentry.

    Works with both sync and async functions.
    Only reports if Sentry has been initialized. ShamanErrors are left to the
    API exception handler.
    """

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if _should_report(e) and sentry_sdk.get_client().is_active():
                sentry_sdk.capture_exception(e)
            raise

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if _should_report(e) and sentry_sdk.get_client().is_active():
                sentry_sdk.capture_exception(e)
            raise

    if asyncio.iscoroutinefunction(func):
        return async_wrapper  # type: ignore
    return sync_wrapper  # type: ignore


def init_sentry(settings: Settings) -> bool:
    """Initialize Sentry SDK if configured. Returns True when enabled."""
    if not settings.sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
    )

    return True
