"""Rate limiting for mutation endpoints."""

from fastapi import FastAPI
from slowapi import (
    Limiter,
    _rate_limit_exceeded_handler,  # type: ignore[reportPrivateUsage]
)
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings


def get_limiter() -> Limiter:
    """Create a limiter keyed on client IP."""
    return Limiter(key_func=get_remote_address)


# Shared by route decorators: @limiter.limit(settings.mutation_rate_limit)
limiter = get_limiter()

MUTATION_LIMIT = settings.mutation_rate_limit


def setup_rate_limiting(app: FastAPI, app_limiter: Limiter | None = None) -> Limiter:
    """
    Attach a limiter to the app and render 429s for exceeded limits.

    Returns:
        The attached limiter
    """
    attached = app_limiter or limiter
    app.state.limiter = attached
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[reportUnknownMemberType]  # FastAPI handler
    return attached
