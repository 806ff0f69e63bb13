"""Pipeline exceptions and the service boundary decorator."""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import aiohttp
import asyncpg
from structlog import get_logger

logger = get_logger()

P = ParamSpec("P")
T = TypeVar("T")


class DomainError(Exception):
    """Base for every error a pipeline operation can report to a caller."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Application, job order, or pool record does not exist."""

    code = "NOT_FOUND"


class InvalidStateTransitionError(DomainError):
    """
    Requested move is not allowed from the record's current state.

    Covers re-pooling, activating a non-available record, changing an
    activated disposition, and unique-key collisions between concurrent
    writers.
    """

    code = "INVALID_STATE_TRANSITION"


class ValidationError(DomainError):
    """Input is outside a closed value set or otherwise malformed."""

    code = "VALIDATION_ERROR"


class ExternalServiceError(DomainError):
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        service: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        if service:
            ctx["service"] = service
        super().__init__(message, ctx)


class DatabaseError(DomainError):
    code = "DATABASE_ERROR"


def service_boundary(func: Callable[P, T]) -> Callable[P, T]:
    """
    Translate driver and client exceptions into DomainError subclasses.

    - DomainError: re-raised unchanged
    - asyncpg.UniqueViolationError: InvalidStateTransitionError, since a
      concurrent writer got there first
    - asyncpg.PostgresError: DatabaseError
    - aiohttp.ClientError: ExternalServiceError
    - anything else: DomainError tagged with the original type

    The original exception is chained as __cause__.

    Usage:
        @service_boundary
        async def pool_application(...):
            async with db.transaction() as conn:  # PostgresError -> DatabaseError
                ...
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        name = func.__name__
        try:
            return await func(*args, **kwargs)
        except DomainError:
            raise
        except asyncpg.UniqueViolationError as e:
            constraint = getattr(e, "constraint_name", None)
            logger.warning("unique_violation", function=name, constraint=constraint)
            raise InvalidStateTransitionError(
                "Record was changed by a concurrent request",
                context={"function": name, "constraint": constraint},
            ) from e
        except asyncpg.PostgresError as e:
            logger.error("database_error", function=name, error=str(e))
            raise DatabaseError(str(e), context={"function": name}) from e
        except aiohttp.ClientError as e:
            logger.error("external_api_error", function=name, error=str(e))
            raise ExternalServiceError(str(e), context={"function": name}) from e
        except Exception as e:
            logger.exception("unexpected_error", function=name)
            raise DomainError(str(e), context={"function": name, "type": type(e).__name__}) from e

    return wrapper  # type: ignore[return-value]
