"""Shared session handling for the domain gateways."""

from __future__ import annotations

import asyncio
from contextlib import closing
from datetime import datetime, timezone
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from results import ErrorDetail, Result, dependency_error, internal_error

T = TypeVar("T")

logger = logging.getLogger(__name__)


class GatewayFailure(Exception):
    """Raised inside a handler to return a specific error detail."""

    def __init__(self, detail: ErrorDetail) -> None:
        super().__init__(detail.message)
        self.detail = detail


class SessionGateway:
    """Runs sync SQLAlchemy work in a worker thread and wraps it in ``Result``."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _execute(self, handler: Callable[[Session], T]) -> T:
        """Execute gateway work inside a managed session."""
        with closing(self._session_factory()) as session:
            try:
                result = handler(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return result

    async def _run(self, action: str, handler: Callable[[Session], T]) -> Result[T]:
        try:
            data = await asyncio.to_thread(self._execute, handler)
        except GatewayFailure as failure:
            return Result.failure(failure.detail)
        except SQLAlchemyError as exc:
            logger.error("%s failed: %s", action, exc)
            return Result.failure(dependency_error(f"Database error during {action}"))
        except Exception as exc:
            logger.exception("%s failed unexpectedly", action)
            return Result.failure(internal_error(f"Unexpected error during {action}: {exc}"))
        return Result.success(data)


def to_storage(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for storage."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime | None) -> datetime | None:
    """Attach UTC to a stored naive datetime."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
