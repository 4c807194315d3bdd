from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm.exc import StaleDataError

from ..domain.errors import TransactionRetryExhausted
from ..domain.repositories import Repositories, TransactionRunner
from .repositories import build_repositories

T = TypeVar("T")

logger = logging.getLogger(__name__)

# MySQL: 1205 lock wait timeout, 1213 deadlock. SQLSTATE 40001: serialization failure.
_RETRYABLE_MYSQL_CODES = frozenset({1205, 1213})
_RETRYABLE_SQLSTATES = frozenset({"40001"})


def is_transient(exc: BaseException) -> bool:
    """True for store faults that a fresh attempt of the same transaction may clear."""
    if isinstance(exc, (StaleDataError, TimeoutError)):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        orig = exc.orig
        args = getattr(orig, "args", ())
        if args and args[0] in _RETRYABLE_MYSQL_CODES:
            return True
        sqlstate = getattr(orig, "sqlstate", None)
        return sqlstate in _RETRYABLE_SQLSTATES
    return False


class SqlAlchemyTransactionRunner(TransactionRunner):
    def __init__(
        self,
        session_factory: Callable[[], Any],
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
        timeout_seconds: float = 5.0,
        repo_factory: Callable[[Any], Repositories] = build_repositories,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.session_factory = session_factory
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self.repo_factory = repo_factory

    async def run(self, work: Callable[[Repositories], Awaitable[T]]) -> T:
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(work)
            except Exception as exc:
                if not is_transient(exc):
                    raise
                last_error = exc
                logger.warning(
                    "transaction attempt %d/%d failed with transient error: %r",
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_seconds * attempt)
        logger.error("transaction retry budget exhausted after %d attempts", self.max_attempts)
        raise TransactionRetryExhausted(self.max_attempts) from last_error

    async def read(self, work: Callable[[Repositories], Awaitable[T]]) -> T:
        async with self.session_factory() as session:
            return await work(self.repo_factory(session))

    async def _attempt(self, work: Callable[[Repositories], Awaitable[T]]) -> T:
        async with asyncio.timeout(self.timeout_seconds):
            async with self.session_factory() as session:
                async with session.begin():
                    return await work(self.repo_factory(session))
