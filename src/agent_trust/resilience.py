"""Timeout and retry-with-backoff around calls into external collaborators.

The component store, the role directory and the model evaluator are all
reached through :func:`call_external`. Each attempt is bounded by
``timeout_seconds``; failed attempts are retried with exponential backoff
and jitter until ``max_retries`` is exhausted.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from agent_trust.errors import ExternalCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExternalCallPolicy(BaseModel):
    """Timeout and retry settings for one class of external call.

    Parameters
    ----------
    timeout_seconds:
        Upper bound on a single attempt.
    max_retries:
        Retries after the first attempt (0 disables retrying).
    initial_delay:
        Backoff before the first retry, in seconds.
    max_delay:
        Ceiling for any single backoff delay.
    exponential_base:
        Growth factor between consecutive delays.
    jitter:
        Scale each delay by a random factor in [0.5, 1.0).
    """

    timeout_seconds: float = Field(default=5.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    initial_delay: float = Field(default=0.1, ge=0.0)
    max_delay: float = Field(default=2.0, ge=0.0)
    exponential_base: float = Field(default=2.0, ge=1.0)
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay to wait after failed *attempt* (0-based)."""
        delay = min(self.initial_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


async def call_external(
    factory: Callable[[], Awaitable[T]],
    policy: ExternalCallPolicy,
    operation: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``factory()`` under *policy*, retrying on failure.

    Parameters
    ----------
    factory:
        Zero-argument callable returning a fresh awaitable per attempt.
    policy:
        Timeout and backoff settings.
    operation:
        Name used in log lines and in the raised error.
    sleep:
        Coroutine used for backoff waits. Tests pass a no-op.

    Returns
    -------
    T
        The first successful result.

    Raises
    ------
    ExternalCallError
        If every attempt raised or timed out.
    """
    attempts = policy.max_retries + 1
    last_exc: BaseException | None = None

    for attempt in range(attempts):
        try:
            return await asyncio.wait_for(factory(), timeout=policy.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "External call %s failed (attempt %d/%d): %r",
                operation,
                attempt + 1,
                attempts,
                exc,
            )
            if attempt < attempts - 1:
                await sleep(policy.delay_for(attempt))

    raise ExternalCallError(operation, attempts) from last_exc
