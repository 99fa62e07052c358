"""Retry helpers with optional exponential backoff."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger("ate.recovery.retry")

T = TypeVar("T")

RetryObserver = Callable[[int, BaseException, float], Any]


def backoff_delay(base_delay: float, attempt: int, exponential: bool = True) -> float:
    """Delay before retry number ``attempt + 1`` (attempt counts from 0)."""
    return base_delay * (2**attempt) if exponential else base_delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    exponential: bool = True,
    on_retry: RetryObserver | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``operation`` up to ``max_retries + 1`` times.

    The observer receives ``(attempt, error, delay)`` before each wait, with
    ``attempt`` counting retries from 1. The last error is re-raised once
    retries are exhausted; errors outside ``retry_on`` propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_retries:
                raise
            delay = backoff_delay(base_delay, attempt, exponential)
            attempt += 1
            logger.warning("Attempt %d failed (%s); retrying in %.2fs", attempt, exc, delay)
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            await sleep(delay)


def retry_call(
    operation: Callable[[], T],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    exponential: bool = True,
    on_retry: RetryObserver | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Blocking twin of :func:`with_retry` for synchronous callers."""
    attempt = 0
    while True:
        try:
            return operation()
        except retry_on as exc:
            if attempt >= max_retries:
                raise
            delay = backoff_delay(base_delay, attempt, exponential)
            attempt += 1
            logger.warning("Attempt %d failed (%s); retrying in %.2fs", attempt, exc, delay)
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            sleep(delay)
