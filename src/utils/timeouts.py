"""Deadline helper for every bounded call made by the core."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, operation: str) -> T:
    """Await ``awaitable`` but give up after ``seconds``.

    Args:
        awaitable: Coroutine or future to wait for.
        seconds: Deadline in seconds.
        operation: Short name of the operation, used in logs and the error.

    Returns:
        Whatever ``awaitable`` returns.

    Raises:
        TimeoutError: If the deadline passes first. The pending work is cancelled.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except TimeoutError:
        logger.warning("operation_timed_out", operation=operation, timeout_seconds=seconds)
        raise TimeoutError(f"{operation} exceeded its {seconds}s deadline") from None
