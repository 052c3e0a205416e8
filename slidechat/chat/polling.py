"""Fixed-delay polling until a terminal result is observed."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from slidechat.chat.models import PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_terminal: Callable[[T], bool],
    interval: float,
    *,
    sleep: Sleep = asyncio.sleep,
    max_attempts: int | None = None,
    operation: str = "poll",
) -> T:
    """Call *fetch* until *is_terminal* accepts its result, then return it.

    Waits *interval* seconds between requests. With ``max_attempts=None``
    there is no ceiling. Errors raised by *fetch* propagate unchanged.
    """
    attempt = 0
    while True:
        attempt += 1
        result = await fetch()
        if is_terminal(result):
            logger.debug("%s finished after %d attempt(s)", operation, attempt)
            return result
        if max_attempts is not None and attempt >= max_attempts:
            raise PollTimeoutError(
                operation, f"no terminal status after {attempt} attempts"
            )
        await sleep(interval)
