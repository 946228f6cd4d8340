"""
Bounded retry for transient stage faults.
"""

from __future__ import annotations

import inspect
import re
from typing import Any, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from pagesift.exceptions import TransientFault

logger = structlog.get_logger(__name__)

TRANSIENT_PATTERNS = (
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"time(?:d)?[ -]?out", re.IGNORECASE),
    re.compile(r"temporar(?:y|ily)", re.IGNORECASE),
    re.compile(r"rate[ -]?limit", re.IGNORECASE),
    re.compile(r"(?:service )?unavailable", re.IGNORECASE),
)


def is_transient(exc: BaseException) -> bool:
    """Whether ``exc`` is worth retrying before falling back to recovery."""
    if isinstance(exc, (TransientFault, TimeoutError, ConnectionError)):
        return True
    message = str(exc)
    return any(pattern.search(message) for pattern in TRANSIENT_PATTERNS)


async def call_with_retry(
    func: Callable[..., Any],
    *args: Any,
    attempts: int = 3,
    delay: float = 1.0,
    on_retry: Optional[Callable[[RetryCallState], None]] = None,
) -> Any:
    """Call ``func`` (sync or async), retrying transient faults with a fixed delay.

    Non-transient faults and the last transient fault are re-raised unchanged.
    """

    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.info("transient_fault_retry", attempt=state.attempt_number, error=str(error))
        if on_retry is not None:
            on_retry(state)

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception(is_transient),
        before_sleep=_before_sleep,
        reraise=True,
    ):
        with attempt:
            result = func(*args)
            if inspect.isawaitable(result):
                result = await result
            return result
    return None  # pragma: no cover
