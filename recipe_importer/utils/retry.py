"""
Retry helper for the import pipeline's remote calls.
"""

from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recipe_importer.config import get_settings
from recipe_importer.utils.errors import ConfigurationError
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ExceptionTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed ({error}), "
        f"retrying in {retry_state.next_action.sleep:.1f}s"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    retry_on: ExceptionTypes = Exception,
) -> T:
    """
    Run an async operation, retrying with exponential backoff.

    The delay before retry ``n`` (0-based) is ``base_delay * 2**n``. The last
    error is re-raised once ``max_retries`` attempts have failed. Errors that
    are not instances of ``retry_on``, and configuration errors, are raised
    immediately.

    Args:
        operation: Zero-argument coroutine factory
        max_retries: Total number of attempts (defaults to settings)
        base_delay: Delay before the first retry in seconds (defaults to settings)
        retry_on: Exception types worth another attempt

    Returns:
        The operation's result
    """
    settings = get_settings()
    max_retries = max_retries if max_retries is not None else settings.max_retries
    base_delay = base_delay if base_delay is not None else settings.retry_base_delay

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        retry=retry_if_exception_type(retry_on) & retry_if_not_exception_type(ConfigurationError),
        wait=wait_exponential(multiplier=base_delay, exp_base=2, min=0),
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    # AsyncRetrying either returns from inside the loop or re-raises
    raise AssertionError("unreachable")
