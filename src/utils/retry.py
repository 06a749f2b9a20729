import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


async def retry_with_backoff(
    func,
    max_retries: int = 0,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    is_retryable: Callable[[BaseException], bool] = lambda e: False,
):
    """
    Retry async function with exponential backoff.
    Only errors accepted by `is_retryable` are retried, everything else propagates
    on the first attempt.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts, 0 disables retrying
        base_delay: Base delay in seconds for exponential backoff
        max_delay: Maximum delay cap in seconds
        is_retryable: Predicate deciding whether an error is transient

    Returns:
        Result from successful function call

    Raises:
        Exception: The last error once retries are exhausted
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except Exception as e:
            if not is_retryable(e) or attempt >= max_retries:
                if attempt > 0:
                    logger.error(f"Giving up after {attempt + 1} attempts: {str(e)[:100]}")
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(
                f"Transient error. Retry {attempt + 1}/{max_retries} in {delay:.1f}s. "
                f"Error: {str(e)[:100]}"
            )
            await asyncio.sleep(delay)
