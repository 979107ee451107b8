import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    operation: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
    description: Optional[str] = None,
) -> T:
    """
    Call an operation, retrying failures with exponential backoff.

    The first attempt runs immediately. After the n-th failure (0-based) the
    helper waits initial_delay * 2**n seconds before trying again, so the
    defaults wait 0.1s, 0.2s and 0.4s across four attempts.

    Args:
        operation: Zero-argument callable to run
        max_retries: Number of retries after the first attempt
        initial_delay: Delay in seconds before the first retry
        sleep: Sleep function, injectable for tests
        description: Label used in log messages

    Returns:
        The operation's result

    Raises:
        Exception: The last error once all retries are exhausted
    """
    label = description or getattr(operation, "__name__", "operation")
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if attempt >= max_retries:
                logger.error(f"{label} failed after {attempt + 1} attempts: {e}")
                raise
            delay = initial_delay * (2 ** attempt)
            logger.warning(
                f"{label} failed (attempt {attempt + 1}/{max_retries + 1}): {e}; retrying in {delay:.2f}s"
            )
            sleep(delay)
            attempt += 1
