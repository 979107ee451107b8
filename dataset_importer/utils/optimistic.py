import logging
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


def apply_optimistic_update(
    snapshot: Callable[[], S],
    apply: Callable[[], None],
    restore: Callable[[S], None],
    commit: Callable[[], R],
) -> R:
    """
    Apply a speculative local change, then confirm it remotely.

    The prior state is captured with `snapshot` before `apply` runs. If
    `commit` raises, `restore` puts the snapshot back and the error
    propagates.

    Returns:
        Whatever `commit` returns
    """
    previous = snapshot()
    apply()
    try:
        return commit()
    except Exception as e:
        logger.warning(f"Optimistic update rolled back: {e}")
        restore(previous)
        raise
