"""
Deadline-bounded resource teardown with exponential backoff.

Releasing a long-lived resource (closing a database connection, removing a
scratch database) can fail transiently. close_with_backoff() keeps retrying
the release with exponential backoff until it succeeds or a hard deadline
passes. Running out of time is fatal: TeardownTimeoutError is a SystemExit,
so the process stops instead of leaking the resource.

Backoff sequence (backoff_unit=1.0): 1s, 2s, 4s, 8s, ... i.e. unit * 2**attempt
with attempt starting at 0.

The migration runner never calls this; it belongs to whatever owns the
store's lifetime (see storage.sqlite_store.SQLiteStore.close).

Example:
    >>> from bookshelf_migrate.utils.teardown import close_with_backoff
    >>> close_with_backoff(conn.close, deadline=10.0, resource="bookshelf.db")
"""

import logging
import time
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    stop_before_delay,
    wait_exponential,
)

from bookshelf_migrate.exceptions import TeardownTimeoutError

logger = logging.getLogger(__name__)

# Hard deadline for releasing a resource (seconds)
DEFAULT_DEADLINE_SECONDS = 10.0

# Base backoff unit (seconds); the n-th retry waits unit * 2**n
DEFAULT_BACKOFF_UNIT_SECONDS = 1.0


def _log_release_failure(resource: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        retry_in = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"error releasing {resource}, retrying in {retry_in:g}s: {exc}",
            extra={
                "context": {
                    "resource": resource,
                    "attempt": retry_state.attempt_number,
                    "retry_in_seconds": retry_in,
                }
            },
        )

    return before_sleep


def close_with_backoff(
    release: Callable[[], object],
    deadline: float = DEFAULT_DEADLINE_SECONDS,
    *,
    resource: str = "resource",
    backoff_unit: float = DEFAULT_BACKOFF_UNIT_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Release a resource, retrying with exponential backoff until a deadline.

    Args:
        release: Zero-argument callable that releases the resource and raises
            on failure (e.g. ``sqlite3.Connection.close``).
        deadline: Seconds since teardown began after which no further attempt
            is made.
        resource: Name used in log messages and in the timeout error.
        backoff_unit: Base wait in seconds. Attempt n (0-based) is followed by
            a wait of ``backoff_unit * 2**n``.
        sleep: Sleep function, injectable for tests.

    Raises:
        TeardownTimeoutError: If the release has not succeeded before the
            deadline. The last release error is chained as __cause__.
        ValueError: If deadline or backoff_unit is not positive.
    """
    if deadline <= 0:
        raise ValueError(f"deadline must be positive, got: {deadline}")
    if backoff_unit <= 0:
        raise ValueError(f"backoff_unit must be positive, got: {backoff_unit}")

    retrying = Retrying(
        # Stop once the next wait would carry us past the deadline
        stop=stop_before_delay(deadline),
        wait=wait_exponential(multiplier=backoff_unit, exp_base=2, min=0),
        before_sleep=_log_release_failure(resource),
        sleep=sleep,
        reraise=False,
    )

    try:
        retrying(release)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.critical(
            f"timeout of {deadline:g}s exceeded releasing {resource}: {last_error}",
            extra={
                "context": {
                    "resource": resource,
                    "deadline_seconds": deadline,
                    "attempts": e.last_attempt.attempt_number,
                }
            },
        )
        raise TeardownTimeoutError(resource, deadline) from last_error

    logger.debug(f"released {resource}")
