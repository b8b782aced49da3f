"""
Maxlag backpressure handling.

When maxlag is enabled, every request carries `maxlag=<threshold>`. If the
server's replication lag exceeds the threshold it refuses the request, sets the
`X-Database-Lag` header and tells the client how long to wait in
`Retry-After`. This module holds the per-client maxlag settings and the
attempt loop that honors those waits.

Example:
    >>> retrying = MaxlagRetrying(client.maxlag)
    >>> for attempt in retrying:
    ...     with attempt:
    ...         return dispatch(params)
    >>> raise retrying.exhausted()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field

from mwengine._errors import APIBusyError, MaxlagError

logger = logging.getLogger(__name__)


@dataclass
class Maxlag:
    """
    Maxlag settings of a client.

    Mutable on purpose: `client.maxlag.enabled = True` switches maxlag
    handling on for every later call of that client.

    Attributes:
        enabled: If True, requests set the `maxlag` parameter and lagged
            responses are retried.
        threshold: The `maxlag` value (in seconds) sent to the server.
        retries: Total number of attempts per call, not extra retries.
            With 0 no request is made at all and the call fails as busy.
        sleep: Delay function invoked between lagged attempts with the
            server-requested number of seconds. Replace it in tests.
    """

    enabled: bool = False
    threshold: str = "5"
    retries: int = 3
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        self.threshold = str(self.threshold)
        assert self.retries >= 0, f"retries must be >= 0, got {self.retries}"


class MaxlagRetrying:
    """
    Attempt loop for lagged requests.

    Yields one context manager per attempt, up to `maxlag.retries`. A
    MaxlagError raised inside an attempt is suppressed and, if another attempt
    follows, the loop sleeps for the server-requested time. Any other
    exception (or a normal return) ends the loop immediately: only backpressure
    is retried.

    If the loop runs to completion, every attempt was lagged; raise
    `exhausted()` in that case.

    Args:
        maxlag: The client's maxlag settings.
        logger_prefix: Prefix for log messages.
    """

    def __init__(self, maxlag: Maxlag, logger_prefix: str = ""):
        assert maxlag is not None, "maxlag cannot be None"
        assert maxlag.retries >= 0, f"retries must be >= 0, got {maxlag.retries}"

        self.maxlag = maxlag
        self.logger_prefix = logger_prefix
        self.attempts = 0
        self.last_error: MaxlagError | None = None

    def __iter__(self) -> Generator[_MaxlagAttempt, None, None]:
        for attempt_number in range(1, self.maxlag.retries + 1):
            self.attempts = attempt_number
            yield _MaxlagAttempt(self, attempt_number)

    def exhausted(self) -> APIBusyError:
        """Build the error for a loop where every attempt was lagged."""
        prefix = f"{self.logger_prefix} | " if self.logger_prefix else ""
        logger.error(
            f"{prefix}Server still lagged after {self.attempts} attempt(s). Giving up."
        )
        return APIBusyError(attempts=self.attempts, last_error=self.last_error)

    def _handle_lag(self, error: MaxlagError, attempt: _MaxlagAttempt) -> None:
        self.last_error = error
        prefix = f"{self.logger_prefix} | " if self.logger_prefix else ""
        logger.warning(
            f"{prefix}Attempt {attempt.attempt_number}/{self.maxlag.retries} lagged: {error}"
        )

        # No wait after the last attempt
        if not attempt.is_last_attempt:
            logger.warning(f"{prefix}Retrying in {error.retry_after}s...")
            self.maxlag.sleep(error.retry_after)


class _MaxlagAttempt:
    """Context for a single attempt (internal)."""

    def __init__(self, retrying: MaxlagRetrying, attempt_number: int):
        self._retrying = retrying
        self.attempt_number = attempt_number

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt_number >= self._retrying.maxlag.retries

    def __enter__(self) -> _MaxlagAttempt:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        if not isinstance(exc_val, MaxlagError):
            return False

        self._retrying._handle_lag(exc_val, self)
        return True
