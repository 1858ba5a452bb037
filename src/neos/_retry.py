"""
Opt-in retry helper with exponential backoff.

The clients never retry on their own: a failed request is surfaced to the
caller as a RequestError. Callers that want to retry transient failures
(server errors, rate limiting, network errors) wrap the call in `Retrying`.

Rate limited attempts need no extra wait here: the next dispatch already
sleeps until the deadline recorded from the 429 response.

Example:
    >>> from neos import Retrying
    >>> for attempt in Retrying(max_retries=3, backoff_factor=0.5):
    ...     with attempt:
    ...         users = client.search_users("neos")
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass

from neos._errors import RequestError, ResponseCodeError
from neos._utils import sleep_with_jitter

logger = logging.getLogger(__name__)


class MaxRetriesExceededError(Exception):
    """
    Raised when all retry attempts are exhausted.

    Attributes:
        last_exception: The RequestError raised by the last attempt.

    Example:
        >>> try:
        ...     for attempt in Retrying(max_retries=3):
        ...         with attempt:
        ...             client.ping()
        ... except MaxRetriesExceededError as e:
        ...     print(f"Original error: {e.last_exception}")
    """

    def __init__(self, message: str, last_exception: Exception | None = None):
        super().__init__(message)
        self.last_exception = last_exception


@dataclass(frozen=True)
class RetryAttempt:
    """
    Metadata about the current attempt within a retry loop.

    Attributes:
        attempt_number: Zero-based index of the current attempt (0 = first attempt).
        max_retries: Maximum number of retry attempts configured.
    """

    attempt_number: int
    max_retries: int

    @property
    def is_last_attempt(self) -> bool:
        """Return True if this is the last retry attempt."""
        return self.attempt_number >= self.max_retries


class Retrying:
    """
    Retry loop with exponential backoff for API calls.

    Args:
        max_retries: Maximum number of retry attempts (default: 3).
            Use 0 to disable retries (single attempt only).
        backoff_factor: Base multiplier for exponential backoff (default: 0.5).
            Sleep time = backoff_factor * (2 ** attempt_number)
        retry_on_status_codes: Status codes of ResponseCodeError to retry.
            None (default) retries whatever `RequestError.is_retryable` says,
            i.e. 429 and 5xx responses plus transport failures.
        logger_prefix: Prefix for log messages.

    Raises:
        MaxRetriesExceededError: When all retry attempts are exhausted.

    Note:
        - Exceptions that are not RequestError are never retried
        - DeserializationError is never retried
        - The loop exits on success when the caller breaks or returns
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        retry_on_status_codes: tuple[int, ...] | None = None,
        logger_prefix: str = "",
    ):
        assert max_retries >= 0, f"max_retries must be >= 0, got {max_retries}"
        assert backoff_factor > 0, f"backoff_factor must be > 0, got {backoff_factor}"

        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.retry_on_status_codes = set(retry_on_status_codes) if retry_on_status_codes is not None else None
        self.logger_prefix = logger_prefix

        self._current_attempt = 0
        self._last_exception: Exception | None = None

    def __iter__(self) -> Generator[_RetryContext, None, None]:
        for attempt in range(self.max_retries + 1):
            self._current_attempt = attempt
            yield _RetryContext(self, attempt)

    @property
    def last_exception(self) -> Exception | None:
        return self._last_exception

    def _should_retry(self, exception: Exception) -> bool:
        if not isinstance(exception, RequestError):
            return False

        if self.retry_on_status_codes is not None and isinstance(exception, ResponseCodeError):
            return exception.status in self.retry_on_status_codes

        return exception.is_retryable

    def _prefix(self) -> str:
        return f"{self.logger_prefix} | " if self.logger_prefix else ""

    def _handle_retry(self, exception: Exception) -> None:
        self._last_exception = exception
        sleep_time = self.backoff_factor * (2 ** self._current_attempt)

        logger.warning(
            f"{self._prefix()}Attempt {self._current_attempt + 1}/{self.max_retries + 1} failed: {exception}"
        )
        logger.warning(f"{self._prefix()}Retrying in {sleep_time:.1f}s...")
        sleep_with_jitter(sleep_time)

    def _handle_exhausted(self, exception: Exception) -> None:
        self._last_exception = exception
        logger.error(
            f"{self._prefix()}❌ Max retries ({self.max_retries}) exceeded. Last error: {exception}"
        )
        raise MaxRetriesExceededError(
            message=f"Max retries exceeded. Last error: {exception}",
            last_exception=exception,
        ) from exception


class _RetryContext:
    """
    Context for a single attempt, yielded by `Retrying.__iter__()`.

    On success: exits normally.
    On retryable error: suppresses it so the loop continues.
    On other errors: re-raises.
    On exhausted retries: raises MaxRetriesExceededError.
    """

    def __init__(self, retrying: Retrying, attempt: int):
        self._retrying = retrying
        self.attempt = attempt

    def __enter__(self) -> RetryAttempt:
        return RetryAttempt(
            attempt_number=self.attempt,
            max_retries=self._retrying.max_retries,
        )

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        if exc_val is None:
            return False

        if not isinstance(exc_val, Exception):
            return False

        if not self._retrying._should_retry(exc_val):
            return False

        # Retries disabled: let the original error through unwrapped
        if self._retrying.max_retries == 0:
            return False

        if self.attempt >= self._retrying.max_retries:
            self._retrying._handle_exhausted(exc_val)
            return False

        self._retrying._handle_retry(exc_val)
        return True
