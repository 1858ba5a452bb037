"""
Rate limiting components for the neos API client.

The API signals rate limits in two ways:

- HTTP 429 responses, optionally with an `X-Rate-Limit-Reset` timestamp or a
  `Retry-After` number of seconds.
- An `X-Rate-Limit-Remaining` counter on regular responses; when it drops to
  zero the next request should wait for the reset.

This module keeps that signal on the client side:

    - RateLimitTracker: The shared "do not send before" deadline, updated from
      response headers and honoured before each request.
    - RequestSpacing: The minimum interval between two consecutive requests.

Both are thread-safe and meant to be shared (not copied) between every client
derived from the same root client.

Example:
    >>> tracker = RateLimitTracker(default_delay=2.0)
    >>> tracker.apply_from_response({"Retry-After": "5"}, status=429)
    True
    >>> tracker.wait_if_blocked()  # sleeps ~5 seconds
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from requests.structures import CaseInsensitiveDict

from neos._utils import parse_iso_datetime

logger = logging.getLogger(__name__)

RATE_LIMIT_RESET_HEADER = "X-Rate-Limit-Reset"
RATE_LIMIT_REMAINING_HEADER = "X-Rate-Limit-Remaining"
RETRY_AFTER_HEADER = "Retry-After"

DEFAULT_RATE_LIMIT_DELAY = 2.0
DEFAULT_MIN_REQUEST_INTERVAL = 0.1

# Longest wait time.sleep() accepts on this platform
MAX_RATE_LIMIT_DELAY = threading.TIMEOUT_MAX

Clock = Callable[[], float]
Sleeper = Callable[[float], None]


# =============================================================================
# Header Parsing
# =============================================================================


def parse_reset_header(value: str | None) -> float | None:
    """
    Parse the `X-Rate-Limit-Reset` header into seconds from now.

    Args:
        value: The raw header value, an ISO 8601 timestamp.

    Returns:
        Seconds until the reset (negative if already in the past),
        or None if the header is missing or malformed or too far in the future.
    """
    if not value:
        return None
    try:
        reset_at = parse_iso_datetime(value)
    except ValueError:
        logger.debug(f"Ignoring malformed {RATE_LIMIT_RESET_HEADER} header: {value!r}")
        return None
    return _bounded_delay((reset_at - datetime.now(UTC)).total_seconds(), RATE_LIMIT_RESET_HEADER, value)


def parse_retry_after_header(value: str | None) -> float | None:
    """
    Parse the `Retry-After` header as a number of seconds.

    HTTP-date values are not supported and are treated as malformed.

    Returns:
        The number of seconds, or None if the header is missing or malformed
        or too large.
    """
    if not value:
        return None
    try:
        seconds = float(int(value.strip()))
    except (ValueError, OverflowError):
        logger.debug(f"Ignoring malformed {RETRY_AFTER_HEADER} header: {value!r}")
        return None
    return _bounded_delay(seconds, RETRY_AFTER_HEADER, value)


def _bounded_delay(seconds: float, header: str, value: str) -> float | None:
    if seconds > MAX_RATE_LIMIT_DELAY:
        logger.debug(f"Ignoring out of range {header} header: {value!r}")
        return None
    return seconds


def parse_remaining_header(value: str | None) -> int | None:
    """
    Parse the `X-Rate-Limit-Remaining` header.

    Returns:
        The remaining request count, or None if missing or malformed.
    """
    if not value:
        return None
    try:
        remaining = int(value.strip())
    except ValueError:
        return None
    return remaining if remaining >= 0 else None


# =============================================================================
# Rate Limit Tracker
# =============================================================================


class RateLimitTracker:
    """
    Shared, thread-safe "do not send before" deadline.

    The deadline is derived from response headers, preferring the explicit
    reset timestamp, then `Retry-After`, then `default_delay`. Every dispatch
    calls `wait_if_blocked()` first, which sleeps the calling thread until the
    deadline has passed.

    Updates are last-write-wins: the most recent response is authoritative,
    even when it is more permissive than an earlier one.

    Note:
        The sleep is not cancellable and has no upper bound. Use `remaining()`
        to decide whether to dispatch at all.

    Args:
        default_delay: Seconds to wait when a rate limit carries no usable hint.
        clock: Monotonic clock, injectable for tests.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        default_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ):
        assert default_delay is not None, "default_delay cannot be None."
        assert default_delay >= 0, "default_delay must be >= 0."

        self.default_delay = default_delay
        self._clock = clock
        self._sleep = sleep

        self._blocked_until: float | None = None
        self._lock = threading.Lock()

    @property
    def blocked_until(self) -> float | None:
        """The deadline on the tracker's clock, or None when not blocked."""
        with self._lock:
            return self._blocked_until

    def remaining(self) -> float:
        """Seconds left before requests may be sent again (0.0 when not blocked)."""
        with self._lock:
            deadline = self._blocked_until
        if deadline is None:
            return 0.0
        return max(0.0, deadline - self._clock())

    def is_blocked(self) -> bool:
        """Return True if the deadline lies in the future."""
        return self.remaining() > 0

    def wait_if_blocked(self) -> None:
        """
        Sleep until the rate limit deadline has passed, then clear it.

        If another response moves the deadline while this thread sleeps, the
        thread keeps sleeping until the new deadline has passed too.
        """
        while True:
            with self._lock:
                deadline = self._blocked_until
                if deadline is None:
                    return
                wait_time = deadline - self._clock()
                if wait_time <= 0:
                    self._blocked_until = None
                    return

            logger.warning(f"⏳ API rate limited, sleeping: {wait_time * 1000:.0f}ms")
            # Sleep outside the lock so other clients can still record responses
            self._sleep(wait_time)

    def block_for(self, seconds: float) -> None:
        """Set the deadline to `seconds` from now, replacing any previous one."""
        seconds = min(max(0.0, seconds), MAX_RATE_LIMIT_DELAY)
        deadline = self._clock() + seconds
        with self._lock:
            self._blocked_until = deadline
        logger.debug(f"Rate limit deadline set {seconds:.2f}s from now")

    def clear(self) -> None:
        """Forget any pending deadline."""
        with self._lock:
            self._blocked_until = None

    def delay_from_headers(self, headers: Mapping[str, str]) -> float:
        """
        Derive how long to wait from rate limit headers.

        Args:
            headers: Response headers (looked up case-insensitively).

        Returns:
            Seconds to wait; falls back to `default_delay` when neither the
            reset timestamp nor `Retry-After` is usable.
        """
        headers = CaseInsensitiveDict(headers)

        reset_in = parse_reset_header(headers.get(RATE_LIMIT_RESET_HEADER))
        if reset_in is not None:
            return reset_in

        retry_after = parse_retry_after_header(headers.get(RETRY_AFTER_HEADER))
        if retry_after is not None:
            return retry_after

        return self.default_delay

    def apply_from_response(self, headers: Mapping[str, str], status: int) -> bool:
        """
        Update the deadline from a response.

        - 429: the deadline is always set (headers or default delay).
        - `X-Rate-Limit-Remaining: 0`: the deadline is set the same way, so the
          next request waits, without this response being a failure.
        - Otherwise nothing changes.

        Args:
            headers: Response headers.
            status: Response status code.

        Returns:
            True if the deadline was updated.
        """
        headers = CaseInsensitiveDict(headers)

        if status == 429:
            self.block_for(self.delay_from_headers(headers))
            return True

        remaining = parse_remaining_header(headers.get(RATE_LIMIT_REMAINING_HEADER))
        if remaining == 0:
            self.block_for(self.delay_from_headers(headers))
            return True

        return False


# =============================================================================
# Request Spacing
# =============================================================================


class RequestSpacing:
    """
    Enforces a minimum interval between the start of consecutive requests.

    Each caller reserves the next free slot under the lock (at least
    `min_interval` after the previous reservation) and then sleeps outside
    the lock until its slot. Concurrent callers are thus spread out by the
    floor, in lock acquisition order, without holding the lock while sleeping.

    Args:
        min_interval: Minimum seconds between two request starts.
        clock: Monotonic clock, injectable for tests.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_REQUEST_INTERVAL,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ):
        assert min_interval is not None, "min_interval cannot be None."
        assert min_interval >= 0, "min_interval must be >= 0."

        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep

        self._last_request: float | None = None
        self._lock = threading.Lock()

    @property
    def last_request(self) -> float | None:
        """When the last request was (or will be) sent, on the spacing clock."""
        with self._lock:
            return self._last_request

    def wait_for_turn(self) -> float:
        """
        Block until the calling thread may send its request.

        Returns:
            The slot (clock time) reserved for this request.
        """
        with self._lock:
            now = self._clock()
            if self._last_request is None:
                slot = now
            else:
                slot = max(now, self._last_request + self.min_interval)
            self._last_request = slot

        wait_time = slot - now
        if wait_time > 0:
            self._sleep(wait_time)
        return slot
