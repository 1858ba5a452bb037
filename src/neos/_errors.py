"""
Exceptions raised by the neos API client.

Every call that reaches the API either returns a decoded payload or raises a
subclass of RequestError:

- ResponseCodeError: the server answered with a non-2xx status (429 included).
- DeserializationError: the body did not decode into the expected payload.
- OtherRequestError: the request could not be built or sent (network, TLS,
  timeout, serialization of the request body).

State transitions that talk to the API (login, logout) wrap the RequestError
in a StateTransitionError so the caller gets back the client value it can keep
using.

Example:
    >>> try:
    ...     user = client.get_user("Neos")
    ... except ResponseCodeError as e:
    ...     print(f"API answered {e.status}: {e.body}")
    ... except RequestError as e:
    ...     print(f"Request failed: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from neos.api_client import NeosClient


class RequestError(Exception):
    """
    Base class for every error that can happen when communicating with the API.

    Attributes:
        message: Human-readable description of the failure.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_retryable(self) -> bool:
        """Whether retrying the same request later may succeed."""
        return False


class ResponseCodeError(RequestError):
    """
    Raised when the response status code indicates a failure.

    This covers rate limiting (429), authentication failures (401/403),
    missing resources (404) and server errors alike. The body is kept as text
    so the caller can inspect the API's error message.

    Attributes:
        status: The HTTP status code.
        body: The response body decoded as text (lossy for invalid UTF-8).

    Example:
        >>> try:
        ...     client.get_session(session_id)
        ... except ResponseCodeError as e:
        ...     if e.status == 404:
        ...         print("Session is gone")
    """

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Status code {status}")

    @property
    def is_rate_limited(self) -> bool:
        """Return True if the server rate limited the request (HTTP 429)."""
        return self.status == 429

    @property
    def is_retryable(self) -> bool:
        return self.status == 429 or self.status >= 500


class DeserializationError(RequestError):
    """
    Raised when the response body could not be decoded.

    Indicates a mismatch between the API and the models, so it is never retried.
    """

    pass


class OtherRequestError(RequestError):
    """
    Raised when the request could not be built or delivered.

    Wraps transport failures (DNS, TLS, timeouts, connection resets) and
    request-building failures such as a body that can't be serialized to JSON.

    Attributes:
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        return True


class StateTransitionError(Exception):
    """
    Raised when a client state transition that needs the API fails.

    The client the caller should keep using is handed back in `client`:
    the original unauthenticated client when `login()` fails, or the still
    authenticated client when `logout()` fails.

    Attributes:
        client: The client value that remains valid after the failure.
        error: The RequestError that made the transition fail.

    Example:
        >>> try:
        ...     api = api.login(credentials)
        ... except StateTransitionError as e:
        ...     api = e.client  # still unauthenticated, can retry
        ...     print(f"Login failed: {e.error}")
    """

    def __init__(self, client: NeosClient, error: RequestError):
        self.client = client
        self.error = error
        super().__init__(f"{type(client).__name__} state transition failed: {error}")
        self.__cause__ = error


class ClientStateError(RuntimeError):
    """Raised when using an authenticated client whose credentials were discarded."""

    pass


def error_from_response(status: int, body: bytes | str | Any) -> ResponseCodeError:
    """Build a ResponseCodeError from a raw status and body."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return ResponseCodeError(status=status, body=str(body) if body is not None else "")
