"""
Request execution pipeline for the neos API client.

Every API call goes through a single RequestDispatcher, which:

1. Waits out any rate limit deadline (RateLimitTracker).
2. Enforces the minimum spacing between requests (RequestSpacing).
3. Builds the request with the standard headers and lets the caller
   customize it (auth header, query parameters, JSON body).
4. Sends it through a Transport (RequestsTransport by default).
5. Classifies the response (ResponseClassifier), updating the rate limit
   state and raising ResponseCodeError for failures.

Example:
    >>> from neos._http import RequestDispatcher
    >>> dispatcher = RequestDispatcher(user_agent="my-bot/1.0 (contact@example.com)")
    >>> response = dispatcher.dispatch("GET", "testing/ping")
    >>> response.status_code
    200

With a customizer:
    >>> response = dispatcher.dispatch(
    ...     "GET", "users",
    ...     lambda req: req.with_param("name", "Neos"),
    ... )
    >>> users = response.json()
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self, override

import requests
from requests.structures import CaseInsensitiveDict

from neos._errors import (
    DeserializationError,
    OtherRequestError,
    RequestError,
    error_from_response,
)
from neos._rate_limit import RateLimitTracker, RequestSpacing

logger = logging.getLogger(__name__)


# =============================================================================
# Request / Response
# =============================================================================


@dataclass
class ApiRequest:
    """
    An outgoing API request under construction.

    Customizers passed to `RequestDispatcher.dispatch()` receive this object
    after the standard headers are set and may add headers, query parameters
    or a JSON body. The `with_*` helpers return the request itself so they
    can be chained.

    Attributes:
        method: HTTP method (GET, POST, ...).
        url: Absolute URL.
        headers: Request headers.
        params: Query parameters.
        json_body: JSON-serializable body, or None for no body.
        timeout: Timeout in seconds for the whole request.
        max_redirects: Maximum number of redirects to follow.

    Example:
        >>> request.with_header("Authorization", "neos U-x:token").with_param("maxItems", 10)
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    timeout: float = 120
    max_redirects: int = 5

    def with_header(self, name: str, value: str) -> Self:
        """Set a header, replacing any existing value."""
        self.headers[name] = value
        return self

    def with_param(self, name: str, value: Any) -> Self:
        """Add a query parameter. Booleans are sent as `true`/`false`."""
        if isinstance(value, bool):
            value = str(value).lower()
        self.params[name] = str(value)
        return self

    def with_json(self, body: Any) -> Self:
        """Set the JSON body."""
        self.json_body = body
        return self

    def encoded_body(self) -> bytes | None:
        """
        Serialize the JSON body.

        Raises:
            OtherRequestError: If the body is not JSON serializable.
        """
        if self.json_body is None:
            return None
        try:
            return json.dumps(self.json_body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise OtherRequestError(f"Failed to serialize request body: {e}", cause=e) from e

    def __repr__(self) -> str:
        # Never leak the Authorization header
        headers = {k: ("*****" if k.lower() == "authorization" else v) for k, v in self.headers.items()}
        return f"ApiRequest(method={self.method!r}, url={self.url!r}, headers={headers!r}, params={self.params!r})"


RequestCustomizer = Callable[[ApiRequest], "ApiRequest | None"]


@dataclass(frozen=True)
class RawResponse:
    """
    A response received from the API, before decoding into a model.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers (case-insensitive).
        body: Raw body bytes.
        url: The final URL, after redirects.
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            object.__setattr__(self, "headers", CaseInsensitiveDict(self.headers))

    @classmethod
    def from_requests(cls, response: requests.Response) -> RawResponse:
        """Build a RawResponse from a `requests.Response`."""
        return cls(
            status_code=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            body=response.content or b"",
            url=response.url or "",
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def text(self) -> str:
        """
        Decode the body as UTF-8.

        Raises:
            DeserializationError: If the body is not valid UTF-8.
        """
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError(f"Invalid UTF-8 in response body: {e}") from e

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            DeserializationError: If the body is not valid UTF-8 JSON.
        """
        text = self.text()
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DeserializationError(f"Invalid JSON in response body: {e}") from e


# =============================================================================
# Transport
# =============================================================================


class Transport(ABC):
    """
    Abstract base class for the component that actually talks HTTP.

    Implementations must raise OtherRequestError for any failure to deliver
    the request or receive the response. Non-2xx responses are NOT failures
    at this level.
    """

    @abstractmethod
    def send(self, request: ApiRequest, body: bytes | None) -> RawResponse:
        """
        Send the request and return the raw response.

        Args:
            request: The fully customized request.
            body: The encoded body, or None.

        Raises:
            OtherRequestError: On network, TLS, timeout or protocol failures.
        """
        pass


class RequestsTransport(Transport):
    """
    Transport backed by a `requests.Session`.

    The session gives connection pooling; the redirect cap comes from each
    request's `max_redirects`.

    Args:
        session: Optional session to use (a new one is created otherwise).
    """

    def __init__(self, session: requests.Session | None = None):
        self._session = session or requests.Session()

    @override
    def send(self, request: ApiRequest, body: bytes | None) -> RawResponse:
        assert request.url, "URL cannot be empty."
        assert request.timeout is not None, "Timeout cannot be None."
        assert request.timeout > 0, "Timeout must be greater than 0."

        self._session.max_redirects = request.max_redirects
        try:
            response = self._session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                params=request.params or None,
                data=body,
                timeout=request.timeout,
                allow_redirects=request.max_redirects > 0,
            )
        except requests.RequestException as e:
            logger.warning(f"{request.method} {request.url} failed: {e}")
            raise OtherRequestError(f"{type(e).__name__}: {e}", cause=e) from e

        return RawResponse.from_requests(response)

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()


# =============================================================================
# Response Classification
# =============================================================================


class RequestOutcome(Enum):
    """
    Domain-level outcome of a response.

    Attributes:
        SUCCESS: 2xx response.
        RATE_LIMITED: 429 response, retryable once the deadline has passed.
        HARD_ERROR: Any other non-2xx response.
    """

    SUCCESS = "SUCCESS"
    RATE_LIMITED = "RATE_LIMITED"
    HARD_ERROR = "HARD_ERROR"


class ResponseClassifier:
    """
    Turns raw responses into outcomes and updates the rate limit state.

    Args:
        tracker: The rate limit tracker to update from response headers.
    """

    def __init__(self, tracker: RateLimitTracker):
        assert tracker is not None, "tracker cannot be None."
        self._tracker = tracker

    @staticmethod
    def classify(response: RawResponse) -> RequestOutcome:
        """Classify a response without side effects."""
        if response.status_code == 429:
            return RequestOutcome.RATE_LIMITED
        if response.is_success:
            return RequestOutcome.SUCCESS
        return RequestOutcome.HARD_ERROR

    def check(self, response: RawResponse) -> RawResponse:
        """
        Update the rate limit state from the response and fail on errors.

        Args:
            response: The raw response.

        Returns:
            The same response when it is a success.

        Raises:
            ResponseCodeError: For 429 and any other non-2xx status.
        """
        self._tracker.apply_from_response(response.headers, response.status_code)

        outcome = self.classify(response)
        if outcome is RequestOutcome.SUCCESS:
            return response

        if outcome is RequestOutcome.RATE_LIMITED:
            logger.warning(
                f"⚠️ {response.url or 'request'} was rate limited (HTTP 429). "
                f"Next request waits {self._tracker.remaining():.1f}s."
            )
        raise error_from_response(response.status_code, response.body)


# =============================================================================
# Dispatcher
# =============================================================================


class RequestDispatcher:
    """
    Single choke-point for every outbound API call.

    A dispatcher owns the user agent, the rate limit tracker and the request
    spacing. Clients derived from the same root client share one dispatcher
    instance, so they all observe each other's rate limit signals. Copying a
    dispatcher (shallow or deep) returns the same instance.

    Args:
        user_agent: User-Agent header value. Defaults to NEOS.config.api.user_agent.
        base_url: API base URL. Defaults to NEOS.config.api.base_url.
        transport: HTTP transport. Defaults to a new RequestsTransport.
        tracker: Rate limit tracker. Defaults to one using the configured delay.
        spacing: Request spacing. Defaults to one using the configured interval.
        request_timeout: Per-request timeout in seconds.
        max_redirects: Maximum redirects to follow.

    Example:
        >>> dispatcher = RequestDispatcher(user_agent="my-bot/1.0")
        >>> dispatcher.dispatch("GET", "stats/onlineUsers").json()
        '1234'
    """

    def __init__(
        self,
        user_agent: str | None = None,
        base_url: str | None = None,
        transport: Transport | None = None,
        tracker: RateLimitTracker | None = None,
        spacing: RequestSpacing | None = None,
        request_timeout: float | None = None,
        max_redirects: int | None = None,
    ):
        from neos._config import NEOS

        api_config = NEOS.config.api

        self.user_agent = user_agent or api_config.user_agent
        self.base_url = (base_url or api_config.base_url).rstrip("/") + "/"
        self.request_timeout = request_timeout or api_config.request_timeout
        self.max_redirects = max_redirects if max_redirects is not None else api_config.max_redirects

        assert self.user_agent, "User agent cannot be empty."
        assert self.request_timeout > 0, "request_timeout must be greater than 0."
        assert self.max_redirects >= 0, "max_redirects must be >= 0."

        self.transport = transport or RequestsTransport()
        self.tracker = tracker or RateLimitTracker(default_delay=api_config.default_rate_limit_delay)
        self.spacing = spacing or RequestSpacing(min_interval=api_config.min_request_interval)
        self.classifier = ResponseClassifier(self.tracker)

    def __copy__(self) -> RequestDispatcher:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> RequestDispatcher:
        return self

    def url_for(self, path: str) -> str:
        """Join the base URL and an API path."""
        return self.base_url + path.lstrip("/")

    def build_request(self, method: str, path: str) -> ApiRequest:
        """Build a request with the standard headers and limits applied."""
        # requests offers no limit on response header or status line size
        return ApiRequest(
            method=str(method).upper(),
            url=self.url_for(path),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": self.user_agent,
            },
            timeout=self.request_timeout,
            max_redirects=self.max_redirects,
        )

    def dispatch(
        self,
        method: str,
        path: str,
        customize: RequestCustomizer | None = None,
    ) -> RawResponse:
        """
        Send a request to the API.

        Args:
            method: HTTP method.
            path: Path relative to the base URL (may include a query string).
            customize: Optional callable that adjusts the request before sending.
                It may mutate the request and return None, or return a request.

        Returns:
            The successful (2xx) raw response.

        Raises:
            ResponseCodeError: If the API answered with a non-2xx status.
            OtherRequestError: If the customizer failed, the body could not be
                serialized, or the transport failed.
        """
        self.tracker.wait_if_blocked()
        self.spacing.wait_for_turn()

        request = self.build_request(method, path)
        if customize is not None:
            try:
                request = customize(request) or request
            except RequestError:
                raise
            except Exception as e:
                raise OtherRequestError(f"Failed to build request: {e}", cause=e) from e
        body = request.encoded_body()

        logger.debug(f"{request.method} {request.url}")
        response = self.transport.send(request, body)
        logger.debug(f"{request.method} {request.url} -> {response.status_code}")

        return self.classifier.check(response)
