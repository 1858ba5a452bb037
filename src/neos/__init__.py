"""
Typed client for the Neos social platform API.

Every request goes through one shared pipeline that honours the API's rate
limit signals, keeps a minimum interval between requests and turns responses
into typed models or typed errors.

Quick Start:
    >>> from neos import UnauthenticatedClient
    >>> api = UnauthenticatedClient(user_agent="my-bot/1.0 (me@example.com)")
    >>> api.online_user_count()
    1234

Logging in:
    >>> from neos import LoginCredentials, LoginIdentifier, StateTransitionError
    >>> credentials = LoginCredentials(LoginIdentifier.username("Me"), "hunter2")
    >>> try:
    ...     api = api.login(credentials)
    ... except StateTransitionError as e:
    ...     api = e.client  # still unauthenticated
    >>> for friend in api.get_friends():
    ...     print(friend.username, friend.status.online_status)

Global Configuration:
    >>> from neos import NEOS
    >>> NEOS.configure(api={"min_request_interval": 0.5})

Main Classes:
    - UnauthenticatedClient / AuthenticatedClient / AnyClient: API clients.
    - RequestDispatcher: Shared request pipeline (rate limits, spacing, transport).
    - RateLimitTracker / RequestSpacing: Rate limit and spacing state.
    - Transport / RequestsTransport: HTTP transport abstraction.

Errors:
    - RequestError: Base of ResponseCodeError, DeserializationError, OtherRequestError.
    - StateTransitionError: Failed login/logout, carrying the client to keep using.
    - ClientStateError: Use of a downgraded authenticated client.

Retry:
    - Retrying: Opt-in retry loop with exponential backoff.
    - MaxRetriesExceededError: Raised when all retry attempts are exhausted.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("neos-api")

from neos._config import (
    NEOS,
    ApiConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    NeosConfig,
)
from neos._errors import (
    ClientStateError,
    DeserializationError,
    OtherRequestError,
    RequestError,
    ResponseCodeError,
    StateTransitionError,
)
from neos._http import (
    ApiRequest,
    RawResponse,
    RequestDispatcher,
    RequestOutcome,
    RequestsTransport,
    ResponseClassifier,
    Transport,
)
from neos._rate_limit import RateLimitTracker, RequestSpacing
from neos._retry import MaxRetriesExceededError, RetryAttempt, Retrying
from neos.api_client import AnyClient, AuthenticatedClient, NeosClient, UnauthenticatedClient
from neos.model import (
    Credentials,
    Friend,
    FriendStatus,
    Group,
    GroupId,
    LoginCredentials,
    LoginIdentifier,
    Message,
    MessageType,
    OnlineStatus,
    OutputDevice,
    PublicBanType,
    RecordId,
    SessionAccessLevel,
    SessionId,
    SessionInfo,
    SessionUser,
    User,
    UserId,
    UserProfile,
    UserSession,
    UserStatus,
)

__all__ = [
    "__version__",
    # Configuration
    "NEOS",
    "NeosConfig",
    "ApiConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # Clients
    "NeosClient",
    "UnauthenticatedClient",
    "AuthenticatedClient",
    "AnyClient",
    # Request pipeline
    "RequestDispatcher",
    "ApiRequest",
    "RawResponse",
    "Transport",
    "RequestsTransport",
    "ResponseClassifier",
    "RequestOutcome",
    "RateLimitTracker",
    "RequestSpacing",
    # Errors
    "RequestError",
    "ResponseCodeError",
    "DeserializationError",
    "OtherRequestError",
    "StateTransitionError",
    "ClientStateError",
    # Retry
    "Retrying",
    "RetryAttempt",
    "MaxRetriesExceededError",
    # Models
    "UserId",
    "GroupId",
    "SessionId",
    "RecordId",
    "OnlineStatus",
    "FriendStatus",
    "PublicBanType",
    "OutputDevice",
    "SessionAccessLevel",
    "Credentials",
    "UserSession",
    "LoginCredentials",
    "LoginIdentifier",
    "User",
    "UserProfile",
    "UserStatus",
    "Friend",
    "SessionInfo",
    "SessionUser",
    "Message",
    "MessageType",
    "Group",
]
