"""
Base class of every API client variant.

The endpoints that need no authentication live here, so they are available
on unauthenticated, authenticated and "any" clients alike. Subclasses only
decide how a request is dispatched (with or without credentials).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from neos._errors import DeserializationError
from neos._http import RawResponse, RequestCustomizer, RequestDispatcher
from neos.model import Group, GroupId, SessionId, SessionInfo, User, UserId, UserIdOrUsername, UserStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def decode(response: RawResponse, decoder: Callable[[Any], T]) -> T:
    """
    Decode a successful response body with a model decoder.

    Raises:
        DeserializationError: If the body isn't JSON or doesn't fit the model.
    """
    data = response.json()
    try:
        return decoder(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise DeserializationError(
            f"Unexpected response payload from {response.url or 'the API'}: {e!r}"
        ) from e


def decode_list(response: RawResponse, decoder: Callable[[Any], T]) -> list[T]:
    """Decode a JSON array body, each element with `decoder`."""

    def decode_items(data: Any) -> list[T]:
        if not isinstance(data, list):
            raise TypeError(f"expected a JSON array, got {type(data).__name__}")
        return [decoder(item) for item in data]

    return decode(response, decode_items)


def _count_from_string(data: Any) -> int:
    # The stats endpoints answer with a JSON string holding the number
    if isinstance(data, bool):
        raise TypeError("expected a number")
    count = int(data)
    if count < 0:
        raise ValueError(f"negative count: {count}")
    return count


class NeosClient(ABC):
    """
    Abstract API client.

    All clients derived from the same root client share one RequestDispatcher,
    and therefore one rate limit state and request spacing.

    Args:
        dispatcher: The dispatcher used to send requests.
    """

    def __init__(self, dispatcher: RequestDispatcher):
        assert dispatcher is not None, "Dispatcher cannot be None."
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def user_agent(self) -> str:
        return self._dispatcher.user_agent

    @abstractmethod
    def dispatch(
        self,
        method: str,
        path: str,
        customize: RequestCustomizer | None = None,
    ) -> RawResponse:
        """
        Send a request through the shared dispatcher.

        Raises:
            RequestError: If the request failed (see RequestDispatcher.dispatch).
        """
        pass

    # =========================================================================
    # Endpoints available without authentication
    # =========================================================================

    def ping(self) -> None:
        """Check that the API is reachable."""
        self.dispatch("GET", "testing/ping")

    def online_user_count(self) -> int:
        """Number of users currently online."""
        return decode(self.dispatch("GET", "stats/onlineUsers"), _count_from_string)

    def online_instance_count(self) -> int:
        """Number of client instances currently online."""
        return decode(self.dispatch("GET", "stats/onlineInstances"), _count_from_string)

    def get_sessions(self) -> list[SessionInfo]:
        """Public sessions currently running."""
        return decode_list(self.dispatch("GET", "sessions"), SessionInfo.from_api)

    def get_session(self, session_id: SessionId | str) -> SessionInfo:
        return decode(
            self.dispatch("GET", f"sessions/{SessionId(session_id)}"),
            SessionInfo.from_api,
        )

    def get_user(self, user: UserIdOrUsername | UserId | str) -> User:
        """
        Get a user by id or by username.

        Values starting with `U-` are looked up as ids, anything else as a
        username.

        Example:
            >>> client.get_user("U-Neos").username
            'Neos'
            >>> client.get_user("Neos").id
            UserId('u-neos')
        """
        target = UserIdOrUsername.parse(user)
        response = self.dispatch(
            "GET",
            f"users/{target.value}",
            lambda req: req.with_param("byUsername", not target.is_id),
        )
        return decode(response, User.from_api)

    def search_users(self, name: str) -> list[User]:
        """Search users whose username contains `name`."""
        assert name, "Search name cannot be empty."
        response = self.dispatch("GET", "users", lambda req: req.with_param("name", name))
        return decode_list(response, User.from_api)

    def get_user_status(self, user_id: UserId | str) -> UserStatus:
        return decode(
            self.dispatch("GET", f"users/{UserId(user_id)}/status"),
            UserStatus.from_api,
        )

    def get_group(self, group_id: GroupId | str) -> Group:
        return decode(
            self.dispatch("GET", f"groups/{GroupId(group_id)}"),
            Group.from_api,
        )
