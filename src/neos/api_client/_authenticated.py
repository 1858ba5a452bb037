"""
Client holding a user session, sending `Authorization: neos {user_id}:{token}`.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, override

from neos._errors import ClientStateError, RequestError, StateTransitionError
from neos._http import ApiRequest, RawResponse, RequestCustomizer, RequestDispatcher, Transport
from neos._utils import format_iso_datetime
from neos.api_client._base import NeosClient, decode_list
from neos.api_client._unauthenticated import UnauthenticatedClient
from neos.model import Credentials, Friend, FriendStatus, Message, UserId, UserSession

logger = logging.getLogger(__name__)


class AuthenticatedClient(NeosClient):
    """
    API client acting on behalf of a logged in user.

    Obtained from `UnauthenticatedClient.login()` / `.upgrade()`, or from a
    stored session with `AuthenticatedClient.from_session()`.

    Once `downgrade()` (or a successful `logout()`) has been called, the
    credentials are discarded and any further request raises ClientStateError.

    Args:
        dispatcher: Dispatcher shared with the client this one derives from.
        session: The user session to authenticate with.
    """

    def __init__(self, dispatcher: RequestDispatcher, session: UserSession):
        assert session is not None, "Session cannot be None."
        super().__init__(dispatcher)
        self._session: UserSession | None = session
        self._lock = threading.Lock()

    @classmethod
    def from_session(
        cls,
        session: UserSession,
        user_agent: str | None = None,
        *,
        transport: Transport | None = None,
    ) -> AuthenticatedClient:
        """
        Create a root authenticated client from a stored session.

        Example:
            >>> session = UserSession.from_api(json.load(open("session.json")))
            >>> api = AuthenticatedClient.from_session(session, "my-bot/1.0")
        """
        dispatcher = RequestDispatcher(user_agent=user_agent, transport=transport)
        return cls(dispatcher, session)

    @property
    def session(self) -> UserSession:
        """
        The user session.

        Raises:
            ClientStateError: If the client was downgraded.
        """
        with self._lock:
            session = self._session
        if session is None:
            raise ClientStateError("Client was downgraded; its credentials were discarded.")
        return session

    @property
    def credentials(self) -> Credentials:
        return self.session.credentials

    @property
    def user_id(self) -> UserId:
        return self.session.user_id

    def is_active(self) -> bool:
        """Return False once the client has been downgraded."""
        with self._lock:
            return self._session is not None

    @override
    def dispatch(
        self,
        method: str,
        path: str,
        customize: RequestCustomizer | None = None,
    ) -> RawResponse:
        auth_header = self.credentials.auth_header()

        def authenticate(request: ApiRequest) -> ApiRequest:
            request.with_header("Authorization", auth_header)
            if customize is not None:
                return customize(request) or request
            return request

        return self._dispatcher.dispatch(method, path, authenticate)

    def __copy__(self) -> AuthenticatedClient:
        return AuthenticatedClient(self._dispatcher, self.session)

    def __deepcopy__(self, memo: dict[int, Any]) -> AuthenticatedClient:
        return self.__copy__()

    # =========================================================================
    # State transitions
    # =========================================================================

    def downgrade(self) -> UnauthenticatedClient:
        """
        Drop the credentials, without contacting the API.

        The returned client shares this client's dispatcher. This client can't
        send requests anymore. Calling it again is harmless.
        """
        with self._lock:
            self._session = None
        return UnauthenticatedClient(dispatcher=self._dispatcher)

    def logout(self) -> UnauthenticatedClient:
        """
        End the session on the API (`DELETE userSessions/{user_id}`), then downgrade.

        Raises:
            StateTransitionError: If the API call failed. Its `client` is this
                authenticated client, still usable.
        """
        user_id = self.user_id
        try:
            self.dispatch("DELETE", f"userSessions/{user_id}")
        except RequestError as e:
            logger.warning(f"⚠️ Logout of {user_id} failed: {e}")
            raise StateTransitionError(self, e) from e

        logger.info(f"Logged out {user_id}")
        return self.downgrade()

    def extend_session(self) -> None:
        """Extend the session's expiration (`PATCH userSessions`)."""
        self.dispatch("PATCH", "userSessions")

    # =========================================================================
    # Friends
    # =========================================================================

    def get_friends(self, last_status_update: datetime | None = None) -> list[Friend]:
        """Friends of the logged in user."""
        return self.get_friends_for(self.user_id, last_status_update)

    def get_friends_for(
        self,
        user: UserId | str,
        last_status_update: datetime | None = None,
    ) -> list[Friend]:
        """
        Friends of a user.

        Args:
            user: Whose friends to list.
            last_status_update: Only return friends whose status changed after this time.
        """
        def customize(request: ApiRequest) -> None:
            if last_status_update is not None:
                request.with_param("lastStatusUpdate", format_iso_datetime(last_status_update))

        response = self.dispatch("GET", f"users/{UserId(user)}/friends", customize)
        return decode_list(response, Friend.from_api)

    def add_friend(self, user_id: UserId | str) -> None:
        """Send a friend request, or accept one."""
        self._update_friend(user_id, "PUT", FriendStatus.ACCEPTED)

    def remove_friend(self, user_id: UserId | str) -> None:
        self._update_friend(user_id, "DELETE", FriendStatus.IGNORED)

    def _update_friend(self, user_id: UserId | str, method: str, status: FriendStatus) -> None:
        me = self.user_id
        # Partial friend entry
        body = {"ownerId": me, "friendStatus": status.value}
        self.dispatch(
            method,
            f"users/{me}/friends/{UserId(user_id)}",
            lambda req: req.with_json(body),
        )

    # =========================================================================
    # Messages
    # =========================================================================

    def send_message(self, message: Message) -> None:
        """Send a message to `message.recipient_id`."""
        payload = message.to_api_payload()
        self.dispatch(
            "POST",
            f"users/{message.recipient_id}/messages",
            lambda req: req.with_json(payload),
        )

    def get_messages(
        self,
        max_amount: int = 100,
        unread_only: bool = False,
        from_time: datetime | None = None,
        with_user: UserId | str | None = None,
    ) -> list[Message]:
        """
        Messages of the logged in user, newest first.

        Args:
            max_amount: Maximum number of messages to return.
            unread_only: Only return unread messages.
            from_time: Only return messages sent after this time.
            with_user: Only return messages exchanged with this user.
        """
        assert max_amount > 0, "max_amount must be greater than 0."

        def customize(request: ApiRequest) -> None:
            if from_time is not None:
                request.with_param("fromTime", format_iso_datetime(from_time))
            if with_user is not None:
                request.with_param("user", UserId(with_user))
            if unread_only:
                request.with_param("unread", True)
            request.with_param("maxItems", max_amount)

        response = self.dispatch("GET", f"users/{self.user_id}/messages", customize)
        return decode_list(response, Message.from_api)

    def __repr__(self) -> str:
        with self._lock:
            session = self._session
        user = session.user_id if session is not None else "<downgraded>"
        return f"AuthenticatedClient(user_id={user!r}, user_agent={self.user_agent!r})"
