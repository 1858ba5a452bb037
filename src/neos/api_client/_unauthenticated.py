"""
Client without credentials, the entry point of the client state machine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, override

from neos._errors import RequestError, StateTransitionError
from neos._http import RawResponse, RequestCustomizer, RequestDispatcher, Transport
from neos.api_client._base import NeosClient, decode
from neos.model import LoginCredentials, UserSession

if TYPE_CHECKING:
    from neos.api_client._authenticated import AuthenticatedClient

logger = logging.getLogger(__name__)


class UnauthenticatedClient(NeosClient):
    """
    API client that never sends credentials.

    Args:
        user_agent: User-Agent to identify your application with.
            Defaults to NEOS.config.api.user_agent.
        dispatcher: Dispatcher to share with other clients. A new one is
            created when omitted.
        transport: Transport for a newly created dispatcher (ignored when a
            dispatcher is given).

    Example:
        >>> api = UnauthenticatedClient(user_agent="my-bot/1.0 (me@example.com)")
        >>> api.online_user_count()
        1234
        >>> api = api.login(LoginCredentials(LoginIdentifier.username("Me"), "hunter2"))
    """

    def __init__(
        self,
        user_agent: str | None = None,
        *,
        dispatcher: RequestDispatcher | None = None,
        transport: Transport | None = None,
    ):
        if dispatcher is None:
            dispatcher = RequestDispatcher(user_agent=user_agent, transport=transport)
        super().__init__(dispatcher)

    @override
    def dispatch(
        self,
        method: str,
        path: str,
        customize: RequestCustomizer | None = None,
    ) -> RawResponse:
        return self._dispatcher.dispatch(method, path, customize)

    def __copy__(self) -> UnauthenticatedClient:
        return UnauthenticatedClient(dispatcher=self._dispatcher)

    def __deepcopy__(self, memo: dict[int, Any]) -> UnauthenticatedClient:
        return self.__copy__()

    def create_session(self, credentials: LoginCredentials) -> UserSession:
        """
        Create a new user session (`POST userSessions`) without changing state.

        Raises:
            RequestError: If the API rejected the credentials or the request failed.
        """
        payload = credentials.to_api_payload()
        response = self.dispatch("POST", "userSessions", lambda req: req.with_json(payload))
        return decode(response, UserSession.from_api)

    def login(self, credentials: LoginCredentials) -> AuthenticatedClient:
        """
        Log in and return an authenticated client sharing this client's dispatcher.

        Raises:
            StateTransitionError: If logging in failed. Its `client` is this
                unauthenticated client, still usable, and its `error` the
                underlying RequestError.
        """
        try:
            session = self.create_session(credentials)
        except RequestError as e:
            logger.warning(f"⚠️ Login failed: {e}")
            raise StateTransitionError(self, e) from e

        logger.info(f"Logged in as {session.user_id}")
        return self.upgrade(session)

    def upgrade(self, session: UserSession) -> AuthenticatedClient:
        """Attach an existing session, without contacting the API."""
        from neos.api_client._authenticated import AuthenticatedClient

        return AuthenticatedClient(self._dispatcher, session)

    def __repr__(self) -> str:
        return f"UnauthenticatedClient(user_agent={self.user_agent!r})"
