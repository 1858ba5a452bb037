"""
Client of either state, for code that doesn't know which one it holds.
"""

from __future__ import annotations

import copy
from typing import Any, override

from neos._http import RawResponse, RequestCustomizer
from neos.api_client._authenticated import AuthenticatedClient
from neos.api_client._base import NeosClient
from neos.api_client._unauthenticated import UnauthenticatedClient


class AnyClient(NeosClient):
    """
    Wraps an authenticated or unauthenticated client.

    Requests are delegated to the wrapped client, so they carry credentials
    only when it is authenticated.

    Example:
        >>> api = AnyClient.from_client(UnauthenticatedClient("my-bot/1.0"))
        >>> api.is_authenticated()
        False
        >>> api.unauthenticated
        UnauthenticatedClient(user_agent='my-bot/1.0')
    """

    def __init__(self, client: AuthenticatedClient | UnauthenticatedClient):
        assert isinstance(client, (AuthenticatedClient, UnauthenticatedClient)), (
            f"Expected an authenticated or unauthenticated client, got {type(client).__name__}"
        )
        super().__init__(client.dispatcher)
        self._client = client

    @classmethod
    def from_client(cls, client: NeosClient) -> AnyClient:
        """Wrap a client; an AnyClient is returned as is."""
        if isinstance(client, AnyClient):
            return client
        return cls(client)  # type: ignore[arg-type]

    @property
    def client(self) -> AuthenticatedClient | UnauthenticatedClient:
        return self._client

    def __copy__(self) -> AnyClient:
        return AnyClient(copy.copy(self._client))

    def __deepcopy__(self, memo: dict[int, Any]) -> AnyClient:
        return self.__copy__()

    def is_authenticated(self) -> bool:
        return isinstance(self._client, AuthenticatedClient)

    def is_unauthenticated(self) -> bool:
        return isinstance(self._client, UnauthenticatedClient)

    @property
    def authenticated(self) -> AuthenticatedClient | None:
        """The wrapped client if authenticated, else None."""
        return self._client if isinstance(self._client, AuthenticatedClient) else None

    @property
    def unauthenticated(self) -> UnauthenticatedClient | None:
        """The wrapped client if unauthenticated, else None."""
        return self._client if isinstance(self._client, UnauthenticatedClient) else None

    @override
    def dispatch(
        self,
        method: str,
        path: str,
        customize: RequestCustomizer | None = None,
    ) -> RawResponse:
        return self._client.dispatch(method, path, customize)

    def __repr__(self) -> str:
        return f"AnyClient({self._client!r})"
