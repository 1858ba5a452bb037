"""
API clients.

The client is a small state machine:

    UnauthenticatedClient --login()/upgrade()--> AuthenticatedClient
    AuthenticatedClient --logout()/downgrade()--> UnauthenticatedClient

Every transition keeps the same RequestDispatcher, so rate limit state and
request spacing are shared by all clients derived from one root client.

Example:
    >>> from neos import UnauthenticatedClient, LoginCredentials, LoginIdentifier
    >>> api = UnauthenticatedClient(user_agent="my-bot/1.0 (me@example.com)")
    >>> api = api.login(LoginCredentials(LoginIdentifier.email("me@example.com"), "hunter2"))
    >>> friends = api.get_friends()
    >>> api = api.logout()
"""

from neos.api_client._any import AnyClient
from neos.api_client._authenticated import AuthenticatedClient
from neos.api_client._base import NeosClient
from neos.api_client._unauthenticated import UnauthenticatedClient

__all__ = [
    "NeosClient",
    "UnauthenticatedClient",
    "AuthenticatedClient",
    "AnyClient",
]
