"""
Data models of the Neos API.

Every model is a frozen dataclass decoded from the API's JSON with
`from_api()`; the ones that are sent back also provide `to_api_payload()`.
"""

from neos.model._auth import (
    Credentials,
    LoginCredentials,
    LoginIdentifier,
    LoginIdentifierKind,
    UserSession,
)
from neos.model._dates import parse_datetime, parse_datetime_or_none
from neos.model._enums import (
    FriendStatus,
    OnlineStatus,
    OutputDevice,
    PublicBanType,
    SessionAccessLevel,
)
from neos.model._groups import Group
from neos.model._ids import GroupId, OwnerId, RecordId, SessionId, UserId, parse_owner_id
from neos.model._messages import Message, MessageType, new_message_id
from neos.model._sessions import SessionInfo, SessionUser, strip_markup
from neos.model._users import Friend, User, UserIdOrUsername, UserProfile, UserStatus

__all__ = [
    # IDs
    "UserId",
    "GroupId",
    "SessionId",
    "RecordId",
    "OwnerId",
    "parse_owner_id",
    # Enums
    "OnlineStatus",
    "FriendStatus",
    "PublicBanType",
    "OutputDevice",
    "SessionAccessLevel",
    # Dates
    "parse_datetime",
    "parse_datetime_or_none",
    # Auth
    "Credentials",
    "UserSession",
    "LoginCredentials",
    "LoginIdentifier",
    "LoginIdentifierKind",
    # Users
    "User",
    "UserProfile",
    "UserStatus",
    "Friend",
    "UserIdOrUsername",
    # Sessions
    "SessionInfo",
    "SessionUser",
    "strip_markup",
    # Messages
    "Message",
    "MessageType",
    "new_message_id",
    # Groups
    "Group",
]
