"""
User related models: accounts, profiles, statuses and friends.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from neos.model._dates import parse_datetime_or_none
from neos.model._enums import FriendStatus, OnlineStatus, OutputDevice, PublicBanType, SessionAccessLevel
from neos.model._ids import OwnerId, SessionId, UserId, parse_owner_id
from neos.model._sessions import SessionInfo


def _optional_bytes(value: Any) -> int | None:
    # -1 means "not known" for storage quotas
    if value is None or value == -1:
        return None
    return int(value)


@dataclass(frozen=True)
class UserIdOrUsername:
    """
    Reference to a user, either by id or by username.

    Example:
        >>> UserIdOrUsername.parse("U-Neos").is_id
        True
        >>> UserIdOrUsername.parse("Neos").is_id
        False
    """
    value: str
    is_id: bool

    @classmethod
    def parse(cls, value: "str | UserIdOrUsername") -> "UserIdOrUsername":
        """Treats values starting with `U-` as ids and everything else as usernames."""
        if isinstance(value, UserIdOrUsername):
            return value
        if isinstance(value, UserId):
            return cls(value=value, is_id=True)
        assert value, "User id or username cannot be empty."
        if value.lower().startswith("u-"):
            return cls(value=UserId(value), is_id=True)
        return cls(value=value, is_id=False)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UserProfile:
    """
    Public profile of a user.

    Attributes:
        icon_url: Asset URL of the profile picture (`neosdb:///...`).
        token_opt_out: Token types the user refuses to receive.
    """
    icon_url: str | None = None
    token_opt_out: list[str] | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "UserProfile | None":
        if not data:
            return None
        return cls(
            icon_url=data.get("iconUrl"),
            token_opt_out=data.get("tokenOptOut"),
        )


@dataclass(frozen=True)
class User:
    """
    A user account, as returned by `users/{id}`.

    Attributes:
        id: The user id.
        username: Display username.
        quota_bytes: Storage quota; None when the API reports -1.
        used_bytes: Storage used; None when the API reports -1.
        two_factor_login: Whether 2FA is enabled (`2fa_login`).
        credits: Balances per currency, only visible for yourself.
    """
    id: UserId
    username: str
    normalized_username: str = ""
    alternate_normalized_names: list[str] | None = None
    email: str | None = None
    registration_date: datetime | None = None
    is_verified: bool = False
    account_ban_expiration: datetime | None = None
    public_ban_expiration: datetime | None = None
    public_ban_type: PublicBanType | None = None
    spectator_ban_expiration: datetime | None = None
    mute_ban_expiration: datetime | None = None
    listing_ban_expiration: datetime | None = None
    quota_bytes: int | None = None
    used_bytes: int | None = None
    is_locked: bool = False
    supress_ban_evasion: bool = False
    two_factor_login: bool = False
    tags: list[str] = field(default_factory=list)
    profile: UserProfile | None = None
    referral_id: str | None = None
    credits: dict[str, float] | None = None
    ncr_deposit_address: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "User":
        ban_type = data.get("publicBanType")
        return cls(
            id=UserId(data["id"]),
            username=data["username"],
            normalized_username=data.get("normalizedUsername") or "",
            alternate_normalized_names=data.get("alternateNormalizedNames"),
            email=data.get("email"),
            registration_date=parse_datetime_or_none(data.get("registrationDate")),
            is_verified=bool(data.get("isVerified", False)),
            account_ban_expiration=parse_datetime_or_none(data.get("accountBanExpiration")),
            public_ban_expiration=parse_datetime_or_none(data.get("publicBanExpiration")),
            public_ban_type=PublicBanType(ban_type) if ban_type else None,
            spectator_ban_expiration=parse_datetime_or_none(data.get("spectatorBanExpiration")),
            mute_ban_expiration=parse_datetime_or_none(data.get("muteBanExpiration")),
            listing_ban_expiration=parse_datetime_or_none(data.get("listingBanExpiration")),
            quota_bytes=_optional_bytes(data.get("quotaBytes")),
            used_bytes=_optional_bytes(data.get("usedBytes")),
            is_locked=bool(data.get("isLocked", False)),
            supress_ban_evasion=bool(data.get("supressBanEvasion", False)),
            two_factor_login=bool(data.get("2fa_login", False)),
            tags=list(data.get("tags") or []),
            profile=UserProfile.from_api(data.get("profile")),
            referral_id=data.get("referralId"),
            credits=data.get("credits"),
            ncr_deposit_address=data.get("NCRdepositAddress"),
        )


@dataclass(frozen=True)
class UserStatus:
    """
    Live status of a user, as seen by their friends.

    Attributes:
        online_status: Online, Away, Busy...
        last_status_change: When the status last changed.
        current_session_id: The session the user is in, if visible.
        active_sessions: Sessions the user is part of.
    """
    online_status: OnlineStatus
    last_status_change: datetime | None = None
    current_session_id: SessionId | None = None
    current_session_access_level: SessionAccessLevel = SessionAccessLevel.PRIVATE
    current_session_hidden: bool = False
    current_hosting: bool = False
    output_device: OutputDevice = OutputDevice.UNKNOWN
    compatibility_hash: str | None = None
    neos_version: str | None = None
    is_mobile: bool = False
    active_sessions: list[SessionInfo] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "UserStatus":
        session_id = data.get("currentSessionId")
        access_level = data.get("currentSessionAccessLevel")
        output_device = data.get("outputDevice")
        return cls(
            online_status=OnlineStatus.from_api(data["onlineStatus"]),
            last_status_change=parse_datetime_or_none(data.get("lastStatusChange")),
            current_session_id=SessionId(session_id) if session_id else None,
            current_session_access_level=(
                SessionAccessLevel.from_api(access_level)
                if access_level is not None else SessionAccessLevel.PRIVATE
            ),
            current_session_hidden=bool(data.get("currentSessionHidden", False)),
            current_hosting=bool(data.get("currentHosting", False)),
            output_device=(
                OutputDevice.from_api(output_device)
                if output_device is not None else OutputDevice.UNKNOWN
            ),
            compatibility_hash=data.get("compatibilityHash"),
            neos_version=data.get("neosVersion"),
            is_mobile=bool(data.get("isMobile", False)),
            active_sessions=[SessionInfo.from_api(s) for s in data.get("activeSessions") or []],
        )


@dataclass(frozen=True)
class Friend:
    """
    An entry of a user's friend list.

    Attributes:
        id: The friend's user id.
        username: The friend's username (`friendUsername`).
        friend_status: Status of the friendship.
        is_accepted: Whether the friend accepted the request.
        status: The friend's live status.
        latest_message_time: Last message exchanged; None if never or unknown.
        owner_id: The user (or group) owning this friend list.
    """
    id: UserId
    username: str
    friend_status: FriendStatus
    is_accepted: bool
    status: UserStatus
    owner_id: OwnerId
    profile: UserProfile | None = None
    latest_message_time: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Friend":
        return cls(
            id=UserId(data["id"]),
            username=data["friendUsername"],
            friend_status=FriendStatus(data["friendStatus"]),
            is_accepted=bool(data.get("isAccepted", False)),
            status=UserStatus.from_api(data["userStatus"]),
            owner_id=parse_owner_id(data["ownerId"]),
            profile=UserProfile.from_api(data.get("profile")),
            latest_message_time=parse_datetime_or_none(data.get("latestMessageTime")),
        )
