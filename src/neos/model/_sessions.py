"""
Models of running world sessions.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from neos.model._dates import parse_datetime, parse_datetime_or_none
from neos.model._enums import OutputDevice, SessionAccessLevel
from neos.model._ids import RecordId, SessionId, UserId

_MARKUP_PATTERN = re.compile(r"<[^<>]*>")


def strip_markup(text: str) -> str:
    """
    Removes rich text tags such as `<color=red>` or `</b>` from a string.

    Example:
        >>> strip_markup("<b>My</b> <color=#f00>World</color>")
        'My World'
    """
    return _MARKUP_PATTERN.sub("", text)


@dataclass(frozen=True)
class SessionUser:
    """
    A user in a session.

    `id` is None for users that aren't logged in.
    """
    username: str
    id: UserId | None = None
    is_present: bool = False
    output_device: OutputDevice = OutputDevice.UNKNOWN

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "SessionUser":
        user_id = data.get("userID")
        output_device = data.get("outputDevice")
        return cls(
            username=data["username"],
            id=UserId(user_id) if user_id else None,
            is_present=bool(data.get("isPresent", False)),
            output_device=(
                OutputDevice.from_api(output_device)
                if output_device is not None else OutputDevice.UNKNOWN
            ),
        )


@dataclass(frozen=True)
class SessionInfo:
    """
    A running session of a world.

    Attributes:
        name: Session name, possibly containing rich text markup.
        id: The session id.
        world_id: Record of the world being hosted, if known.
        host_id: The hosting user, if logged in.
        urls: URLs to join the session with.
        users: Users currently in the session.
        access_level: Who may join.
        has_ended: Whether the session is over.
    """
    name: str
    id: SessionId
    access_level: SessionAccessLevel
    session_begin_time: datetime
    last_update: datetime
    world_id: RecordId | None = None
    tags: list[str] = field(default_factory=list)
    normalized_session_id: str = ""
    host_id: UserId | None = None
    host_machine_id: str = ""
    host_username: str = ""
    compatibility_hash: str = ""
    neos_version: str = ""
    headless_host: bool = False
    urls: list[str] = field(default_factory=list)
    users: list[SessionUser] = field(default_factory=list)
    thumbnail: str | None = None
    joined_users: int = 0
    active_users: int = 0
    total_joined_users: int = 0
    total_active_users: int = 0
    max_users: int = 0
    mobile_friendly: bool = False
    has_ended: bool = False
    is_valid: bool = True

    def stripped_name(self) -> str:
        """The session name without rich text markup."""
        return strip_markup(self.name)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "SessionInfo":
        world_id = data.get("correspondingWorldId")
        host_id = data.get("hostUserId")
        last_update = parse_datetime_or_none(data.get("lastUpdate"))
        session_begin_time = parse_datetime(data["sessionBeginTime"])
        return cls(
            name=data["name"],
            id=SessionId(data["sessionId"]),
            access_level=SessionAccessLevel.from_api(data["accessLevel"]),
            session_begin_time=session_begin_time,
            last_update=last_update or session_begin_time,
            world_id=_record_id_or_none(world_id),
            tags=list(data.get("tags") or []),
            normalized_session_id=data.get("normalizedSessionId") or "",
            host_id=UserId(host_id) if host_id else None,
            host_machine_id=data.get("hostMachineId") or "",
            host_username=data.get("hostUsername") or "",
            compatibility_hash=data.get("compatibilityHash") or "",
            neos_version=data.get("neosVersion") or "",
            headless_host=bool(data.get("headlessHost", False)),
            urls=list(data.get("sessionURLs") or []),
            users=[SessionUser.from_api(u) for u in data.get("sessionUsers") or []],
            thumbnail=data.get("thumbnail"),
            joined_users=int(data.get("joinedUsers", 0)),
            active_users=int(data.get("activeUsers", 0)),
            total_joined_users=int(data.get("totalJoinedUsers", 0)),
            total_active_users=int(data.get("totalActiveUsers", 0)),
            max_users=int(data.get("maxUsers", 0)),
            mobile_friendly=bool(data.get("mobileFriendly", False)),
            has_ended=bool(data.get("hasEnded", False)),
            is_valid=bool(data.get("isValid", True)),
        )


def _record_id_or_none(value: Any) -> RecordId | None:
    # correspondingWorldId is {"recordId": "R-...", "ownerId": ...}; some
    # responses send the bare record id instead
    if isinstance(value, dict):
        value = value.get("recordId")
    if not value:
        return None
    try:
        return RecordId(value)
    except ValueError:
        return None
