"""
Enumerations shared by the API models.

`OutputDevice` and `SessionAccessLevel` are sent by the API either by name or
by their numeric value, depending on the endpoint; `from_api()` accepts both.
"""

from enum import Enum, IntEnum
from typing import Any


class OnlineStatus(Enum):
    """
    Online status of a user, as shown to their friends.

    Attributes:
        color: (R, G, B) color estimated from the official client UI.
    """
    ONLINE = "Online"
    INVISIBLE = "Invisible"
    AWAY = "Away"
    BUSY = "Busy"
    OFFLINE = "Offline"

    @property
    def color(self) -> tuple[int, int, int]:
        return _ONLINE_STATUS_COLORS[self]

    @classmethod
    def from_api(cls, value: Any) -> "OnlineStatus":
        return cls(value)


_ONLINE_STATUS_COLORS = {
    OnlineStatus.ONLINE: (0, 255, 0),
    OnlineStatus.INVISIBLE: (127, 127, 127),
    OnlineStatus.AWAY: (255, 200, 0),
    OnlineStatus.BUSY: (255, 0, 0),
    OnlineStatus.OFFLINE: (127, 127, 127),
}


class FriendStatus(Enum):
    """Status of a friendship, from the point of view of its owner."""
    NONE = "None"
    SEARCH_RESULT = "SearchResult"
    REQUESTED = "Requested"
    IGNORED = "Ignored"
    BLOCKED = "Blocked"
    ACCEPTED = "Accepted"


class PublicBanType(Enum):
    """Kind of public ban applied to an account."""
    STANDARD = "Standard"
    SOFT = "Soft"
    HARD = "Hard"


class _NamedIntEnum(IntEnum):
    """IntEnum decoded from either its name or its integer value."""

    @classmethod
    def from_api(cls, value: Any) -> Any:
        """
        Decode a value sent as a name (`"VR"`) or a number (`3`).

        Raises:
            ValueError: If the value matches no member.
        """
        if isinstance(value, bool):
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            if value.strip().lstrip("-").isdigit():
                return cls(int(value))
            for member in cls:
                if member.api_name.lower() == value.strip().lower():
                    return member
        raise ValueError(f"Invalid {cls.__name__}: {value!r}")

    @property
    def api_name(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


class OutputDevice(_NamedIntEnum):
    """Device a user is running the client on."""
    UNKNOWN = 0
    HEADLESS = 1
    SCREEN = 2
    VR = 3
    CAMERA = 4

    @property
    def api_name(self) -> str:
        return "VR" if self is OutputDevice.VR else super().api_name


class SessionAccessLevel(_NamedIntEnum):
    """Who is allowed to join a session."""
    PRIVATE = 0
    LAN = 1
    FRIENDS = 2
    FRIENDS_OF_FRIENDS = 3
    REGISTERED_USERS = 4
    ANYONE = 5

    @property
    def api_name(self) -> str:
        return "LAN" if self is SessionAccessLevel.LAN else super().api_name
