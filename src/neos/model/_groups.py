"""Groups of users that can own worlds and storage."""

from dataclasses import dataclass
from typing import Any

from neos.model._ids import GroupId, UserId


@dataclass(frozen=True)
class Group:
    """
    A group, as returned by `groups/{id}`.

    Attributes:
        id: The group id.
        admin_id: The administrating user (`adminUserId`).
        name: Group name.
        quota_bytes: Storage quota of the group.
        used_bytes: Storage used by the group.
    """
    id: GroupId
    admin_id: UserId
    name: str
    quota_bytes: int = 0
    used_bytes: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Group":
        return cls(
            id=GroupId(data["id"]),
            admin_id=UserId(data["adminUserId"]),
            name=data["name"],
            quota_bytes=int(data.get("quotaBytes", 0)),
            used_bytes=int(data.get("usedBytes", 0)),
        )
