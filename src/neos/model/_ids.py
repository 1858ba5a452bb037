"""
Typed identifiers used by the API.

Every ID is a `str` subclass, so it can be used anywhere a string is expected
(URL paths, JSON payloads), while still carrying its kind. IDs are validated
against their prefix case-insensitively and normalized to lowercase, which is
how the API compares them.

Example:
    >>> UserId("U-Neos")
    UserId('u-neos')
    >>> UserId("G-Neos")
    Traceback (most recent call last):
    ...
    ValueError: UserId must start with 'U-', got 'G-Neos'
"""

from typing import ClassVar


class _PrefixedId(str):
    """Base class of the prefixed, lowercase-normalized IDs."""

    PREFIX: ClassVar[str] = ""

    def __new__(cls, value: str) -> "_PrefixedId":
        if not isinstance(value, str):
            raise ValueError(f"{cls.__name__} must be a string, got {type(value).__name__}")
        if not value.lower().startswith(cls.PREFIX.lower()):
            raise ValueError(f"{cls.__name__} must start with '{cls.PREFIX}', got {value!r}")
        if len(value) == len(cls.PREFIX):
            raise ValueError(f"{cls.__name__} cannot be just the prefix, got {value!r}")
        return super().__new__(cls, value.lower())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"


class UserId(_PrefixedId):
    """ID of a user account (`U-...`)."""

    PREFIX = "U-"


class GroupId(_PrefixedId):
    """ID of a group (`G-...`)."""

    PREFIX = "G-"


class SessionId(_PrefixedId):
    """ID of a running world session (`S-...`)."""

    PREFIX = "S-"


class RecordId(_PrefixedId):
    """ID of a record such as a world (`R-...`)."""

    PREFIX = "R-"


OwnerId = UserId | GroupId


def parse_owner_id(value: str) -> OwnerId:
    """
    Parse the owner of a resource, which is either a user or a group.

    Raises:
        ValueError: If the value is neither a user nor a group ID.
    """
    if isinstance(value, str) and value.lower().startswith("g-"):
        return GroupId(value)
    if isinstance(value, str) and value.lower().startswith("u-"):
        return UserId(value)
    raise ValueError(f"Owner ID must start with 'U-' or 'G-', got {value!r}")
