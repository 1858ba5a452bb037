"""
Authentication models: user sessions and login credentials.

Secrets (session tokens, passwords, machine ids) are never included in
`repr()`, so these objects are safe to log.
"""

import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from neos.model._dates import format_datetime, parse_datetime
from neos.model._ids import UserId

_REDACTED = "*****"
_MACHINE_ID_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class Credentials:
    """
    The pair sent in the `Authorization` header of authenticated requests.

    Attributes:
        user_id: The authenticated user.
        token: The secret session token.

    Example:
        >>> Credentials(UserId("U-Neos"), "secret").auth_header()
        'neos u-neos:secret'
    """
    user_id: UserId
    token: str

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("User ID cannot be empty.")
        if not self.token:
            raise ValueError("Token cannot be empty.")

    def auth_header(self) -> str:
        """Returns the value of the `Authorization` header."""
        return f"neos {self.user_id}:{self.token}"

    def __repr__(self) -> str:
        return f"Credentials(user_id={self.user_id!r}, token={_REDACTED!r})"


@dataclass(frozen=True)
class UserSession:
    """
    A login session, as returned by `POST userSessions`.

    Only `user_id` and `token` are needed to authenticate; the rest is
    informational. Persist it (e.g. with `to_api_payload()`) to resume the
    session later through `AuthenticatedClient.from_session()`.

    Attributes:
        user_id: The user the session belongs to.
        token: The secret session token.
        created: When the session was created.
        expire: When the session expires unless extended.
        remember_me: Whether the session was created as long-lived.
        source_ip: IP the session was created from.
        secret_machine_id: Machine id the session was created with, if any.
    """
    user_id: UserId
    token: str
    created: datetime
    expire: datetime
    remember_me: bool = False
    source_ip: str = ""
    partition_key: str = ""
    row_key: str = ""
    timestamp: datetime | None = None
    e_tag: str = ""
    secret_machine_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.token, str) or not self.token:
            raise ValueError("Session token cannot be empty.")

    @property
    def credentials(self) -> Credentials:
        return Credentials(user_id=self.user_id, token=self.token)

    def auth_header(self) -> str:
        return self.credentials.auth_header()

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expire

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "UserSession":
        """
        Decodes a session from the API representation.

        Raises:
            KeyError, ValueError, TypeError: If required fields are missing or invalid.
        """
        timestamp = data.get("timestamp")
        return cls(
            user_id=UserId(data["userId"]),
            token=data["token"],
            created=parse_datetime(data["created"]),
            expire=parse_datetime(data["expire"]),
            remember_me=bool(data.get("rememberMe", False)),
            source_ip=data.get("sourceIP") or "",
            partition_key=data.get("partitionKey") or "",
            row_key=data.get("rowKey") or "",
            timestamp=parse_datetime(timestamp) if timestamp else None,
            e_tag=data.get("eTag") or "",
            secret_machine_id=data.get("secretMachineId"),
        )

    def to_api_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "token": self.token,
            "created": format_datetime(self.created),
            "expire": format_datetime(self.expire),
            "rememberMe": self.remember_me,
            "sourceIP": self.source_ip,
            "partitionKey": self.partition_key,
            "rowKey": self.row_key,
            "timestamp": format_datetime(self.timestamp),
            "eTag": self.e_tag,
            "secretMachineId": self.secret_machine_id,
        }

    def __repr__(self) -> str:
        return (
            f"UserSession(user_id={self.user_id!r}, token={_REDACTED!r}, "
            f"created={self.created!r}, expire={self.expire!r}, "
            f"remember_me={self.remember_me!r}, source_ip={self.source_ip!r})"
        )


class LoginIdentifierKind(Enum):
    """What a login identifier refers to, named as the API field it's sent as."""
    USERNAME = "username"
    OWNER_ID = "ownerID"
    EMAIL = "email"


@dataclass(frozen=True)
class LoginIdentifier:
    """
    Who is logging in: a username, a user id or an email address.

    Example:
        >>> LoginIdentifier.email("me@example.com").to_api_payload()
        {'email': 'me@example.com'}
    """
    kind: LoginIdentifierKind
    value: str

    def __post_init__(self) -> None:
        assert self.value, "Login identifier cannot be empty."

    @classmethod
    def username(cls, value: str) -> "LoginIdentifier":
        return cls(LoginIdentifierKind.USERNAME, value)

    @classmethod
    def owner_id(cls, value: str) -> "LoginIdentifier":
        return cls(LoginIdentifierKind.OWNER_ID, value)

    @classmethod
    def email(cls, value: str) -> "LoginIdentifier":
        return cls(LoginIdentifierKind.EMAIL, value)

    def to_api_payload(self) -> dict[str, str]:
        return {self.kind.value: self.value}


@dataclass(frozen=True)
class LoginCredentials:
    """
    Credentials for `UnauthenticatedClient.login()`.

    Attributes:
        identifier: The username, user id or email to log in as.
        password: The account password.
        totp: Current two-factor code, if the account has 2FA enabled.
        secret_machine_id: Machine id to bind the session to.
        remember_me: Whether to request a long-lived session.

    Example:
        >>> credentials = (
        ...     LoginCredentials(LoginIdentifier.username("Neos"), "hunter2")
        ...     .with_totp("123456")
        ...     .with_remember_me(True)
        ... )
    """
    identifier: LoginIdentifier
    password: str = field(repr=False)
    totp: str | None = None
    secret_machine_id: str | None = field(default=None, repr=False)
    remember_me: bool = False

    def __post_init__(self) -> None:
        assert self.identifier, "Identifier cannot be empty."
        assert self.password, "Password cannot be empty."

    def with_totp(self, totp: str | None) -> "LoginCredentials":
        return replace(self, totp=totp)

    def with_machine_id(self, machine_id: str | None) -> "LoginCredentials":
        return replace(self, secret_machine_id=machine_id)

    def with_remember_me(self, remember_me: bool) -> "LoginCredentials":
        return replace(self, remember_me=remember_me)

    def with_generated_machine_id(self) -> "LoginCredentials":
        """Returns a copy using a random 32 character alphanumeric machine id."""
        machine_id = "".join(secrets.choice(_MACHINE_ID_ALPHABET) for _ in range(32))
        return self.with_machine_id(machine_id)

    def to_api_payload(self) -> dict[str, Any]:
        return {
            **self.identifier.to_api_payload(),
            "password": self.password,
            "totp": self.totp,
            "secretMachineId": self.secret_machine_id,
            "rememberMe": self.remember_me,
        }

    def __repr__(self) -> str:
        machine_id = _REDACTED if self.secret_machine_id is not None else None
        return (
            f"LoginCredentials(identifier={self.identifier!r}, password={_REDACTED!r}, "
            f"totp={self.totp!r}, secret_machine_id={machine_id!r}, "
            f"remember_me={self.remember_me!r})"
        )
