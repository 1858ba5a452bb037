"""
Direct messages between users.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from neos.model._dates import format_datetime, parse_datetime, parse_datetime_or_none
from neos.model._ids import UserId
from neos.model._sessions import SessionInfo


class MessageType(Enum):
    """Kind of a message, which decides how its content is interpreted."""
    TEXT = "Text"
    OBJECT = "Object"
    SOUND = "Sound"
    SESSION_INVITE = "SessionInvite"
    CREDIT_TRANSFER = "CreditTransfer"
    SUGAR_CUBES = "SugarCubes"


def new_message_id() -> str:
    """Generates a new client-side message id (`MSG-{uuid}`)."""
    return f"MSG-{uuid.uuid4()}"


@dataclass(frozen=True)
class Message:
    """
    A direct message.

    `content` is a `SessionInfo` for session invites and the raw string
    content (text, asset url or JSON) for every other message type.

    Attributes:
        id: Client generated id, `MSG-` followed by a UUID.
        owner_id: Whose copy of the message this is.
        sender_id: Who sent the message.
        recipient_id: Who received it.
        message_type: How to interpret `content`.
        read_time: When the recipient read it; None if unread.

    Example:
        >>> message = Message.new_text(
        ...     sender_id=UserId("U-Me"),
        ...     recipient_id=UserId("U-Friend"),
        ...     text="Hello!",
        ... )
        >>> client.send_message(message)
    """
    id: str
    owner_id: UserId
    sender_id: UserId
    recipient_id: UserId
    message_type: MessageType
    content: "str | SessionInfo"
    send_time: datetime
    last_update_time: datetime
    read_time: datetime | None = None
    raw_content: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.startswith("MSG-"):
            raise ValueError(f"Message ID must start with 'MSG-', got {self.id!r}")

    @property
    def is_read(self) -> bool:
        return self.read_time is not None

    @classmethod
    def new_text(
        cls,
        sender_id: UserId,
        recipient_id: UserId,
        text: str,
        now: datetime | None = None,
    ) -> "Message":
        """Builds a text message owned by its sender, ready to be sent."""
        now = now or datetime.now(UTC)
        return cls(
            id=new_message_id(),
            owner_id=sender_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            message_type=MessageType.TEXT,
            content=text,
            send_time=now,
            last_update_time=now,
        )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Message":
        message_type = MessageType(data["messageType"])
        raw_content = data.get("content")
        content: str | SessionInfo
        if message_type is MessageType.SESSION_INVITE:
            # Sent as a JSON encoded string
            session_data = json.loads(raw_content) if isinstance(raw_content, str) else raw_content
            content = SessionInfo.from_api(session_data)
            if not isinstance(raw_content, str):
                raw_content = json.dumps(raw_content)
        else:
            content = raw_content if raw_content is not None else ""

        return cls(
            id=data["id"],
            owner_id=UserId(data["ownerId"]),
            sender_id=UserId(data["senderId"]),
            recipient_id=UserId(data["recipientId"]),
            message_type=message_type,
            content=content,
            send_time=parse_datetime(data["sendTime"]),
            last_update_time=parse_datetime(data["lastUpdateTime"]),
            read_time=parse_datetime_or_none(data.get("readTime")),
            raw_content=raw_content,
        )

    def to_api_payload(self) -> dict[str, Any]:
        """
        Converts the message to the API payload format.

        Session invites can only be re-sent when they were decoded from the
        API, since the content is sent back as received.
        """
        if isinstance(self.content, SessionInfo):
            assert self.raw_content is not None, "Session invites need their raw content to be sent."
            content = self.raw_content
        else:
            content = self.content

        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "messageType": self.message_type.value,
            "content": content,
            "sendTime": format_datetime(self.send_time),
            "lastUpdateTime": format_datetime(self.last_update_time),
            "readTime": format_datetime(self.read_time),
        }
