from __future__ import annotations

from typing import Any

import msgspec

__all__ = [
    "Chat",
    "ChatMember",
    "Message",
    "MessageEntity",
    "MessageReply",
    "Update",
    "User",
    "command_args",
    "command_name",
    "decode_chat_member",
    "decode_update",
    "is_command",
    "is_private",
]

NOT_MEMBER_STATUSES = frozenset({"left", "kicked"})


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    is_bot: bool = False
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def display_name(self) -> str:
        if self.username:
            return f"@{self.username}"
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or str(self.id)


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str
    title: str | None = None
    username: str | None = None


class MessageEntity(msgspec.Struct, forbid_unknown_fields=False):
    type: str
    offset: int
    length: int


class MessageReply(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    text: str | None = None
    from_: User | None = msgspec.field(default=None, name="from")


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    chat: Chat
    text: str | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    entities: list[MessageEntity] | None = None
    reply_to_message: MessageReply | None = None
    new_chat_members: list[User] | None = None
    left_chat_member: User | None = None


class Update(msgspec.Struct, forbid_unknown_fields=False):
    update_id: int
    message: Message | None = None


class ChatMember(msgspec.Struct, forbid_unknown_fields=False):
    status: str
    user: User | None = None

    @property
    def is_member(self) -> bool:
        return self.status not in NOT_MEMBER_STATUSES


def decode_update(payload: dict[str, Any]) -> Update | None:
    try:
        return msgspec.convert(payload, type=Update)
    except msgspec.ValidationError:
        return None


def decode_chat_member(payload: Any) -> ChatMember | None:
    if not isinstance(payload, dict):
        return None
    try:
        return msgspec.convert(payload, type=ChatMember)
    except msgspec.ValidationError:
        return None


def is_private(message: Message) -> bool:
    return message.chat.type == "private"


def _command_split(message: Message) -> tuple[str, str] | None:
    """Split a command message into its command token and the remaining text."""
    text = message.text
    if not message.entities or not text:
        return None
    first = message.entities[0]
    if first.type != "bot_command" or first.offset != 0:
        return None
    return text[: first.length], text[first.length :]


def is_command(message: Message) -> bool:
    return _command_split(message) is not None


def command_name(message: Message) -> str | None:
    """Return the command without the leading slash or any ``@botname`` suffix."""
    split = _command_split(message)
    if split is None:
        return None
    name, _, _ = split[0][1:].partition("@")
    return name.lower()


def command_args(message: Message) -> str:
    split = _command_split(message)
    if split is None:
        return ""
    return split[1].strip()
