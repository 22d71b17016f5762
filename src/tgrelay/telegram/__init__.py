"""Telegram Bot API client and wire models."""

from .api_models import ChatMember, Message, Update, User, decode_update
from .client import (
    BotClient,
    CHAT_ACTION_TYPING,
    PARSE_MODE_MARKDOWN,
    TelegramClient,
    TelegramParseError,
    TelegramRetryAfter,
)

__all__ = [
    "BotClient",
    "CHAT_ACTION_TYPING",
    "ChatMember",
    "Message",
    "PARSE_MODE_MARKDOWN",
    "TelegramClient",
    "TelegramParseError",
    "TelegramRetryAfter",
    "Update",
    "User",
    "decode_update",
]
