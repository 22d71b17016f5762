from __future__ import annotations

from .logging import get_logger
from .telegram.api_models import decode_chat_member
from .telegram.client import BotClient

logger = get_logger(__name__)


def chat_handle(name: str) -> str:
    name = name.strip()
    if name.startswith("@") or name.lstrip("-").isdigit():
        return name
    return f"@{name}"


class MembershipGate:
    """Checks that a user belongs to both the required channel and group."""

    def __init__(self, bot: BotClient, *, channel: str, group: str) -> None:
        self._bot = bot
        self.channel = chat_handle(channel)
        self.group = chat_handle(group)

    async def is_member(self, chat: str, user_id: int) -> bool:
        payload = await self._bot.get_chat_member(chat, user_id)
        member = decode_chat_member(payload)
        if member is None or not member.is_member:
            logger.info(
                "membership.missing",
                chat=chat,
                user_id=user_id,
                status=member.status if member is not None else None,
            )
            return False
        return True

    async def allows(self, user_id: int) -> bool:
        in_channel = await self.is_member(self.channel, user_id)
        in_group = await self.is_member(self.group, user_id)
        return in_channel and in_group
