from __future__ import annotations

from typing import Any

from . import texts
from .context import Relay
from .logging import get_logger
from .model import ChatTask
from .telegram.api_models import Message, Update, decode_update, is_command, is_private
from .telegram.client import CHAT_ACTION_TYPING

logger = get_logger(__name__)


def should_ignore(message: Message) -> bool:
    """Messages that are never answered, whoever they are addressed to."""
    if message.new_chat_members or message.left_chat_member is not None:
        return True
    if not (message.text or "").strip():
        return True
    reply = message.reply_to_message
    if reply is None:
        return False
    return reply.from_ is None or not reply.from_.is_bot


def is_addressed(message: Message, bot_id: int) -> bool:
    if is_private(message):
        return True
    reply = message.reply_to_message
    return reply is not None and reply.from_ is not None and reply.from_.id == bot_id


async def _handle_command(relay: Relay, message: Message) -> None:
    text = relay.commands.dispatch(relay, message)
    if text:
        await relay.bot.send_message(chat_id=message.chat.id, text=text)


async def _handle_chat_message(relay: Relay, message: Message) -> None:
    if should_ignore(message) or message.from_ is None:
        return
    if not is_addressed(message, relay.bot_id):
        return

    chat_id = message.chat.id
    user_id = message.from_.id

    gate = relay.active_gate if is_private(message) else None
    if gate is not None and not await gate.allows(user_id):
        logger.info("intake.gated", chat_id=chat_id, user_id=user_id)
        await relay.bot.send_message(
            chat_id=chat_id,
            text=texts.join_notice(gate.channel, gate.group),
            reply_to_message_id=message.message_id,
        )
        return

    if not relay.sessions.try_acquire(user_id):
        logger.info(
            "intake.busy",
            chat_id=chat_id,
            user_id=user_id,
            message_id=message.message_id,
        )
        await relay.bot.send_message(chat_id=chat_id, text=texts.BUSY_TEXT)
        return

    task = ChatTask(
        question=message.text or "",
        chat_id=chat_id,
        user_id=user_id,
        message_id=message.message_id,
    )
    try:
        await relay.tasks.put(task)
    except BaseException:
        relay.sessions.release(user_id)
        raise
    logger.info(
        "intake.admitted",
        chat_id=chat_id,
        user_id=user_id,
        message_id=message.message_id,
    )
    await relay.bot.send_chat_action(chat_id=chat_id, action=CHAT_ACTION_TYPING)


async def handle_update(relay: Relay, update: Update | dict[str, Any]) -> None:
    if isinstance(update, dict):
        decoded = decode_update(update)
        if decoded is None:
            logger.warning("intake.undecodable", update_id=update.get("update_id"))
            return
        update = decoded

    message = update.message
    if message is None:
        return
    logger.info(
        "intake.update",
        update_id=update.update_id,
        chat_id=message.chat.id,
        sender=message.from_.display_name() if message.from_ is not None else None,
        text=message.text,
    )

    if is_command(message):
        await _handle_command(relay, message)
    else:
        await _handle_chat_message(relay, message)
