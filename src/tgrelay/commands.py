from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import texts
from .logging import get_logger
from .telegram.api_models import Message, command_args, command_name

if TYPE_CHECKING:
    from .context import Relay

logger = get_logger(__name__)

CommandHandler = Callable[["Relay", Message, str], str]

_TRUE_WORDS = frozenset({"1", "on", "true", "yes", "enable", "enabled"})
_FALSE_WORDS = frozenset({"0", "off", "false", "no", "disable", "disabled"})


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    handler: CommandHandler
    admin_only: bool = False


def parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    return None


def _start(relay: Relay, message: Message, args: str) -> str:
    return texts.START_TEXT


def _ping(relay: Relay, message: Message, args: str) -> str:
    return texts.PING_TEXT


def _help(relay: Relay, message: Message, args: str) -> str:
    sender = message.from_.id if message.from_ is not None else None
    if relay.is_admin(sender):
        return f"{texts.HELP_TEXT}\n{texts.ADMIN_HELP_TEXT}"
    return texts.HELP_TEXT


def _limiter(relay: Relay, message: Message, args: str) -> str:
    if relay.gate is None:
        return "membership check is not configured."
    enabled = parse_bool(args) if args else not relay.gate_enabled
    if enabled is None:
        return "usage: /limiter on|off"
    relay.gate_enabled = enabled
    logger.info("commands.limiter", enabled=enabled)
    return f"limiter status is {str(enabled).lower()} now"


def _status(relay: Relay, message: Message, args: str) -> str:
    gate = "on" if relay.gating else "off"
    return (
        f"active sessions: {len(relay.sessions)}\n"
        f"queued tasks: {len(relay.tasks)}\n"
        f"limiter: {gate}"
    )


DEFAULT_COMMANDS: tuple[Command, ...] = (
    Command("start", _start),
    Command("chatgpt", _start),
    Command("ping", _ping),
    Command("help", _help),
    Command("limiter", _limiter, admin_only=True),
    Command("status", _status, admin_only=True),
)


class CommandDispatcher:
    def __init__(self, commands: tuple[Command, ...] = DEFAULT_COMMANDS) -> None:
        self._commands = {command.name: command for command in commands}

    def dispatch(self, relay: Relay, message: Message) -> str | None:
        """Run a command message and return the text to send back, if any."""
        name = command_name(message)
        if name is None:
            return None
        command = self._commands.get(name)
        if command is None:
            return texts.UNKNOWN_COMMAND_TEXT
        sender = message.from_.id if message.from_ is not None else None
        if command.admin_only and not relay.is_admin(sender):
            logger.info("commands.denied", command=name, user_id=sender)
            return texts.NOT_ADMIN_TEXT
        return command.handler(relay, message, command_args(message))
