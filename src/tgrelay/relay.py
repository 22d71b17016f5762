from __future__ import annotations

from typing import Any

import anyio
import msgspec
from anyio.abc import TaskGroup

from .completion import ChatCompletionClient, Completer
from .config import ConfigError, RelayConfig
from .context import Relay
from .intake import handle_update
from .logging import get_logger
from .membership import MembershipGate
from .telegram.api_models import User
from .telegram.client import BotClient, TelegramClient
from .worker import run_worker_loop

logger = get_logger(__name__)

ALLOWED_UPDATES = ["message"]
REOPEN_DELAY_S = 2.0


async def _handle_update_safely(relay: Relay, update: dict[str, Any]) -> None:
    try:
        await handle_update(relay, update)
    except Exception:
        logger.exception("intake.failed", update_id=update.get("update_id"))


async def poll_once(relay: Relay) -> list[dict] | None:
    """One long-poll request, abandoned if it outlives its own timeout."""
    deadline = relay.poll_timeout_s + relay.idle_tick_s
    with anyio.move_on_after(deadline):
        return await relay.bot.get_updates(
            offset=relay.offset,
            timeout_s=relay.poll_timeout_s,
            allowed_updates=ALLOWED_UPDATES,
        )
    logger.info("fetch.poll_timeout", offset=relay.offset, deadline=deadline)
    return None


async def run_fetch_loop(
    relay: Relay, task_group: TaskGroup, *, reopen_delay_s: float = REOPEN_DELAY_S
) -> None:
    """Long-poll for updates and spawn one intake handler per update."""
    while True:
        updates = await poll_once(relay)
        if updates is None:
            logger.info("fetch.stream_closed", offset=relay.offset)
            await anyio.sleep(reopen_delay_s)
            continue
        for update in updates:
            if not isinstance(update, dict):
                logger.warning("fetch.invalid_update", update=update)
                continue
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                relay.offset = update_id + 1
            task_group.start_soon(_handle_update_safely, relay, update)


async def resolve_bot_id(bot: BotClient) -> int:
    me = await bot.get_me()
    if me is None:
        raise ConfigError("Failed to fetch bot identity; check the bot token.")
    try:
        user = msgspec.convert(me, type=User)
    except msgspec.ValidationError as e:
        raise ConfigError(f"Unexpected getMe response: {e}") from None
    logger.info("relay.identity", bot_id=user.id, username=user.username)
    return user.id


async def build_relay(
    config: RelayConfig, bot: BotClient, completer: Completer
) -> Relay:
    gate = None
    channel, group = config.gate.channel, config.gate.group
    if channel and group:
        gate = MembershipGate(bot, channel=channel, group=group)
    return Relay(
        bot=bot,
        completer=completer,
        bot_id=await resolve_bot_id(bot),
        gate=gate,
        gate_enabled=config.gate.enabled,
        admin_ids=config.admin_ids,
        poll_timeout_s=config.poll_timeout_s,
        idle_tick_s=config.idle_tick_s,
    )


async def serve(relay: Relay) -> None:
    async with anyio.create_task_group() as tg:
        tg.start_soon(run_worker_loop, relay)
        await run_fetch_loop(relay, tg)


async def run_relay(config: RelayConfig) -> None:
    bot = TelegramClient(
        config.bot_token, timeout_s=config.poll_timeout_s + config.idle_tick_s
    )
    completer = ChatCompletionClient(config.completion)
    try:
        relay = await build_relay(config, bot, completer)
        logger.info(
            "relay.started",
            gating=relay.gating,
            poll_timeout_s=relay.poll_timeout_s,
            idle_tick_s=relay.idle_tick_s,
        )
        await serve(relay)
    finally:
        with anyio.CancelScope(shield=True):
            await completer.close()
            await bot.close()
