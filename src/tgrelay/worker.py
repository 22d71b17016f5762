from __future__ import annotations

from . import texts
from .completion import CompletionError
from .context import Relay
from .logging import get_logger
from .model import ChatTask
from .telegram.client import PARSE_MODE_MARKDOWN, TelegramParseError

logger = get_logger(__name__)


async def answer_task(relay: Relay, task: ChatTask) -> None:
    try:
        answer = await relay.completer.complete(task.question)
    except CompletionError as exc:
        answer = texts.completion_error_text(str(exc))
    except Exception as exc:
        logger.exception(
            "worker.completion_failed",
            chat_id=task.chat_id,
            user_id=task.user_id,
        )
        answer = texts.completion_error_text(str(exc) or exc.__class__.__name__)
    task.answer = answer or texts.EMPTY_ANSWER_TEXT


async def send_answer(relay: Relay, task: ChatTask) -> bool:
    try:
        sent = await relay.bot.send_message(
            chat_id=task.chat_id,
            text=task.answer,
            reply_to_message_id=task.message_id,
            parse_mode=PARSE_MODE_MARKDOWN,
        )
    except TelegramParseError:
        # Model output is not always valid Telegram Markdown.
        logger.info(
            "worker.markdown_rejected", chat_id=task.chat_id, user_id=task.user_id
        )
    else:
        return sent is not None
    sent = await relay.bot.send_message(
        chat_id=task.chat_id,
        text=task.answer,
        reply_to_message_id=task.message_id,
    )
    return sent is not None


async def finish_task(relay: Relay, task: ChatTask) -> None:
    logger.info(
        "worker.started",
        chat_id=task.chat_id,
        user_id=task.user_id,
        message_id=task.message_id,
    )
    try:
        await answer_task(relay, task)
        if not await send_answer(relay, task):
            logger.error(
                "worker.send_failed",
                chat_id=task.chat_id,
                user_id=task.user_id,
                message_id=task.message_id,
            )
            return
    finally:
        relay.sessions.release(task.user_id)
    logger.info(
        "worker.finished",
        chat_id=task.chat_id,
        user_id=task.user_id,
        message_id=task.message_id,
        answer_chars=len(task.answer),
    )


async def run_worker_loop(relay: Relay) -> None:
    """Drain the task queue one task at a time for the life of the process."""
    while True:
        task = await relay.tasks.get(timeout=relay.idle_tick_s)
        if task is None:
            continue
        try:
            await finish_task(relay, task)
        except Exception:
            logger.exception(
                "worker.failed",
                chat_id=task.chat_id,
                user_id=task.user_id,
            )
