from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Protocol

import anyio
import httpx

from ..logging import get_logger

logger = get_logger(__name__)

CHAT_ACTION_TYPING = "typing"
PARSE_MODE_MARKDOWN = "Markdown"


class TelegramRetryAfter(Exception):
    def __init__(self, retry_after: float, description: str | None = None) -> None:
        super().__init__(description or f"retry after {retry_after}")
        self.retry_after = float(retry_after)
        self.description = description


class TelegramParseError(Exception):
    """Telegram rejected the message text for the requested parse mode."""


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict] | None: ...

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
    ) -> dict | None: ...

    async def send_chat_action(
        self, chat_id: int, action: str = CHAT_ACTION_TYPING
    ) -> bool: ...

    async def get_chat_member(self, chat_id: int | str, user_id: int) -> dict | None: ...

    async def get_me(self) -> dict | None: ...


_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)
_PARSE_ERROR_RE = re.compile(r"can't parse entities", re.IGNORECASE)


def _retry_after_from_payload(payload: dict[str, Any]) -> float | None:
    params = payload.get("parameters")
    if isinstance(params, dict):
        retry_after = params.get("retry_after")
        if isinstance(retry_after, (int, float)):
            return float(retry_after)
    description = payload.get("description")
    if isinstance(description, str):
        return _retry_after_from_description(description)
    return None


def _retry_after_from_description(description: str) -> float | None:
    match = _RETRY_AFTER_RE.search(description)
    if not match:
        return None
    return float(match.group(1))


def _retry_after_from_response(resp: httpx.Response) -> float | None:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        retry_after = _retry_after_from_payload(payload)
        if retry_after is not None:
            return retry_after
    return _retry_after_from_description(resp.text)


def _is_parse_error(description: object) -> bool:
    return isinstance(description, str) and bool(_PARSE_ERROR_RE.search(description))


def _description_from_response(resp: httpx.Response) -> str | None:
    try:
        payload = resp.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        description = payload.get("description")
        if isinstance(description, str):
            return description
    return None


class TelegramClient:
    def __init__(
        self,
        token: str,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"https://api.telegram.org/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None
        self._sleep = sleep

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, method: str, json_data: dict[str, Any]) -> Any | None:
        logger.debug("telegram.request", method=method, payload=json_data)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=json_data)
        except httpx.HTTPError as e:
            logger.error(
                "telegram.network_error",
                method=method,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return None

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            if resp.status_code == 429:
                retry_after = _retry_after_from_response(resp)
                if retry_after is not None:
                    logger.info(
                        "telegram.rate_limited",
                        method=method,
                        status=resp.status_code,
                        retry_after=retry_after,
                    )
                    raise TelegramRetryAfter(retry_after) from e
            description = _description_from_response(resp)
            if resp.status_code == 400 and _is_parse_error(description):
                logger.warning(
                    "telegram.parse_error", method=method, description=description
                )
                raise TelegramParseError(description) from e
            logger.error(
                "telegram.http_error",
                method=method,
                status=resp.status_code,
                error=str(e),
                body=resp.text,
            )
            return None

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                error_type=e.__class__.__name__,
                body=resp.text,
            )
            return None

        if not isinstance(payload, dict):
            logger.error(
                "telegram.invalid_payload",
                method=method,
                payload=payload,
            )
            return None

        if not payload.get("ok"):
            retry_after = _retry_after_from_payload(payload)
            if retry_after is not None:
                logger.info(
                    "telegram.rate_limited",
                    method=method,
                    retry_after=retry_after,
                )
                raise TelegramRetryAfter(retry_after)
            description = payload.get("description")
            if _is_parse_error(description):
                logger.warning(
                    "telegram.parse_error", method=method, description=description
                )
                raise TelegramParseError(description)
            logger.error(
                "telegram.api_error",
                method=method,
                payload=payload,
            )
            return None

        logger.debug("telegram.response", method=method, payload=payload)
        return payload.get("result")

    async def _post_or_none(self, method: str, json_data: dict[str, Any]) -> Any | None:
        try:
            return await self._post(method, json_data)
        except TelegramRetryAfter as exc:
            logger.warning(
                "telegram.rate_limited.dropped",
                method=method,
                retry_after=exc.retry_after,
            )
            return None

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict] | None:
        params: dict[str, Any] = {"timeout": timeout_s}
        if offset is not None:
            params["offset"] = offset
        if allowed_updates is not None:
            params["allowed_updates"] = allowed_updates
        while True:
            try:
                result = await self._post("getUpdates", params)
            except TelegramRetryAfter as exc:
                await self._sleep(exc.retry_after)
                continue
            if result is None:
                return None
            if not isinstance(result, list):
                logger.error("telegram.invalid_updates", result=result)
                return None
            return result

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
    ) -> dict | None:
        """Raises ``TelegramParseError`` if Telegram cannot parse the entities."""
        params: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
        }
        if reply_to_message_id is not None:
            params["reply_to_message_id"] = reply_to_message_id
        if parse_mode is not None:
            params["parse_mode"] = parse_mode
        res = await self._post_or_none("sendMessage", params)
        return res if isinstance(res, dict) else None

    async def send_chat_action(
        self, chat_id: int, action: str = CHAT_ACTION_TYPING
    ) -> bool:
        res = await self._post_or_none(
            "sendChatAction", {"chat_id": chat_id, "action": action}
        )
        return bool(res)

    async def get_chat_member(self, chat_id: int | str, user_id: int) -> dict | None:
        res = await self._post_or_none(
            "getChatMember", {"chat_id": chat_id, "user_id": user_id}
        )
        return res if isinstance(res, dict) else None

    async def get_me(self) -> dict | None:
        res = await self._post_or_none("getMe", {})
        return res if isinstance(res, dict) else None
