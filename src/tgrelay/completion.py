from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

import anyio
import httpx

from .config import CompletionConfig
from .logging import get_logger

logger = get_logger(__name__)

RETRY_DELAY_S = 1.0


class CompletionError(RuntimeError):
    pass


class Completer(Protocol):
    async def complete(self, question: str) -> str: ...

    async def close(self) -> None: ...


def _extract_content(payload: Any) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise CompletionError("completion response has no message content") from None
    if not isinstance(content, str):
        raise CompletionError("completion response has no message content")
    return content.strip()


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return f"completion service returned HTTP {resp.status_code}"


class ChatCompletionClient:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint.

    Each question is sent as a single user turn, optionally preceded by the
    configured system prompt. A failed attempt is retried up to
    ``max_attempts`` total tries; the last failure is raised as
    ``CompletionError``.
    """

    def __init__(
        self,
        config: CompletionConfig,
        client: httpx.AsyncClient | None = None,
        *,
        retry_delay_s: float = RETRY_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if not config.api_key:
            raise ValueError("Completion API key is empty")
        if config.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._config = config
        self._url = f"{config.base_url}/chat/completions"
        self._client = client or httpx.AsyncClient(timeout=config.timeout_s)
        self._owns_client = client is None
        self._retry_delay_s = retry_delay_s
        self._sleep = sleep

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _payload(self, question: str) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if self._config.system_prompt:
            messages.append({"role": "system", "content": self._config.system_prompt})
        messages.append({"role": "user", "content": question})
        return {"model": self._config.model, "messages": messages}

    async def _request(self, question: str) -> str:
        try:
            resp = await self._client.post(
                self._url,
                json=self._payload(question),
                headers={"Authorization": f"Bearer {self._config.api_key}"},
            )
        except httpx.HTTPError as e:
            raise CompletionError(f"completion request failed: {e}") from e
        if resp.is_error:
            raise CompletionError(_error_message(resp))
        try:
            payload = resp.json()
        except ValueError as e:
            raise CompletionError("completion service returned invalid JSON") from e
        return _extract_content(payload)

    async def complete(self, question: str) -> str:
        attempts = self._config.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                answer = await self._request(question)
            except CompletionError as exc:
                logger.warning(
                    "completion.failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(exc),
                )
                if attempt == attempts:
                    raise
                await self._sleep(self._retry_delay_s)
                continue
            logger.debug("completion.ok", attempt=attempt, chars=len(answer))
            return answer
        raise AssertionError("unreachable")
