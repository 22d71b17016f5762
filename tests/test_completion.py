import json

import httpx
import pytest

from tgrelay.completion import ChatCompletionClient, CompletionError
from tgrelay.config import CompletionConfig


async def _no_sleep(_: float) -> None:
    return None


def _ok(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _config(**kwargs) -> CompletionConfig:
    return CompletionConfig(
        api_key="sk-test-key",
        base_url="https://llm.example/v1",
        model="test-model",
        **kwargs,
    )


@pytest.mark.anyio
async def test_complete_posts_question() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_ok("  hi there  "), request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        llm = ChatCompletionClient(_config(system_prompt="be brief"), client=client)
        answer = await llm.complete("hello?")

    assert answer == "hi there"
    assert len(captured) == 1
    request = captured[0]
    assert str(request.url) == "https://llm.example/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test-key"
    body = json.loads(request.content)
    assert body == {
        "model": "test-model",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello?"},
        ],
    }


@pytest.mark.anyio
async def test_complete_retries_once_then_succeeds() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(502, text="bad gateway", request=request)
        return httpx.Response(200, json=_ok("ok"), request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        llm = ChatCompletionClient(_config(), client=client, sleep=_no_sleep)
        assert await llm.complete("q") == "ok"

    assert len(calls) == 2


@pytest.mark.anyio
async def test_complete_gives_up_after_max_attempts() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(
            429,
            json={"error": {"message": "Rate limit reached"}},
            request=request,
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        llm = ChatCompletionClient(_config(), client=client, sleep=_no_sleep)
        with pytest.raises(CompletionError, match="Rate limit reached"):
            await llm.complete("q")

    assert len(calls) == 2


@pytest.mark.anyio
async def test_network_error_becomes_completion_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        llm = ChatCompletionClient(
            _config(max_attempts=1), client=client, sleep=_no_sleep
        )
        with pytest.raises(CompletionError, match="request failed"):
            await llm.complete("q")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload", [{"choices": []}, {"choices": [{"message": {"content": None}}]}, []]
)
async def test_malformed_payload_is_rejected(payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload, request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        llm = ChatCompletionClient(
            _config(max_attempts=1), client=client, sleep=_no_sleep
        )
        with pytest.raises(CompletionError, match="no message content"):
            await llm.complete("q")


def test_empty_api_key_raises() -> None:
    with pytest.raises(ValueError, match="empty"):
        ChatCompletionClient(CompletionConfig(api_key=""))


@pytest.mark.anyio
async def test_close_owned_client() -> None:
    llm = ChatCompletionClient(_config())
    await llm.close()
