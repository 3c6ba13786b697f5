"""Client for an HTTP chat gateway (``/api/chat/sync`` and SSE ``/api/chat``)."""

import json
from typing import AsyncIterator

import httpx

from ..errors import LLMError
from ..logging_config import get_logger
from .llm_provider import classify_status

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


class HttpChatClient:
    """
    Speaks the chat gateway contract; implements ILLMProvider.

    The runtime calls ``complete``. ``stream`` is the incremental surface for
    callers that relay text and tool calls as they arrive.
    """

    def __init__(
        self,
        base_url: str,
        provider: str = "anthropic",
        model: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._provider = provider
        self._model = model
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(
        self,
        messages: list[dict],
        system: str | None,
        max_tokens: int,
        tools: list[dict] | None,
    ) -> dict:
        payload = {
            "messages": messages,
            "provider": self._provider,
            "maxTokens": max_tokens,
        }
        if system:
            payload["systemPrompt"] = system
        if self._model:
            payload["model"] = self._model
        if tools:
            payload["tools"] = tools
        return payload

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        tools: list[dict] | None = None,
    ) -> str:
        """Whole-text completion via ``/api/chat/sync``."""
        url = f"{self._base_url}/api/chat/sync"
        try:
            response = await self._client.post(
                url, json=self._payload(messages, system, max_tokens, tools)
            )
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e

        if response.is_error:
            raise LLMError(
                f"Chat gateway returned {response.status_code}",
                classify_status(response.status_code),
                response.status_code,
            )

        data = response.json()
        text = data.get("content")
        if text is None:
            text = data.get("text")
        if text is None:
            raise LLMError("Chat gateway response had no content", "provider_error")
        return text

    async def stream(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        tools: list[dict] | None = None,
    ) -> AsyncIterator[dict]:
        """
        Yield ``{"type": "text", "text": ...}`` and ``{"type": "tool_use", "tool_use": ...}``
        frames from the SSE stream until ``[DONE]``.
        """
        url = f"{self._base_url}/api/chat"
        try:
            async with self._client.stream(
                "POST", url, json=self._payload(messages, system, max_tokens, tools)
            ) as response:
                if response.is_error:
                    raise LLMError(
                        f"Chat gateway returned {response.status_code}",
                        classify_status(response.status_code),
                        response.status_code,
                    )
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data = line[len("data: "):].strip()
                    if data == DONE_SENTINEL:
                        return
                    try:
                        frame = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed SSE frame: %s", data[:100])
                        continue
                    frame_type = frame.get("type")
                    if frame_type in ("text", "text_delta") and frame.get("text"):
                        yield {"type": "text", "text": frame["text"]}
                    elif frame_type == "tool_use" and frame.get("tool_use"):
                        yield {"type": "tool_use", "tool_use": frame["tool_use"]}
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _transport_error(error: httpx.HTTPError) -> LLMError:
        message = str(error) or error.__class__.__name__
        if isinstance(error, httpx.TimeoutException) or "timeout" in message.lower() or "aborted" in message.lower():
            return LLMError(f"Chat request timeout: {message}", "timeout")
        return LLMError(f"Chat gateway unreachable: {message}", "server_down")
