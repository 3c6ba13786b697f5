"""LLM providers: Anthropic SDK and a fallback-to-None helper."""

import os
from typing import Protocol

import anthropic

from ..errors import LLMError
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


class ILLMProvider(Protocol):
    """Abstraction for LLM access."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
        tools: list[dict] | None = None,
    ) -> str:
        """Generate completion. Raises LLMError on failure."""
        ...


def classify_status(status_code: int) -> str:
    """Map an HTTP status to server_down, rate_limited or provider_error."""
    if status_code == 429:
        return "rate_limited"
    if status_code in (502, 503):
        return "server_down"
    return "provider_error"


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model or DEFAULT_MODEL
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        tools: list[dict] | None = None,
    ) -> str:
        """Generate completion using Claude API."""
        kwargs = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise LLMError(f"LLM request timeout: {e}", "timeout") from e
        except anthropic.APIConnectionError as e:
            raise LLMError(f"LLM connection error: {e}", "server_down") from e
        except anthropic.APIStatusError as e:
            raise LLMError(
                f"LLM API error: {e}", classify_status(e.status_code), e.status_code
            ) from e
        except Exception as e:
            raise LLMError(f"LLM API error: {e}") from e

        return "".join(
            block.text
            for block in response.content
            if isinstance(getattr(block, "text", None), str)
        )


async def chat_or_none(
    llm: ILLMProvider | None,
    messages: list[dict],
    system: str | None = None,
    max_tokens: int = 1024,
) -> str | None:
    """Call the model; any failure or a missing provider yields None."""
    if llm is None:
        return None
    try:
        return await llm.complete(messages, system=system, max_tokens=max_tokens)
    except Exception as e:
        logger.warning("LLM unavailable: %s", e)
        return None
