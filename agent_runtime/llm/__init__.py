"""LLM module."""

from .http_client import HttpChatClient
from .llm_provider import ILLMProvider, LLMProvider, chat_or_none, classify_status

__all__ = ["HttpChatClient", "ILLMProvider", "LLMProvider", "chat_or_none", "classify_status"]
