"""Message bus module."""

from .message_bus import IMessageBus, MessageBus, MessageListener

__all__ = ["IMessageBus", "MessageBus", "MessageListener"]
