"""Capability registry module."""

from .builtin_tools import Notifier, register_builtin_tools
from .catalog import default_capabilities
from .http_adapter import HttpConnectorAdapter
from .registry import CapabilityRegistry, ICapabilityRegistry, IConnectorAdapter

__all__ = [
    "CapabilityRegistry",
    "HttpConnectorAdapter",
    "ICapabilityRegistry",
    "IConnectorAdapter",
    "Notifier",
    "default_capabilities",
    "register_builtin_tools",
]
