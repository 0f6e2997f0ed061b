"""Webhook server: runs a configured program for each matching HTTP request."""

from .config import ConfigError, ServerConfig, load_config
from .dispatch import DispatchService, HookRequest, HookResponse

__all__ = [
    "ConfigError",
    "ServerConfig",
    "load_config",
    "DispatchService",
    "HookRequest",
    "HookResponse",
]
