"""Shared models, configuration and logging for MCP status tooling."""

from shared.models import (
    AuthOutcome,
    ConnectionStatus,
    DiscoveryPhase,
    EmptyConfiguration,
    OAuthTokenState,
    ServerConfig,
    StatusReport,
    ToolDescriptor,
)
from shared.config import ServerCatalog, Settings, get_settings, load_server_catalog
from shared.logging import get_logger, setup_logging

__all__ = [
    "AuthOutcome",
    "ConnectionStatus",
    "DiscoveryPhase",
    "EmptyConfiguration",
    "OAuthTokenState",
    "ServerConfig",
    "StatusReport",
    "ToolDescriptor",
    "ServerCatalog",
    "Settings",
    "get_settings",
    "load_server_catalog",
    "get_logger",
    "setup_logging",
]
