"""Orchestrator - MCP server re-authentication and commands.

Sequences OAuth authentication, tool re-discovery and consumer refresh
for a single server, and exposes the list/auth command entry points.
"""

from orchestrator.auth import (
    AuthOrchestrator,
    LoggingProgressObserver,
    OAuthAuthenticator,
    ProgressObserver,
    ToolConsumer,
)
from orchestrator.commands import McpCommands, create_mcp_commands

__all__ = [
    "AuthOrchestrator",
    "LoggingProgressObserver",
    "OAuthAuthenticator",
    "ProgressObserver",
    "ToolConsumer",
    "McpCommands",
    "create_mcp_commands",
]
