"""MCP Status - Aggregated view of MCP server health.

Reads connection status, discovery progress, tool inventory and OAuth
token state through store interfaces, captures them as a snapshot and
builds a StatusReport that can be rendered for the terminal.
"""

from mcp_status.stores import (
    InMemoryStatusStore,
    InMemoryTokenStore,
    InMemoryToolInventory,
    OAuthTokenStore,
    ServerStatusStore,
    ToolInventory,
    get_status_store,
)
from mcp_status.snapshot import StatusSnapshot, capture_snapshot
from mcp_status.report import StatusReportBuilder, needs_auth_hint
from mcp_status.render import ListOptions, parse_list_args, render_empty_configuration, render_report

__all__ = [
    "InMemoryStatusStore",
    "InMemoryTokenStore",
    "InMemoryToolInventory",
    "OAuthTokenStore",
    "ServerStatusStore",
    "ToolInventory",
    "get_status_store",
    "StatusSnapshot",
    "capture_snapshot",
    "StatusReportBuilder",
    "needs_auth_hint",
    "ListOptions",
    "parse_list_args",
    "render_empty_configuration",
    "render_report",
]
