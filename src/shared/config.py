"""Configuration management for MCP status tooling.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.models import ServerConfig

DEFAULT_DOCS_URL = "https://goo.gle/gemini-cli-docs-mcp"


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    servers_path: str = Field(
        default="config/mcp_servers.yaml",
        description="YAML file with mcpServers and blockedMcpServers"
    )
    docs_url: str = Field(default=DEFAULT_DOCS_URL)
    token_expiry_buffer_seconds: int = Field(default=300, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="MCP_STATUS_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        return cls(**load_yaml_config(path))


class ServerCatalog(BaseModel):
    """
    Configured and blocked MCP servers.

    Names are unique, and a server is either configured or blocked,
    never both.
    """
    model_config = ConfigDict(frozen=True)

    servers: tuple[ServerConfig, ...] = ()
    blocked: tuple[ServerConfig, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.servers and not self.blocked

    def get(self, name: str) -> ServerConfig | None:
        for server in self.servers:
            if server.name == name:
                return server
        return None

    def names(self) -> list[str]:
        return [server.name for server in self.servers]

    def oauth_servers(self) -> list[ServerConfig]:
        return [server for server in self.servers if server.oauth_enabled]

    @classmethod
    def from_mapping(
        cls,
        servers: dict[str, dict[str, Any]],
        blocked_names: list[str] | None = None
    ) -> "ServerCatalog":
        """
        Build a catalog from an ``mcpServers`` style mapping.

        Args:
            servers: Server name to raw configuration
            blocked_names: Names to report as blocked instead of configured

        Returns:
            Catalog with blocked servers split out, in mapping order
        """
        blocked_set = set(blocked_names or [])
        configured: list[ServerConfig] = []
        blocked: list[ServerConfig] = []

        for name, raw in servers.items():
            config = ServerConfig.model_validate({**(raw or {}), "name": name})
            if name in blocked_set:
                blocked.append(config)
            else:
                configured.append(config)

        # Blocked names with no definition are still reported
        known = set(servers)
        for name in blocked_names or []:
            if name not in known:
                blocked.append(ServerConfig(name=name))
                known.add(name)

        return cls(servers=tuple(configured), blocked=tuple(blocked))


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_server_catalog(path: str | Path) -> ServerCatalog:
    """
    Load MCP server definitions from a YAML file.

    The file holds an ``mcpServers`` mapping and an optional
    ``blockedMcpServers`` list of names. A missing file yields an
    empty catalog.
    """
    data = load_yaml_config(path)
    return ServerCatalog.from_mapping(
        data.get("mcpServers") or {},
        data.get("blockedMcpServers") or [],
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_STATUS_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
