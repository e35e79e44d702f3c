"""Core data models for MCP server status reporting.

This module defines the shared data structures used by the status report
builder, the auth orchestrator and the command layer.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConnectionStatus(str, Enum):
    """Connection lifecycle of a single MCP server."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class DiscoveryPhase(str, Enum):
    """Global progress of MCP tool discovery."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class OAuthSettings(BaseModel):
    """OAuth block of a server configuration."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    enabled: bool = False
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    client_id: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)


class ServerConfig(BaseModel):
    """
    Static configuration of one MCP server.

    Field names accept both snake_case and the camelCase keys used in
    settings files (``httpUrl``, ``extensionName``).
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: str
    extension_name: Optional[str] = None
    description: Optional[str] = None
    oauth: Optional[OAuthSettings] = None
    url: Optional[str] = None
    http_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.extension_name:
            return f"{self.name} (from {self.extension_name})"
        return self.name

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.oauth and self.oauth.enabled)

    @property
    def server_url(self) -> Optional[str]:
        """Reachable URL of the server, ``http_url`` preferred over ``url``."""
        return self.http_url or self.url


class McpToolOrigin(BaseModel):
    """Tool discovered from an MCP server."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["mcp"] = "mcp"
    server_name: str


class BuiltinToolOrigin(BaseModel):
    """Tool provided by the host itself."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["builtin"] = "builtin"


ToolOrigin = Annotated[
    Union[McpToolOrigin, BuiltinToolOrigin],
    Field(discriminator="kind"),
]


class ToolDescriptor(BaseModel):
    """A tool known to the tool inventory."""
    model_config = ConfigDict(frozen=True)

    origin: ToolOrigin
    name: str
    description: Optional[str] = None
    parameter_schema: Optional[dict[str, Any]] = None

    @classmethod
    def for_server(
        cls,
        server_name: str,
        name: str,
        description: Optional[str] = None,
        parameter_schema: Optional[dict[str, Any]] = None,
    ) -> "ToolDescriptor":
        """Create a descriptor for a tool discovered from an MCP server."""
        return cls(
            origin=McpToolOrigin(server_name=server_name),
            name=name,
            description=description,
            parameter_schema=parameter_schema,
        )

    @property
    def server_name(self) -> Optional[str]:
        """Owning server name, or None for non-MCP tools."""
        if isinstance(self.origin, McpToolOrigin):
            return self.origin.server_name
        return None


class OAuthToken(BaseModel):
    """Stored OAuth credential for a server."""
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None


class OAuthTokenState(BaseModel):
    """Presence and freshness of a server's OAuth token."""
    model_config = ConfigDict(frozen=True)

    present: bool = False
    expired: bool = False

    @property
    def valid(self) -> bool:
        return self.present and not self.expired

    @classmethod
    def absent(cls) -> "OAuthTokenState":
        return cls(present=False, expired=False)


class ServerStatusEntry(BaseModel):
    """One server's row in a status report."""
    model_config = ConfigDict(frozen=True)

    config: ServerConfig
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    tools: tuple[ToolDescriptor, ...] = ()
    token_state: OAuthTokenState = Field(default_factory=OAuthTokenState.absent)
    needs_auth_hint: bool = False
    blocked: bool = False
    issues: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def live(self) -> bool:
        """True when the tool count reflects a live connection."""
        return self.status == ConnectionStatus.CONNECTED

    @property
    def tool_count(self) -> int:
        return len(self.tools)


class StatusReport(BaseModel):
    """
    Aggregated status of all configured and blocked MCP servers.

    Entries list configured servers first, in configuration order,
    followed by blocked servers in the order given.
    """
    model_config = ConfigDict(frozen=True)

    entries: tuple[ServerStatusEntry, ...] = ()
    blocked_names: tuple[str, ...] = ()
    discovery_phase: DiscoveryPhase = DiscoveryPhase.NOT_STARTED

    @property
    def configured_entries(self) -> list[ServerStatusEntry]:
        return [e for e in self.entries if not e.blocked]

    @property
    def blocked_entries(self) -> list[ServerStatusEntry]:
        return [e for e in self.entries if e.blocked]

    @property
    def connecting_count(self) -> int:
        return sum(
            1 for e in self.configured_entries
            if e.status == ConnectionStatus.CONNECTING
        )

    @property
    def is_starting_up(self) -> bool:
        return (
            self.discovery_phase == DiscoveryPhase.IN_PROGRESS
            or self.connecting_count > 0
        )

    def entry(self, name: str) -> Optional[ServerStatusEntry]:
        """Get the entry for a server by name."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


class EmptyConfiguration(BaseModel):
    """No servers are configured or blocked; show onboarding instead."""
    model_config = ConfigDict(frozen=True)

    docs_url: str


class OAuthEndpoints(BaseModel):
    """
    OAuth endpoints handed to the authenticator.

    Empty strings mean the endpoints should be discovered from the server.
    """
    model_config = ConfigDict(frozen=True)

    authorization_url: str = ""
    token_url: str = ""
    client_id: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)

    @property
    def discover(self) -> bool:
        return not (self.authorization_url and self.token_url)


class AuthState(str, Enum):
    """States of a single re-authentication flow."""
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    REDISCOVERING = "rediscovering"
    REFRESHING_CONSUMER = "refreshing_consumer"
    DONE = "done"
    FAILED = "failed"


class AuthErrorKind(str, Enum):
    """Failure and warning categories of a re-authentication flow."""
    UNKNOWN_SERVER = "unknown_server"
    AUTHENTICATION_FAILED = "authentication_failed"
    DISCOVERY_FAILED = "discovery_failed"
    REFRESH_FAILED = "refresh_failed"
    CANCELLED = "cancelled"
    ALREADY_IN_PROGRESS = "already_in_progress"


class AuthIssue(BaseModel):
    """A terminal error or a non-fatal warning with its cause."""
    model_config = ConfigDict(frozen=True)

    kind: AuthErrorKind
    cause: str


class AuthResultStatus(str, Enum):
    """Overall result of a re-authentication flow."""
    REFRESHED = "refreshed"
    PARTIAL = "partial"
    FAILED = "failed"


class AuthOutcome(BaseModel):
    """Terminal outcome of a re-authentication flow."""
    server_name: str
    state: AuthState
    status: AuthResultStatus
    message: str
    error: Optional[AuthIssue] = None
    warnings: list[AuthIssue] = Field(default_factory=list)
    transitions: list[AuthState] = Field(default_factory=list)
    tools_rediscovered: bool = False
    consumer_refreshed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == AuthState.DONE


class MessageType(str, Enum):
    """Severity of a command response."""
    INFO = "info"
    ERROR = "error"


class CommandMessage(BaseModel):
    """Text response produced by an MCP command."""
    message_type: MessageType = MessageType.INFO
    content: str
