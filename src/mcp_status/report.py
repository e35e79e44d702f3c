"""Status report builder.

Combines static server configuration with a snapshot of connection
status, discovery progress, tool inventory and OAuth token state into a
single StatusReport. The builder performs no I/O and never reads shared
state itself; all lookups come in as plain callables.
"""

from typing import Callable

from shared.config import DEFAULT_DOCS_URL
from shared.errors import get_error_message
from shared.logging import get_logger
from shared.models import (
    ConnectionStatus,
    DiscoveryPhase,
    EmptyConfiguration,
    OAuthTokenState,
    ServerConfig,
    ServerStatusEntry,
    StatusReport,
    ToolDescriptor,
)
from mcp_status.snapshot import StatusSnapshot

logger = get_logger(__name__)

StatusLookup = Callable[[str], ConnectionStatus]
ToolsLookup = Callable[[str], list[ToolDescriptor]]
TokenStateLookup = Callable[[str], OAuthTokenState]
OAuthHintLookup = Callable[[str], bool]


def needs_auth_hint(
    config: ServerConfig,
    status: ConnectionStatus,
    token_state: OAuthTokenState,
    requires_oauth: bool
) -> bool:
    """
    Whether to suggest authenticating a server.

    An explicit ``oauth.enabled`` and a previously seen auth challenge are
    OR'ed together; a valid token clears the hint.
    """
    if status != ConnectionStatus.DISCONNECTED:
        return False
    if not (config.oauth_enabled or requires_oauth):
        return False
    return not token_state.valid


class StatusReportBuilder:
    """
    Builds status reports from configuration and store lookups.

    Responsibilities:
    - Preserve configuration order, blocked servers last
    - Report live tool counts only for connected servers
    - Derive the authentication hint per server
    - Isolate per-server lookup failures
    """

    def __init__(self, docs_url: str = DEFAULT_DOCS_URL) -> None:
        self.docs_url = docs_url

    def build(
        self,
        configs: list[ServerConfig],
        blocked: list[ServerConfig],
        status_of: StatusLookup,
        discovery: DiscoveryPhase,
        tools_of: ToolsLookup,
        token_state_of: TokenStateLookup,
        requires_oauth_hint: OAuthHintLookup
    ) -> StatusReport | EmptyConfiguration:
        """
        Build a status report.

        Args:
            configs: Configured servers, in display order
            blocked: Blocked servers, in display order
            status_of: Connection status per server name
            discovery: Global discovery phase
            tools_of: Known tools per server name
            token_state_of: OAuth token state per server name
            requires_oauth_hint: Whether an auth challenge was seen per server

        Returns:
            The report, or EmptyConfiguration when nothing is configured

        Raises:
            ValueError: If names repeat or a server is both configured and blocked
        """
        if not configs and not blocked:
            return EmptyConfiguration(docs_url=self.docs_url)

        self._validate(configs, blocked)

        entries = [
            self._build_entry(config, status_of, tools_of, token_state_of, requires_oauth_hint)
            for config in configs
        ]
        entries.extend(
            ServerStatusEntry(config=config, blocked=True)
            for config in blocked
        )

        return StatusReport(
            entries=tuple(entries),
            blocked_names=tuple(config.name for config in blocked),
            discovery_phase=discovery,
        )

    def build_from_snapshot(
        self,
        configs: list[ServerConfig],
        blocked: list[ServerConfig],
        snapshot: StatusSnapshot
    ) -> StatusReport | EmptyConfiguration:
        """Build a report from a captured snapshot."""
        return self.build(
            configs,
            blocked,
            status_of=snapshot.status_of,
            discovery=snapshot.discovery_phase,
            tools_of=snapshot.tools_of,
            token_state_of=snapshot.token_state_of,
            requires_oauth_hint=snapshot.requires_oauth_hint,
        )

    def _validate(self, configs: list[ServerConfig], blocked: list[ServerConfig]) -> None:
        seen: set[str] = set()
        for config in configs:
            if config.name in seen:
                raise ValueError(f"Server '{config.name}' is configured more than once")
            seen.add(config.name)

        blocked_seen: set[str] = set()
        for config in blocked:
            if config.name in seen:
                raise ValueError(f"Server '{config.name}' is both configured and blocked")
            if config.name in blocked_seen:
                raise ValueError(f"Server '{config.name}' is blocked more than once")
            blocked_seen.add(config.name)

    def _build_entry(
        self,
        config: ServerConfig,
        status_of: StatusLookup,
        tools_of: ToolsLookup,
        token_state_of: TokenStateLookup,
        requires_oauth_hint: OAuthHintLookup
    ) -> ServerStatusEntry:
        name = config.name
        issues: list[str] = []

        try:
            status = status_of(name)
        except Exception as e:
            status = ConnectionStatus.DISCONNECTED
            issues.append(f"Connection status unavailable: {get_error_message(e)}")

        try:
            tools = tuple(tools_of(name))
        except Exception as e:
            tools = ()
            issues.append(f"Tool list unavailable: {get_error_message(e)}")

        try:
            token_state = token_state_of(name)
        except Exception as e:
            token_state = OAuthTokenState.absent()
            issues.append(f"OAuth status unavailable: {get_error_message(e)}")

        try:
            requires_oauth = requires_oauth_hint(name)
        except Exception as e:
            requires_oauth = False
            issues.append(f"OAuth requirement unknown: {get_error_message(e)}")

        if issues:
            logger.warning("Server entry degraded", server=name, issues=issues)

        return ServerStatusEntry(
            config=config,
            status=status,
            tools=tools,
            token_state=token_state,
            needs_auth_hint=needs_auth_hint(config, status, token_state, requires_oauth),
            issues=tuple(issues),
        )
