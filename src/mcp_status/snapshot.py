"""Point-in-time capture of the live status stores.

Background connection work keeps mutating the stores while a report is
built. Capturing everything up front means a report never mixes two
states of the same server.
"""

from typing import Optional

from pydantic import BaseModel, Field

from shared.errors import StoreUnavailableError, get_error_message
from shared.logging import get_logger
from shared.models import (
    ConnectionStatus,
    DiscoveryPhase,
    OAuthTokenState,
    ServerConfig,
    ToolDescriptor,
)
from mcp_status.stores import OAuthTokenStore, ServerStatusStore, ToolInventory

logger = get_logger(__name__)

STATUS_STORE = "status store"
TOOL_INVENTORY = "tool inventory"
TOKEN_STORE = "token store"
OAUTH_FLAGS = "oauth flags"


class StatusSnapshot(BaseModel):
    """
    Frozen copy of the store values needed for one report.

    Lookups for a server whose capture failed raise
    ``StoreUnavailableError`` with the recorded cause.
    """
    discovery_phase: DiscoveryPhase = DiscoveryPhase.NOT_STARTED
    statuses: dict[str, ConnectionStatus] = Field(default_factory=dict)
    tools: dict[str, list[ToolDescriptor]] = Field(default_factory=dict)
    token_states: dict[str, OAuthTokenState] = Field(default_factory=dict)
    requires_oauth: dict[str, bool] = Field(default_factory=dict)
    failures: dict[str, dict[str, str]] = Field(default_factory=dict)

    def _check(self, store: str, server_name: str) -> None:
        cause = self.failures.get(store, {}).get(server_name)
        if cause is not None:
            raise StoreUnavailableError(store, server_name, cause)

    def status_of(self, server_name: str) -> ConnectionStatus:
        self._check(STATUS_STORE, server_name)
        return self.statuses.get(server_name, ConnectionStatus.DISCONNECTED)

    def tools_of(self, server_name: str) -> list[ToolDescriptor]:
        self._check(TOOL_INVENTORY, server_name)
        return self.tools.get(server_name, [])

    def token_state_of(self, server_name: str) -> OAuthTokenState:
        self._check(TOKEN_STORE, server_name)
        return self.token_states.get(server_name, OAuthTokenState.absent())

    def requires_oauth_hint(self, server_name: str) -> bool:
        self._check(OAUTH_FLAGS, server_name)
        return self.requires_oauth.get(server_name, False)


def _token_state(
    token_store: OAuthTokenStore,
    server_name: str
) -> OAuthTokenState:
    token = token_store.get_token(server_name)
    if token is None:
        return OAuthTokenState.absent()
    return OAuthTokenState(present=True, expired=token_store.is_token_expired(token))


def capture_snapshot(
    servers: list[ServerConfig],
    status_store: ServerStatusStore,
    inventory: Optional[ToolInventory],
    token_store: Optional[OAuthTokenStore]
) -> StatusSnapshot:
    """
    Read every store once for the given servers.

    Args:
        servers: Configured (not blocked) servers to capture
        status_store: Connection status and discovery phase source
        inventory: Tool inventory, or None when tools are unknown
        token_store: OAuth token store, or None when tokens are unknown

    Returns:
        Snapshot holding the captured values and per-server failures
    """
    snapshot = StatusSnapshot(discovery_phase=status_store.get_discovery_phase())

    def record_failure(store: str, server_name: str, error: Exception) -> None:
        cause = get_error_message(error)
        snapshot.failures.setdefault(store, {})[server_name] = cause
        logger.warning(
            "Store lookup failed",
            store=store,
            server=server_name,
            error=cause
        )

    for server in servers:
        name = server.name

        try:
            snapshot.statuses[name] = status_store.get_connection_status(name)
        except Exception as e:
            record_failure(STATUS_STORE, name, e)

        try:
            snapshot.requires_oauth[name] = status_store.requires_oauth(name)
        except Exception as e:
            record_failure(OAUTH_FLAGS, name, e)

        if inventory is not None:
            try:
                snapshot.tools[name] = inventory.list_tools(name)
            except Exception as e:
                record_failure(TOOL_INVENTORY, name, e)

        if token_store is not None:
            try:
                snapshot.token_states[name] = _token_state(token_store, name)
            except Exception as e:
                record_failure(TOKEN_STORE, name, e)

    return snapshot
