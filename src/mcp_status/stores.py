"""Store interfaces consulted by the status report and auth flow.

The live stores are owned by the host runtime and mutated by background
connection and discovery work. The core only reads them through these
interfaces (or through a snapshot of them). In-memory implementations are
provided for hosts without their own and for tests.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from shared.errors import DiscoveryError
from shared.logging import get_logger
from shared.models import (
    ConnectionStatus,
    DiscoveryPhase,
    OAuthToken,
    ToolDescriptor,
)

logger = get_logger(__name__)

# Async callable returning the current tool set of one server
ToolDiscoverer = Callable[[str], Awaitable[list[ToolDescriptor]]]


class ServerStatusStore(ABC):
    """Process-wide connection status and discovery progress."""

    @abstractmethod
    def get_connection_status(self, server_name: str) -> ConnectionStatus:
        """Status of a server; unknown servers are disconnected."""
        pass

    @abstractmethod
    def get_discovery_phase(self) -> DiscoveryPhase:
        pass

    @abstractmethod
    def requires_oauth(self, server_name: str) -> bool:
        """Whether the runtime has seen an auth challenge from this server."""
        pass


class ToolInventory(ABC):
    """Currently known tools, grouped by owning server."""

    @abstractmethod
    def list_tools(self, server_name: str) -> list[ToolDescriptor]:
        pass

    @abstractmethod
    async def rediscover_tools(self, server_name: str) -> None:
        """Replace the tool set of one server. Other servers are untouched."""
        pass


class OAuthTokenStore(ABC):
    """Per-server OAuth credentials."""

    @abstractmethod
    def get_token(self, server_name: str) -> Optional[OAuthToken]:
        pass

    @abstractmethod
    def is_token_expired(self, token: OAuthToken) -> bool:
        pass


class InMemoryStatusStore(ServerStatusStore):
    """Status table kept in process memory."""

    def __init__(self) -> None:
        self._statuses: dict[str, ConnectionStatus] = {}
        self._discovery_phase = DiscoveryPhase.NOT_STARTED
        self._requires_oauth: set[str] = set()

    def get_connection_status(self, server_name: str) -> ConnectionStatus:
        return self._statuses.get(server_name, ConnectionStatus.DISCONNECTED)

    def set_connection_status(self, server_name: str, status: ConnectionStatus) -> None:
        previous = self._statuses.get(server_name, ConnectionStatus.DISCONNECTED)
        self._statuses[server_name] = status
        if previous != status:
            logger.debug(
                "Server status changed",
                server=server_name,
                previous=previous.value,
                status=status.value
            )

    def get_discovery_phase(self) -> DiscoveryPhase:
        return self._discovery_phase

    def set_discovery_phase(self, phase: DiscoveryPhase) -> None:
        self._discovery_phase = phase
        logger.debug("Discovery phase changed", phase=phase.value)

    def requires_oauth(self, server_name: str) -> bool:
        return server_name in self._requires_oauth

    def mark_requires_oauth(self, server_name: str, required: bool = True) -> None:
        """Record (or clear) an auth challenge seen from a server."""
        if required:
            self._requires_oauth.add(server_name)
        else:
            self._requires_oauth.discard(server_name)

    def clear(self) -> None:
        self._statuses.clear()
        self._requires_oauth.clear()
        self._discovery_phase = DiscoveryPhase.NOT_STARTED


class InMemoryToolInventory(ToolInventory):
    """
    Tool inventory kept in process memory.

    Re-discovery delegates to an injected discoverer and swaps the
    server's tool set in one assignment, so readers see either the old
    or the new set.
    """

    def __init__(self, discoverer: Optional[ToolDiscoverer] = None) -> None:
        self._discoverer = discoverer
        self._tools: dict[str, tuple[ToolDescriptor, ...]] = {}
        self._builtin: list[ToolDescriptor] = []
        self._locks: dict[str, asyncio.Lock] = {}

    def register(self, tool: ToolDescriptor) -> None:
        """
        Register a single tool.

        Raises:
            ValueError: If the server already has a tool with this name
        """
        server_name = tool.server_name
        if server_name is None:
            self._builtin.append(tool)
            return

        existing = self._tools.get(server_name, ())
        if any(t.name == tool.name for t in existing):
            raise ValueError(
                f"Tool '{tool.name}' is already registered for server '{server_name}'"
            )
        self._tools[server_name] = (*existing, tool)

    def register_many(self, tools: list[ToolDescriptor]) -> None:
        for tool in tools:
            self.register(tool)

    def replace_server_tools(self, server_name: str, tools: list[ToolDescriptor]) -> None:
        """
        Replace every tool of a server.

        Raises:
            ValueError: If a tool belongs to a different server
        """
        for tool in tools:
            if tool.server_name != server_name:
                raise ValueError(
                    f"Tool '{tool.name}' does not belong to server '{server_name}'"
                )
        self._tools[server_name] = tuple(tools)
        logger.info("Server tools replaced", server=server_name, tool_count=len(tools))

    def list_tools(self, server_name: str) -> list[ToolDescriptor]:
        return list(self._tools.get(server_name, ()))

    def all_tools(self) -> list[ToolDescriptor]:
        tools = list(self._builtin)
        for server_tools in self._tools.values():
            tools.extend(server_tools)
        return tools

    def get_tool_count(self) -> dict[str, int]:
        """Get count of tools per server."""
        return {name: len(tools) for name, tools in self._tools.items()}

    async def rediscover_tools(self, server_name: str) -> None:
        if self._discoverer is None:
            raise DiscoveryError("No tool discoverer configured")

        lock = self._locks.setdefault(server_name, asyncio.Lock())
        async with lock:
            logger.debug("Re-discovering tools", server=server_name)
            try:
                tools = await self._discoverer(server_name)
            except DiscoveryError:
                raise
            except Exception as e:
                raise DiscoveryError(str(e)) from e
            self.replace_server_tools(server_name, tools)

    def clear(self) -> None:
        self._tools.clear()
        self._builtin.clear()


class InMemoryTokenStore(OAuthTokenStore):
    """
    OAuth tokens kept in process memory.

    A token counts as expired once it is within ``expiry_buffer`` of its
    expiry time, so it is refreshed before the server rejects it.
    """

    def __init__(self, expiry_buffer_seconds: int = 300) -> None:
        self.expiry_buffer = timedelta(seconds=expiry_buffer_seconds)
        self._tokens: dict[str, OAuthToken] = {}

    def get_token(self, server_name: str) -> Optional[OAuthToken]:
        return self._tokens.get(server_name)

    def save_token(self, server_name: str, token: OAuthToken) -> None:
        self._tokens[server_name] = token
        logger.info("OAuth token saved", server=server_name)

    def remove_token(self, server_name: str) -> bool:
        if server_name in self._tokens:
            del self._tokens[server_name]
            logger.info("OAuth token removed", server=server_name)
            return True
        return False

    def is_token_expired(self, token: OAuthToken) -> bool:
        if token.expires_at is None:
            return False
        expires_at = token.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at - self.expiry_buffer


# Global status store instance
_status_store: Optional[InMemoryStatusStore] = None


def get_status_store() -> InMemoryStatusStore:
    """Get the global status store instance."""
    global _status_store
    if _status_store is None:
        _status_store = InMemoryStatusStore()
    return _status_store
