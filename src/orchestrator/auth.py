"""Re-authentication flow for a single MCP server.

Runs authenticate -> re-discover tools -> refresh consumer tool list as an
explicit state machine. Only an unknown server, a failed authentication,
an already running flow or cancellation end the flow early; later stage
failures become warnings on a successful outcome.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from shared.config import ServerCatalog
from shared.errors import get_error_message
from shared.logging import bound_context, get_logger
from shared.models import (
    AuthErrorKind,
    AuthIssue,
    AuthOutcome,
    AuthResultStatus,
    AuthState,
    OAuthEndpoints,
    ServerConfig,
)
from mcp_status.stores import ToolInventory

logger = get_logger(__name__)


class OAuthAuthenticator(ABC):
    """Runs an interactive OAuth flow and stores the resulting token."""

    @abstractmethod
    async def authenticate(
        self,
        server_name: str,
        endpoints: OAuthEndpoints,
        server_url: Optional[str]
    ) -> None:
        """
        Authenticate with a server.

        Args:
            server_name: Configured server name
            endpoints: Configured endpoints, empty to discover them
            server_url: Server URL used for endpoint discovery

        Raises:
            AuthError: If authentication fails
        """
        pass


class ToolConsumer(ABC):
    """Downstream user of the tool list, such as a chat client."""

    @abstractmethod
    async def refresh_tools(self) -> None:
        pass


class ProgressObserver(ABC):
    """Receives free-text progress lines."""

    @abstractmethod
    def notify_progress(self, text: str) -> None:
        pass


class LoggingProgressObserver(ProgressObserver):
    """Writes progress lines to the structured log."""

    def notify_progress(self, text: str) -> None:
        logger.info("Auth progress", message=text)


def endpoints_for(config: ServerConfig) -> OAuthEndpoints:
    """OAuth endpoints from the server's config, or empty for discovery."""
    oauth = config.oauth
    if oauth is None:
        return OAuthEndpoints()
    return OAuthEndpoints(
        authorization_url=oauth.authorization_url or "",
        token_url=oauth.token_url or "",
        client_id=oauth.client_id,
        scopes=list(oauth.scopes),
    )


class _AuthFlow:
    """State of one invocation."""

    def __init__(self, server_name: str, orchestrator: "AuthOrchestrator") -> None:
        self.server_name = server_name
        self.state = AuthState.IDLE
        self.transitions: list[AuthState] = [AuthState.IDLE]
        self.warnings: list[AuthIssue] = []
        self.tools_rediscovered = False
        self.consumer_refreshed = False
        self._orchestrator = orchestrator

    def transition(self, state: AuthState, progress: str) -> None:
        logger.debug(
            "Auth flow transition",
            previous=self.state.value,
            state=state.value
        )
        self.state = state
        self.transitions.append(state)
        self._orchestrator._notify(progress)

    def warn(self, kind: AuthErrorKind, cause: str) -> None:
        self.warnings.append(AuthIssue(kind=kind, cause=cause))
        logger.warning("Auth flow warning", kind=kind.value, cause=cause)

    def fail(self, kind: AuthErrorKind, cause: str, message: str) -> AuthOutcome:
        self.transition(AuthState.FAILED, message)
        logger.error("Auth flow failed", kind=kind.value, cause=cause)
        return self._outcome(
            AuthResultStatus.FAILED,
            message,
            error=AuthIssue(kind=kind, cause=cause),
        )

    def done(self) -> AuthOutcome:
        name = self.server_name
        if self.tools_rediscovered and not self.warnings:
            status = AuthResultStatus.REFRESHED
            message = f"Successfully authenticated and refreshed tools for '{name}'."
        else:
            status = AuthResultStatus.PARTIAL
            if self.warnings:
                details = "; ".join(w.cause for w in self.warnings)
            else:
                details = "tools were not re-discovered"
            message = (
                f"Successfully authenticated with '{name}', "
                f"but tool refresh did not complete: {details}"
            )
        self.transition(AuthState.DONE, message)
        logger.info("Auth flow finished", status=status.value)
        return self._outcome(status, message)

    def _outcome(
        self,
        status: AuthResultStatus,
        message: str,
        error: Optional[AuthIssue] = None
    ) -> AuthOutcome:
        return AuthOutcome(
            server_name=self.server_name,
            state=self.state,
            status=status,
            message=message,
            error=error,
            warnings=list(self.warnings),
            transitions=list(self.transitions),
            tools_rediscovered=self.tools_rediscovered,
            consumer_refreshed=self.consumer_refreshed,
        )


class AuthOrchestrator:
    """
    Sequences OAuth authentication and tool refresh for one server.

    Flows for different servers are independent and may run concurrently.
    A second flow for a server that is still authenticating is rejected.
    """

    def __init__(
        self,
        catalog: ServerCatalog,
        authenticator: OAuthAuthenticator,
        inventory: Optional[ToolInventory] = None,
        consumer: Optional[ToolConsumer] = None,
        observer: Optional[ProgressObserver] = None
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            catalog: Configured servers, used to resolve names
            authenticator: External OAuth capability
            inventory: Tool inventory to re-discover into
            consumer: Optional downstream tool consumer
            observer: Progress observer; logs when omitted
        """
        self.catalog = catalog
        self.authenticator = authenticator
        self.inventory = inventory
        self.consumer = consumer
        self.observer = observer or LoggingProgressObserver()
        self._active: set[str] = set()
        self._outcomes: dict[str, AuthOutcome] = {}

    def is_active(self, server_name: str) -> bool:
        return server_name in self._active

    def last_outcome(self, server_name: str) -> Optional[AuthOutcome]:
        """Terminal outcome of the most recent flow for a configured server."""
        return self._outcomes.get(server_name)

    def _notify(self, text: str) -> None:
        try:
            self.observer.notify_progress(text)
        except Exception as e:
            logger.warning("Progress observer failed", error=str(e))

    async def authenticate(self, server_name: str) -> AuthOutcome:
        """
        Authenticate with a server and refresh its tools.

        Args:
            server_name: Configured server name

        Returns:
            Terminal outcome of the flow

        Raises:
            asyncio.CancelledError: If cancelled; the FAILED outcome is
                still recorded and available from ``last_outcome``
        """
        with bound_context(server=server_name):
            flow = _AuthFlow(server_name, self)

            # Outcomes are kept per configured server only
            config = self.catalog.get(server_name)
            if config is None:
                return flow.fail(
                    AuthErrorKind.UNKNOWN_SERVER,
                    f"unknown server '{server_name}'",
                    f"MCP server '{server_name}' not found.",
                )

            if server_name in self._active:
                return flow.fail(
                    AuthErrorKind.ALREADY_IN_PROGRESS,
                    "another authentication is running",
                    f"Authentication for MCP server '{server_name}' is already in progress.",
                )

            self._active.add(server_name)
            try:
                outcome = await self._run(flow, config)
            except asyncio.CancelledError:
                self._record(flow.fail(
                    AuthErrorKind.CANCELLED,
                    "cancelled",
                    f"Authentication with MCP server '{server_name}' was cancelled.",
                ))
                raise
            finally:
                self._active.discard(server_name)

            return self._record(outcome)

    def _record(self, outcome: AuthOutcome) -> AuthOutcome:
        self._outcomes[outcome.server_name] = outcome
        return outcome

    async def _run(self, flow: _AuthFlow, config: ServerConfig) -> AuthOutcome:
        name = config.name

        flow.transition(
            AuthState.AUTHENTICATING,
            f"Starting OAuth authentication for MCP server '{name}'...",
        )
        try:
            await self.authenticator.authenticate(name, endpoints_for(config), config.server_url)
        except Exception as e:
            cause = get_error_message(e)
            return flow.fail(
                AuthErrorKind.AUTHENTICATION_FAILED,
                cause,
                f"Failed to authenticate with MCP server '{name}': {cause}",
            )
        self._notify(f"✅ Successfully authenticated with MCP server '{name}'!")

        if self.inventory is not None:
            flow.transition(AuthState.REDISCOVERING, f"Re-discovering tools from '{name}'...")
            try:
                await self.inventory.rediscover_tools(name)
                flow.tools_rediscovered = True
            except Exception as e:
                flow.warn(
                    AuthErrorKind.DISCOVERY_FAILED,
                    f"tool re-discovery failed: {get_error_message(e)}",
                )
        else:
            flow.transition(
                AuthState.REDISCOVERING,
                f"No tool inventory available; skipping re-discovery for '{name}'.",
            )

        if self.consumer is not None:
            flow.transition(AuthState.REFRESHING_CONSUMER, "Refreshing tool list...")
            try:
                await self.consumer.refresh_tools()
                flow.consumer_refreshed = True
            except Exception as e:
                flow.warn(
                    AuthErrorKind.REFRESH_FAILED,
                    f"tool list refresh failed: {get_error_message(e)}",
                )
        else:
            flow.transition(AuthState.REFRESHING_CONSUMER, "No tool consumer to refresh.")

        return flow.done()
