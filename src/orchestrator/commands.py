"""MCP commands: list server status and authenticate a server.

Thin layer that snapshots the live stores, builds and renders status
reports, and turns auth flow outcomes into command messages.
"""

from typing import Optional

from shared.config import ServerCatalog, Settings, get_settings, load_server_catalog
from shared.logging import get_logger, setup_logging
from shared.models import (
    AuthResultStatus,
    CommandMessage,
    EmptyConfiguration,
    MessageType,
)
from mcp_status.render import parse_list_args, render_empty_configuration, render_report
from mcp_status.report import StatusReportBuilder
from mcp_status.snapshot import capture_snapshot
from mcp_status.stores import (
    InMemoryTokenStore,
    InMemoryToolInventory,
    OAuthTokenStore,
    ServerStatusStore,
    ToolDiscoverer,
    ToolInventory,
    get_status_store,
)
from orchestrator.auth import (
    AuthOrchestrator,
    OAuthAuthenticator,
    ProgressObserver,
    ToolConsumer,
)

logger = get_logger(__name__)


class McpCommands:
    """
    Entry points behind the ``/mcp`` command.

    - ``run``: route ``list`` and ``auth`` subcommands, listing by default
    - ``list_servers``: status of every configured and blocked server
    - ``auth``: list OAuth servers, or authenticate one by name
    - ``complete``: server name completion for ``auth``
    """

    def __init__(
        self,
        catalog: ServerCatalog,
        status_store: ServerStatusStore,
        orchestrator: AuthOrchestrator,
        inventory: Optional[ToolInventory] = None,
        token_store: Optional[OAuthTokenStore] = None,
        builder: Optional[StatusReportBuilder] = None,
        color: bool = True
    ) -> None:
        self.catalog = catalog
        self.status_store = status_store
        self.orchestrator = orchestrator
        self.inventory = inventory
        self.token_store = token_store
        self.builder = builder or StatusReportBuilder()
        self.color = color

    def list_servers(self, args: str = "") -> CommandMessage:
        """
        Render the status of all servers.

        Args:
            args: Words such as ``desc``, ``nodesc`` or ``schema``

        Returns:
            Info message with the rendered report, or onboarding text
        """
        options = parse_list_args(args)
        servers = list(self.catalog.servers)
        blocked = list(self.catalog.blocked)

        snapshot = capture_snapshot(servers, self.status_store, self.inventory, self.token_store)
        result = self.builder.build_from_snapshot(servers, blocked, snapshot)

        if isinstance(result, EmptyConfiguration):
            return CommandMessage(content=render_empty_configuration(result))

        logger.debug(
            "Status report built",
            servers=len(result.entries),
            blocked=len(result.blocked_names),
            discovery=result.discovery_phase.value
        )
        return CommandMessage(content=render_report(result, options, color=self.color))

    async def auth(self, args: str = "") -> CommandMessage:
        """
        Authenticate with an OAuth-enabled server.

        With no server name, lists the servers that have OAuth enabled.
        """
        server_name = args.strip()

        if not server_name:
            oauth_servers = [server.name for server in self.catalog.oauth_servers()]
            if not oauth_servers:
                return CommandMessage(
                    content="No MCP servers configured with OAuth authentication."
                )
            listing = "\n".join(f"  - {name}" for name in oauth_servers)
            return CommandMessage(
                content=(
                    f"MCP servers with OAuth authentication:\n{listing}\n\n"
                    "Use /mcp auth <server-name> to authenticate."
                )
            )

        outcome = await self.orchestrator.authenticate(server_name)
        message_type = (
            MessageType.ERROR
            if outcome.status == AuthResultStatus.FAILED
            else MessageType.INFO
        )
        return CommandMessage(message_type=message_type, content=outcome.message)

    async def run(self, args: str = "") -> CommandMessage:
        """
        Dispatch a full ``/mcp`` argument string.

        The first word selects ``list`` or ``auth``; anything else is
        passed whole to ``list_servers``.
        """
        subcommand, _, rest = args.strip().partition(" ")
        if subcommand == "auth":
            return await self.auth(rest)
        if subcommand == "list":
            return self.list_servers(rest)
        return self.list_servers(args)

    def complete(self, partial: str) -> list[str]:
        """Configured server names starting with ``partial``."""
        return [name for name in self.catalog.names() if name.startswith(partial)]


def create_mcp_commands(
    authenticator: OAuthAuthenticator,
    settings: Optional[Settings] = None,
    discoverer: Optional[ToolDiscoverer] = None,
    consumer: Optional[ToolConsumer] = None,
    observer: Optional[ProgressObserver] = None
) -> McpCommands:
    """
    Wire the commands from settings.

    Loads the server catalog, configures logging and uses the global
    status store together with fresh in-memory tool and token stores.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, json_output=settings.json_logs)

    catalog = load_server_catalog(settings.servers_path)
    inventory = InMemoryToolInventory(discoverer=discoverer)
    token_store = InMemoryTokenStore(
        expiry_buffer_seconds=settings.token_expiry_buffer_seconds
    )

    orchestrator = AuthOrchestrator(
        catalog=catalog,
        authenticator=authenticator,
        inventory=inventory,
        consumer=consumer,
        observer=observer,
    )

    logger.info(
        "MCP commands ready",
        servers=len(catalog.servers),
        blocked=len(catalog.blocked),
        servers_path=settings.servers_path
    )

    return McpCommands(
        catalog=catalog,
        status_store=get_status_store(),
        orchestrator=orchestrator,
        inventory=inventory,
        token_store=token_store,
        builder=StatusReportBuilder(docs_url=settings.docs_url),
    )
