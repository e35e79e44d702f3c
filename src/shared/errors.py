"""Exception hierarchy shared by the status and auth components."""


class McpStatusError(Exception):
    """Base exception for MCP status errors."""
    pass


class StoreUnavailableError(McpStatusError):
    """A backing store could not answer for a server."""

    def __init__(self, store: str, server_name: str, cause: str) -> None:
        self.store = store
        self.server_name = server_name
        self.cause = cause
        super().__init__(f"{store} unavailable for '{server_name}': {cause}")


class AuthError(McpStatusError):
    """OAuth authentication with a server failed."""
    pass


class DiscoveryError(McpStatusError):
    """Tool re-discovery for a server failed."""
    pass


def get_error_message(error: BaseException) -> str:
    """Human-readable text for an exception, falling back to its class name."""
    message = str(error).strip()
    return message or type(error).__name__
