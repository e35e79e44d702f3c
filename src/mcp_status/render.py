"""Text rendering of status reports for terminal output."""

import json

from pydantic import BaseModel, ConfigDict

from shared.models import (
    ConnectionStatus,
    EmptyConfiguration,
    ServerStatusEntry,
    StatusReport,
)

BOLD = "\u001b[1m"
GREEN = "\u001b[32m"
YELLOW = "\u001b[33m"
RED = "\u001b[31m"
CYAN = "\u001b[36m"
GREY = "\u001b[90m"
RESET = "\u001b[0m"

STATUS_DISPLAY = {
    ConnectionStatus.CONNECTED: ("🟢", "Ready"),
    ConnectionStatus.CONNECTING: ("🔄", "Starting... (first startup may take longer)"),
    ConnectionStatus.DISCONNECTED: ("🔴", "Disconnected"),
}


class ListOptions(BaseModel):
    """What to include when listing servers."""
    model_config = ConfigDict(frozen=True)

    show_descriptions: bool = False
    show_schema: bool = False
    show_tips: bool = False


def parse_list_args(args: str) -> ListOptions:
    """
    Parse the words given to the list command.

    ``desc`` or ``schema`` turn descriptions on, ``nodesc`` turns them off
    and wins over both. Tips are shown only when no words are given.
    """
    words = [w for w in args.lower().split() if w]

    has_desc = "desc" in words or "descriptions" in words
    has_nodesc = "nodesc" in words or "nodescriptions" in words
    show_schema = "schema" in words

    return ListOptions(
        show_descriptions=not has_nodesc and (has_desc or show_schema),
        show_schema=show_schema,
        show_tips=not words,
    )


class _Palette:
    def __init__(self, color: bool) -> None:
        self.bold = BOLD if color else ""
        self.green = GREEN if color else ""
        self.yellow = YELLOW if color else ""
        self.red = RED if color else ""
        self.cyan = CYAN if color else ""
        self.grey = GREY if color else ""
        self.reset = RESET if color else ""


def render_empty_configuration(outcome: EmptyConfiguration) -> str:
    """Onboarding text shown when no servers are configured."""
    return (
        "No MCP servers configured. Please open the following URL "
        f"in your browser to view documentation:\n{outcome.docs_url}"
    )


def _indented(text: str, indent: str, color: str, reset: str) -> str:
    return "".join(
        f"{indent}{color}{line}{reset}\n"
        for line in text.strip().split("\n")
    )


def _oauth_label(entry: ServerStatusEntry, p: _Palette) -> str:
    if not entry.config.oauth_enabled:
        return ""
    state = entry.token_state
    if state.present and state.expired:
        return f" {p.yellow}(OAuth token expired){p.reset}"
    if state.valid:
        return f" {p.green}(OAuth authenticated){p.reset}"
    return f" {p.red}(OAuth not authenticated){p.reset}"


def _tool_count_label(entry: ServerStatusEntry) -> str:
    if entry.status == ConnectionStatus.CONNECTED:
        return f" ({entry.tool_count} tools)"
    if entry.status == ConnectionStatus.CONNECTING:
        return " (tools will appear when ready)"
    return f" ({entry.tool_count} tools cached)"


def _render_entry(entry: ServerStatusEntry, options: ListOptions, p: _Palette) -> str:
    indicator, status_text = STATUS_DISPLAY[entry.status]
    config = entry.config

    out = f"{indicator} {p.bold}{config.display_name}{p.reset} - {status_text}"
    out += _oauth_label(entry, p)
    out += _tool_count_label(entry)

    if options.show_descriptions and config.description and config.description.strip():
        out += ":\n" + _indented(config.description, "    ", p.green, p.reset)
    else:
        out += "\n"
    out += p.reset

    for issue in entry.issues:
        out += f"  {p.grey}({issue}){p.reset}\n"

    if entry.tools:
        for tool in entry.tools:
            if options.show_descriptions and tool.description and tool.description.strip():
                out += f"  - {p.cyan}{tool.name}{p.reset}:\n"
                out += _indented(tool.description, "      ", p.green, p.reset)
            else:
                out += f"  - {p.cyan}{tool.name}{p.reset}\n"

            if options.show_schema and tool.parameter_schema:
                out += f"    {p.cyan}Parameters:{p.reset}\n"
                out += _indented(
                    json.dumps(tool.parameter_schema, indent=2),
                    "      ",
                    p.green,
                    p.reset,
                )
    else:
        out += "  No tools available"
        if entry.needs_auth_hint:
            out += (
                f' {p.grey}(type: "/mcp auth {config.name}" '
                f"to authenticate this server){p.reset}"
            )
        out += "\n"

    return out + "\n"


def _render_tips(p: _Palette) -> str:
    return (
        "\n"
        f"{p.cyan}💡 Tips:{p.reset}\n"
        f"  • Use {p.cyan}/mcp desc{p.reset} to show server and tool descriptions\n"
        f"  • Use {p.cyan}/mcp schema{p.reset} to show tool parameter schemas\n"
        f"  • Use {p.cyan}/mcp nodesc{p.reset} to hide descriptions\n"
        f"  • Use {p.cyan}/mcp auth <server-name>{p.reset} to authenticate "
        "with OAuth-enabled servers\n"
        f"  • Press {p.cyan}Ctrl+T{p.reset} to toggle tool descriptions on/off\n"
        "\n"
    )


def render_report(
    report: StatusReport,
    options: ListOptions = ListOptions(),
    color: bool = True
) -> str:
    """
    Render a status report as terminal text.

    Args:
        report: Report to render
        options: Description, schema and tips toggles
        color: Emit ANSI color codes

    Returns:
        Multi-line report text
    """
    p = _Palette(color)
    out = ""

    if report.is_starting_up:
        out += (
            f"{p.yellow}⏳ MCP servers are starting up "
            f"({report.connecting_count} initializing)...{p.reset}\n"
        )
        out += (
            f"{p.cyan}Note: First startup may take longer. "
            f"Tool availability will update automatically.{p.reset}\n\n"
        )

    out += "Configured MCP servers:\n\n"

    for entry in report.configured_entries:
        out += _render_entry(entry, options, p)

    for entry in report.blocked_entries:
        out += f"🔴 {p.bold}{entry.config.display_name}{p.reset} - Blocked\n\n"

    if options.show_tips:
        out += _render_tips(p)

    return out + p.reset
