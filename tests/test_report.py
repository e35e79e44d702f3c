"""Tests for status snapshots and the status report builder."""

import pytest

from shared.models import (
    ConnectionStatus,
    DiscoveryPhase,
    EmptyConfiguration,
    OAuthSettings,
    OAuthTokenState,
    ServerConfig,
    StatusReport,
    ToolDescriptor,
)


def make_tools(server_name: str, count: int) -> list[ToolDescriptor]:
    return [
        ToolDescriptor.for_server(server_name, f"tool_{i}", description=f"Tool {i}")
        for i in range(count)
    ]


def build(
    configs,
    blocked=(),
    statuses=None,
    discovery=DiscoveryPhase.COMPLETED,
    tools=None,
    tokens=None,
    requires_oauth=(),
):
    from mcp_status.report import StatusReportBuilder

    statuses = statuses or {}
    tools = tools or {}
    tokens = tokens or {}

    return StatusReportBuilder(docs_url="https://docs.example/mcp").build(
        list(configs),
        list(blocked),
        status_of=lambda name: statuses.get(name, ConnectionStatus.DISCONNECTED),
        discovery=discovery,
        tools_of=lambda name: tools.get(name, []),
        token_state_of=lambda name: tokens.get(name, OAuthTokenState.absent()),
        requires_oauth_hint=lambda name: name in requires_oauth,
    )


class TestStatusReportBuilder:
    """Tests for StatusReportBuilder.build."""

    def test_entries_preserve_order_with_blocked_last(self):
        """Test that N configured and M blocked servers give N + M ordered entries."""
        configs = [ServerConfig(name=n) for n in ("zeta", "alpha", "mid")]
        blocked = [ServerConfig(name="blocked_b"), ServerConfig(name="blocked_a")]

        report = build(configs, blocked)

        assert isinstance(report, StatusReport)
        assert [e.name for e in report.entries] == [
            "zeta", "alpha", "mid", "blocked_b", "blocked_a"
        ]
        assert report.blocked_names == ("blocked_b", "blocked_a")
        assert [e.blocked for e in report.entries] == [False, False, False, True, True]

    def test_only_blocked_servers_is_a_report(self):
        """Test that blocked-only configuration still produces a report."""
        report = build([], [ServerConfig(name="blocked")])

        assert isinstance(report, StatusReport)
        assert len(report.entries) == 1

    def test_empty_configuration(self):
        """Test that no servers at all yields EmptyConfiguration."""
        result = build([], [])

        assert isinstance(result, EmptyConfiguration)
        assert result.docs_url == "https://docs.example/mcp"

    def test_connected_server_reports_live_tool_count(self):
        """Test that a connected server reports its tool count as live."""
        report = build(
            [ServerConfig(name="alpha")],
            statuses={"alpha": ConnectionStatus.CONNECTED},
            tools={"alpha": make_tools("alpha", 3)},
        )

        entry = report.entry("alpha")
        assert entry.tool_count == 3
        assert entry.live is True

    def test_disconnected_server_reports_cached_tools(self):
        """Test that a disconnected server keeps its cached tools without liveness."""
        report = build(
            [ServerConfig(name="alpha")],
            tools={"alpha": make_tools("alpha", 2)},
        )

        entry = report.entry("alpha")
        assert entry.tool_count == 2
        assert entry.live is False

    def test_oauth_server_without_token_needs_auth(self):
        """Test the hint for a disconnected OAuth server with no token."""
        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        report = build([config])

        assert report.entry("secure").needs_auth_hint is True

    def test_oauth_server_with_valid_token_needs_no_auth(self):
        """Test that a present, unexpired token clears the hint."""
        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        report = build(
            [config],
            tokens={"secure": OAuthTokenState(present=True, expired=False)},
        )

        assert report.entry("secure").needs_auth_hint is False

    def test_oauth_server_with_expired_token_needs_auth(self):
        """Test that an expired token does not clear the hint."""
        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        report = build(
            [config],
            tokens={"secure": OAuthTokenState(present=True, expired=True)},
        )

        assert report.entry("secure").needs_auth_hint is True

    def test_auth_challenge_without_oauth_block_needs_auth(self):
        """Test that a previously seen auth challenge sets the hint on its own."""
        report = build([ServerConfig(name="plain")], requires_oauth={"plain"})

        assert report.entry("plain").needs_auth_hint is True

    def test_oauth_enabled_overrides_missing_challenge(self):
        """Test that oauth.enabled sets the hint even when no challenge was seen."""
        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        report = build([config], requires_oauth=set())

        assert report.entry("secure").needs_auth_hint is True

    def test_plain_server_needs_no_auth(self):
        """Test that servers without OAuth signals get no hint."""
        report = build([ServerConfig(name="plain")])

        assert report.entry("plain").needs_auth_hint is False

    @pytest.mark.parametrize(
        "status", [ConnectionStatus.CONNECTED, ConnectionStatus.CONNECTING]
    )
    def test_only_disconnected_servers_need_auth(self, status):
        """Test that the hint is only given while disconnected."""
        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        report = build([config], statuses={"secure": status})

        assert report.entry("secure").needs_auth_hint is False

    def test_tool_lookup_failure_is_isolated(self):
        """Test that one failing tool lookup does not break the report."""
        from mcp_status.report import StatusReportBuilder

        def tools_of(name):
            if name == "broken":
                raise RuntimeError("inventory offline")
            return make_tools(name, 1)

        report = StatusReportBuilder().build(
            [ServerConfig(name="ok"), ServerConfig(name="broken")],
            [],
            status_of=lambda name: ConnectionStatus.CONNECTED,
            discovery=DiscoveryPhase.COMPLETED,
            tools_of=tools_of,
            token_state_of=lambda name: OAuthTokenState.absent(),
            requires_oauth_hint=lambda name: False,
        )

        assert report.entry("ok").tool_count == 1
        broken = report.entry("broken")
        assert broken.status == ConnectionStatus.CONNECTED
        assert broken.tool_count == 0
        assert "inventory offline" in broken.issues[0]

    def test_token_lookup_failure_reports_token_absent(self):
        """Test that a failing token lookup degrades to an absent token."""
        from mcp_status.report import StatusReportBuilder

        config = ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))

        def token_state_of(name):
            raise OSError("keychain locked")

        report = StatusReportBuilder().build(
            [config],
            [],
            status_of=lambda name: ConnectionStatus.DISCONNECTED,
            discovery=DiscoveryPhase.COMPLETED,
            tools_of=lambda name: [],
            token_state_of=token_state_of,
            requires_oauth_hint=lambda name: False,
        )

        entry = report.entry("secure")
        assert entry.token_state.present is False
        assert entry.needs_auth_hint is True
        assert any("keychain locked" in issue for issue in entry.issues)

    def test_duplicate_configured_names_rejected(self):
        """Test that repeated server names are rejected."""
        with pytest.raises(ValueError, match="more than once"):
            build([ServerConfig(name="dup"), ServerConfig(name="dup")])

    def test_configured_and_blocked_overlap_rejected(self):
        """Test that a server cannot be both configured and blocked."""
        with pytest.raises(ValueError, match="both configured and blocked"):
            build([ServerConfig(name="x")], [ServerConfig(name="x")])

    def test_starting_up_state(self):
        """Test connecting count and start-up detection."""
        report = build(
            [ServerConfig(name="a"), ServerConfig(name="b")],
            statuses={"a": ConnectionStatus.CONNECTING},
        )
        assert report.connecting_count == 1
        assert report.is_starting_up is True

        report = build(
            [ServerConfig(name="a")],
            discovery=DiscoveryPhase.IN_PROGRESS,
        )
        assert report.connecting_count == 0
        assert report.is_starting_up is True

        report = build([ServerConfig(name="a")])
        assert report.is_starting_up is False

    def test_build_is_deterministic(self):
        """Test that identical inputs give identical reports."""
        configs = [ServerConfig(name="a", oauth=OAuthSettings(enabled=True))]
        kwargs = dict(
            statuses={"a": ConnectionStatus.DISCONNECTED},
            tools={"a": make_tools("a", 2)},
        )

        assert build(configs, **kwargs) == build(configs, **kwargs)


class TestStatusSnapshot:
    """Tests for capture_snapshot."""

    def test_capture_from_stores(self):
        """Test that a snapshot mirrors the stores at capture time."""
        from datetime import datetime, timedelta, timezone

        from mcp_status.report import StatusReportBuilder
        from mcp_status.snapshot import capture_snapshot
        from mcp_status.stores import (
            InMemoryStatusStore,
            InMemoryTokenStore,
            InMemoryToolInventory,
        )
        from shared.models import OAuthToken

        status_store = InMemoryStatusStore()
        status_store.set_connection_status("alpha", ConnectionStatus.CONNECTED)
        status_store.set_discovery_phase(DiscoveryPhase.COMPLETED)
        status_store.mark_requires_oauth("beta")

        inventory = InMemoryToolInventory()
        inventory.register_many(make_tools("alpha", 3))

        token_store = InMemoryTokenStore()
        token_store.save_token("beta", OAuthToken(
            access_token="abc",
            expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        ))

        servers = [ServerConfig(name="alpha"), ServerConfig(name="beta")]
        snapshot = capture_snapshot(servers, status_store, inventory, token_store)

        # Later store changes do not leak into the snapshot
        status_store.set_connection_status("alpha", ConnectionStatus.DISCONNECTED)
        inventory.replace_server_tools("alpha", [])

        report = StatusReportBuilder().build_from_snapshot(servers, [], snapshot)

        alpha = report.entry("alpha")
        assert alpha.status == ConnectionStatus.CONNECTED
        assert alpha.tool_count == 3

        beta = report.entry("beta")
        assert beta.token_state == OAuthTokenState(present=True, expired=True)
        assert beta.needs_auth_hint is True

    def test_capture_records_store_failures(self):
        """Test that a failing store is recorded and surfaces as an entry issue."""
        from unittest.mock import Mock

        from mcp_status.report import StatusReportBuilder
        from mcp_status.snapshot import TOKEN_STORE, capture_snapshot
        from mcp_status.stores import InMemoryStatusStore, OAuthTokenStore
        from shared.errors import StoreUnavailableError

        token_store = Mock(spec=OAuthTokenStore)
        token_store.get_token.side_effect = RuntimeError("storage unavailable")

        servers = [ServerConfig(name="secure", oauth=OAuthSettings(enabled=True))]
        snapshot = capture_snapshot(servers, InMemoryStatusStore(), None, token_store)

        assert snapshot.failures[TOKEN_STORE]["secure"] == "storage unavailable"
        with pytest.raises(StoreUnavailableError):
            snapshot.token_state_of("secure")

        report = StatusReportBuilder().build_from_snapshot(servers, [], snapshot)
        entry = report.entry("secure")
        assert entry.token_state.present is False
        assert any("storage unavailable" in issue for issue in entry.issues)

    def test_capture_records_oauth_flag_failure(self):
        """Test that a failing OAuth requirement lookup surfaces as an entry issue."""
        from unittest.mock import Mock

        from mcp_status.report import StatusReportBuilder
        from mcp_status.snapshot import OAUTH_FLAGS, capture_snapshot
        from mcp_status.stores import InMemoryStatusStore
        from shared.errors import StoreUnavailableError

        status_store = InMemoryStatusStore()
        status_store.requires_oauth = Mock(side_effect=RuntimeError("flag table down"))

        servers = [ServerConfig(name="alpha")]
        snapshot = capture_snapshot(servers, status_store, None, None)

        assert snapshot.failures[OAUTH_FLAGS]["alpha"] == "flag table down"
        with pytest.raises(StoreUnavailableError):
            snapshot.requires_oauth_hint("alpha")

        report = StatusReportBuilder().build_from_snapshot(servers, [], snapshot)
        entry = report.entry("alpha")
        assert entry.needs_auth_hint is False
        assert any(
            issue.startswith("OAuth requirement unknown:") and "flag table down" in issue
            for issue in entry.issues
        )

    def test_missing_inventory_means_no_tools(self):
        """Test that a snapshot without an inventory reports no tools."""
        from mcp_status.snapshot import capture_snapshot
        from mcp_status.stores import InMemoryStatusStore

        snapshot = capture_snapshot(
            [ServerConfig(name="alpha")], InMemoryStatusStore(), None, None
        )

        assert snapshot.tools_of("alpha") == []
        assert snapshot.token_state_of("alpha") == OAuthTokenState.absent()
