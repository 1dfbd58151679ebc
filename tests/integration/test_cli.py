"""
Integration tests for the CLI.

Tests cover:
- evaluate: exit codes, JSON output, load errors
- route: dispatch, denial, mesh failures
- check-policies
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from infranet import __version__
from infranet.cli import EXIT_ALLOWED, EXIT_DENIED, EXIT_LOAD_ERROR, app
from infranet.schema import InfranetRouteKind


runner = CliRunner()


def _write_packet(directory: Path, packet, name: str = "packet.json") -> Path:
    path = directory / name
    path.write_text(packet.model_dump_json())
    return path


def _write_routes(directory: Path, routes: list[dict]) -> Path:
    path = directory / "routes.json"
    path.write_text(json.dumps({"routes": routes}))
    return path


@pytest.fixture
def allowed_packet(temp_dir: Path, make_packet) -> Path:
    return _write_packet(temp_dir, make_packet())


@pytest.fixture
def denied_packet(temp_dir: Path, make_packet) -> Path:
    return _write_packet(temp_dir, make_packet(capability={"actuation_rights": "ConfigOnly"}))


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestEvaluateCommand:
    """Tests for `infranet evaluate`."""

    def test_allowed(self, allowed_packet: Path, policy_dir: Path) -> None:
        result = runner.invoke(app, ["evaluate", str(allowed_packet), "--policies", str(policy_dir)])
        assert result.exit_code == EXIT_ALLOWED
        assert "allow" in result.stdout

    def test_denied(self, denied_packet: Path, policy_dir: Path) -> None:
        result = runner.invoke(app, ["evaluate", str(denied_packet), "--policies", str(policy_dir)])
        assert result.exit_code == EXIT_DENIED
        assert "denied" in result.stdout

    def test_json_output(self, denied_packet: Path, policy_dir: Path) -> None:
        result = runner.invoke(
            app, ["evaluate", str(denied_packet), "--policies", str(policy_dir), "--json"]
        )
        assert result.exit_code == EXIT_DENIED
        data = json.loads(result.stdout)
        assert data["route"] == "GovernanceChat"
        assert data["decision"]["kind"] == "deny"
        assert data["decision"]["rule_matched"] == "chat_non_actuating"
        assert data["firewall"] == "Allow"

    def test_unclassified_route_has_no_firewall_verdict(
        self, temp_dir: Path, make_packet, policy_dir: Path
    ) -> None:
        path = _write_packet(temp_dir, make_packet(route=InfranetRouteKind.BIO_TELEMETRY))
        result = runner.invoke(app, ["evaluate", str(path), "--policies", str(policy_dir), "--json"])
        assert result.exit_code == EXIT_ALLOWED
        assert json.loads(result.stdout)["firewall"] is None

    def test_policy_dir_from_env(self, allowed_packet: Path, policy_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["evaluate", str(allowed_packet)],
            env={"INFRANET_POLICY_DIR": str(policy_dir)},
        )
        assert result.exit_code == EXIT_ALLOWED

    def test_missing_policies(self, allowed_packet: Path, temp_dir: Path) -> None:
        result = runner.invoke(
            app, ["evaluate", str(allowed_packet), "--policies", str(temp_dir / "nope"), "--json"]
        )
        assert result.exit_code == EXIT_LOAD_ERROR
        data = json.loads(result.stdout)
        assert data["error"] is True
        assert data["error_type"] == "PolicyLoadError"

    def test_malformed_packet(self, temp_dir: Path, policy_dir: Path) -> None:
        path = temp_dir / "packet.json"
        path.write_text(json.dumps({"route": "Teleport"}))
        result = runner.invoke(app, ["evaluate", str(path), "--policies", str(policy_dir), "--json"])
        assert result.exit_code == EXIT_LOAD_ERROR
        assert json.loads(result.stdout)["error_type"] == "PacketLoadError"

    def test_truncated_packet(self, temp_dir: Path, policy_dir: Path) -> None:
        """A syntax error in the packet file is a load error, not a denial."""
        path = temp_dir / "packet.json"
        path.write_text('{"route": "GovernanceChat", "src": [unclosed')
        result = runner.invoke(app, ["evaluate", str(path), "--policies", str(policy_dir), "--json"])
        assert result.exit_code == EXIT_LOAD_ERROR
        data = json.loads(result.stdout)
        assert data["error_type"] == "PacketLoadError"
        assert data["context"]["path"] == str(path.resolve())


class TestRouteCommand:
    """Tests for `infranet route`."""

    def test_dispatch_on_lowest_risk_route(
        self, allowed_packet: Path, policy_dir: Path, temp_dir: Path
    ) -> None:
        routes = _write_routes(
            temp_dir,
            [
                {"path_id": "risky", "hops": ["a"], "roh_path_slice": {"roh_before": 0.2, "roh_after": 0.2, "roh_ceiling": 0.3}},
                {"path_id": "calm", "hops": ["b", "c"], "roh_path_slice": {"roh_before": 0.05, "roh_after": 0.05, "roh_ceiling": 0.3}},
            ],
        )
        result = runner.invoke(
            app,
            ["route", str(allowed_packet), "--routes", str(routes), "--policies", str(policy_dir), "--json"],
        )
        assert result.exit_code == EXIT_ALLOWED
        data = json.loads(result.stdout)
        assert data["route"]["path_id"] == "calm"
        assert data["route"]["hops"] == ["b", "c"]

    def test_denied_packet_not_routed(
        self, denied_packet: Path, policy_dir: Path, temp_dir: Path
    ) -> None:
        routes = _write_routes(temp_dir, [{"path_id": "direct"}])
        result = runner.invoke(
            app,
            ["route", str(denied_packet), "--routes", str(routes), "--policies", str(policy_dir), "--json"],
        )
        assert result.exit_code == EXIT_DENIED
        data = json.loads(result.stdout)
        assert data["route"] is None
        assert data["decision"]["kind"] == "deny"

    def test_no_admissible_route(
        self, allowed_packet: Path, policy_dir: Path, temp_dir: Path
    ) -> None:
        routes = _write_routes(
            temp_dir,
            [{"path_id": "hot", "roh_path_slice": {"roh_before": 0.4, "roh_after": 0.4, "roh_ceiling": 0.5}}],
        )
        result = runner.invoke(
            app,
            ["route", str(allowed_packet), "--routes", str(routes), "--policies", str(policy_dir), "--json"],
        )
        assert result.exit_code == EXIT_DENIED
        data = json.loads(result.stdout)
        assert data["error"]["error_type"] == "NoAdmissibleRouteError"

    def test_malformed_routes_file(
        self, allowed_packet: Path, policy_dir: Path, temp_dir: Path
    ) -> None:
        routes = temp_dir / "routes.yaml"
        routes.write_text("routes:\n  - path_id: [direct\n")
        result = runner.invoke(
            app,
            ["route", str(allowed_packet), "--routes", str(routes), "--policies", str(policy_dir), "--json"],
        )
        assert result.exit_code == EXIT_LOAD_ERROR
        assert json.loads(result.stdout)["error_type"] == "PacketLoadError"

    def test_console_output(self, allowed_packet: Path, policy_dir: Path, temp_dir: Path) -> None:
        routes = _write_routes(temp_dir, [{"path_id": "direct"}])
        result = runner.invoke(
            app, ["route", str(allowed_packet), "--routes", str(routes), "--policies", str(policy_dir)]
        )
        assert result.exit_code == EXIT_ALLOWED
        assert "direct" in result.stdout


class TestCheckPoliciesCommand:
    """Tests for `infranet check-policies`."""

    def test_check_policies(self, policy_dir: Path) -> None:
        result = runner.invoke(app, ["check-policies", "--policies", str(policy_dir), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["neurorights"]["mental_privacy"] is True
        assert data["tsafe"]["roh_ceiling"] == 0.3

    def test_check_policies_table(self, policy_dir: Path) -> None:
        result = runner.invoke(app, ["check-policies", "--policies", str(policy_dir)])
        assert result.exit_code == 0
        assert "roh_ceiling" in result.stdout

    def test_malformed(self, policy_dir: Path) -> None:
        (policy_dir / "tsafe.aln").write_text("not json")
        result = runner.invoke(app, ["check-policies", "--policies", str(policy_dir), "--json"])
        assert result.exit_code == EXIT_LOAD_ERROR
        assert json.loads(result.stdout)["error_type"] == "PolicyDocumentMalformedError"
