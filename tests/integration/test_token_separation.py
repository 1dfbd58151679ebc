"""
Integration tests for token separation through the full guard.

Tests cover the admission scenarios end to end: policy documents on disk,
loaded into a guard, evaluating packets built the way producers build them.
"""

from pathlib import Path

import pytest

from infranet.guard import InfranetGuard
from infranet.schema import DecisionKind, InfranetRouteKind, TokenClass

BUNDLED_POLICIES = Path(__file__).resolve().parents[2] / "policies"


@pytest.fixture(params=["written", "bundled"])
def guard(request, policy_dir: Path) -> InfranetGuard:
    """Guard loaded from a test policy directory, and from the bundled one."""
    directory = policy_dir if request.param == "written" else BUNDLED_POLICIES
    return InfranetGuard.load_from_policies(directory)


class TestScenarios:
    """Admission scenarios."""

    def test_chat_suggest_only_allowed(self, guard, make_packet) -> None:
        """GovernanceChat, Chat token, SuggestOnly, RoH 0.1/0.1/0.3 -> Allow."""
        packet = make_packet()
        assert guard.evaluate(packet).kind == DecisionKind.ALLOW

    def test_chat_config_only_denied(self, guard, make_packet) -> None:
        packet = make_packet(capability={"actuation_rights": "ConfigOnly"})
        decision = guard.evaluate(packet)
        assert decision.kind == DecisionKind.DENY

    def test_smart_cannot_deep_evolve_ota(self, guard, make_packet) -> None:
        packet = make_packet(
            route=InfranetRouteKind.OTA_PROPOSAL,
            token_class=TokenClass.SMART,
            capability={"safety_profile": "DeepEvolution"},
        )
        assert guard.evaluate(packet).denied

    def test_evolve_required_for_nanoswarm_deep_evolution(self, guard, make_packet) -> None:
        packet = make_packet(
            route=InfranetRouteKind.NANOSWARM_CONTROL,
            token_class=TokenClass.SMART,
            capability={"safety_profile": "DeepEvolution"},
        )
        assert guard.evaluate(packet).denied

        packet = packet.model_copy(update={"token_class": TokenClass.EVOLVE})
        assert guard.evaluate(packet).allowed

    def test_raw_neurostream_denied_under_policy_privacy(self, guard, make_packet) -> None:
        packet = make_packet(
            route=InfranetRouteKind.NEURO_STREAM_INDEX,
            token_class=TokenClass.NONE,
            capability={"biophysical_scope": "RawStream"},
        )
        decision = guard.evaluate(packet)
        assert decision.denied
        assert decision.rule_matched == "mental_privacy"

    def test_derived_neurostream_allowed(self, guard, make_packet) -> None:
        packet = make_packet(
            route=InfranetRouteKind.NEURO_STREAM_INDEX,
            token_class=TokenClass.NONE,
            capability={"biophysical_scope": "DerivedOnly"},
        )
        assert guard.evaluate(packet).allowed

    def test_packet_not_mutated(self, guard, make_packet) -> None:
        packet = make_packet(capability={"actuation_rights": "ConfigOnly"})
        before = packet.model_dump()
        guard.evaluate(packet)
        assert packet.model_dump() == before
