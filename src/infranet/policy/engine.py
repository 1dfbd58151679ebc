"""
Policy Engine for Infranet.

The Policy Engine decides whether a SovereignPacket is admissible under the
loaded neurorights policy and Tsafe kernel.

Design Principles:
    - Pure: evaluation reads the packet and the loaded documents, nothing else
    - Ordered: rules run in a fixed order and the first deny wins
    - Total: every packet gets a decision; denials are values, not errors
    - Auditable: every deny names the rule that produced it

Rule order:
    1. mental_privacy
    2. dreamstate_decision_use
    3. chat_non_actuating
    4. smart_deep_evolution
    5. deep_evolution_requires_evolve
    6. tsafe_roh_ceiling, roh_monotone

Rules 4 and 5 overlap for Smart tokens. Both are kept so that the Smart
case reports its own reason.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from infranet.schema import (
    InfranetRouteKind,
    NeurorightsPolicy,
    PolicyDecision,
    SovereignPacket,
    TokenClass,
    TsafeKernel,
)

logger = logging.getLogger(__name__)

NEURAL_STREAM_ROUTES = frozenset({
    InfranetRouteKind.NEURO_STREAM_INDEX,
    InfranetRouteKind.BCI_CONTROL,
})

DECISION_ROUTES = frozenset({
    InfranetRouteKind.GOVERNANCE_CHAT,
    InfranetRouteKind.MODEL_UPDATE,
    InfranetRouteKind.OTA_PROPOSAL,
})

STRUCTURAL_ROUTES = frozenset({
    InfranetRouteKind.OTA_PROPOSAL,
    InfranetRouteKind.NANOSWARM_CONTROL,
})

DERIVED_ONLY = "DerivedOnly"
SUGGEST_ONLY = "SuggestOnly"
DEEP_EVOLUTION = "DeepEvolution"


class PolicyEngine:
    """
    Central packet evaluator for Infranet.

    Usage:
        engine = PolicyEngine.load_from_dir("policies")
        decision = engine.evaluate(packet)
        if decision.allowed:
            # hand the packet downstream
        else:
            # decision.reason explains the denial

    The engine holds no mutable state after construction, so one instance
    can be shared across threads. Separate instances with independently
    loaded policy can coexist.

    Attributes:
        neurorights: Loaded neurorights policy
        tsafe: Loaded Tsafe kernel
    """

    def __init__(self, neurorights: NeurorightsPolicy, tsafe: TsafeKernel) -> None:
        self.neurorights = neurorights
        self.tsafe = tsafe
        self._rules: tuple[Callable[[SovereignPacket], PolicyDecision | None], ...] = (
            self._check_mental_privacy,
            self._check_dreamstate_decision_use,
            self._check_chat_non_actuating,
            self._check_smart_deep_evolution,
            self._check_deep_evolution_requires_evolve,
            self._check_roh,
        )

    @classmethod
    def load_from_dir(cls, policy_dir: Path | str) -> PolicyEngine:
        """
        Build an engine from neurorights.json and tsafe.aln in a directory.

        Raises:
            PolicyLoadError: If either document is missing or malformed
        """
        from infranet.policy.loader import load_policy_documents

        neurorights, tsafe = load_policy_documents(policy_dir)
        return cls(neurorights, tsafe)

    def evaluate(self, packet: SovereignPacket) -> PolicyDecision:
        """
        Evaluate a packet against the loaded policy.

        Args:
            packet: The packet to evaluate (never modified)

        Returns:
            The first deny produced by a rule, or ALLOW
        """
        for rule in self._rules:
            decision = rule(packet)
            if decision is not None:
                logger.debug(
                    "policy denied %s packet from %s: %s",
                    packet.route.value,
                    packet.src.subject_id,
                    decision.rule_matched,
                )
                return decision

        logger.debug("policy allowed %s packet from %s", packet.route.value, packet.src.subject_id)
        return PolicyDecision.allow()

    # =========================================================================
    # Neurorights Rules
    # =========================================================================

    def _check_mental_privacy(self, packet: SovereignPacket) -> PolicyDecision | None:
        """Only derived data may use neural stream routes under mental privacy."""
        if (
            self.neurorights.mental_privacy
            and packet.route in NEURAL_STREAM_ROUTES
            and packet.capability.biophysical_scope != DERIVED_ONLY
        ):
            return PolicyDecision.deny(
                "Mental privacy: raw or index-level neurostream routing is forbidden",
                rule="mental_privacy",
            )
        return None

    def _check_dreamstate_decision_use(self, packet: SovereignPacket) -> PolicyDecision | None:
        if (
            self.neurorights.dreamstate_sensitive
            and self.neurorights.forbid_decision_use
            and packet.route in DECISION_ROUTES
        ):
            return PolicyDecision.deny(
                "Dream-state-sensitive data cannot be used in governance/model/OTA routes",
                rule="dreamstate_decision_use",
            )
        return None

    # =========================================================================
    # Token Class Rules
    # =========================================================================

    def _check_chat_non_actuating(self, packet: SovereignPacket) -> PolicyDecision | None:
        """Chat-class authority is advisory only."""
        if (
            packet.token_class == TokenClass.CHAT
            and packet.capability.actuation_rights != SUGGEST_ONLY
        ):
            return PolicyDecision.deny(
                "Chat-tokened routes must be SuggestOnly / non-actuating",
                rule="chat_non_actuating",
            )
        return None

    def _check_smart_deep_evolution(self, packet: SovereignPacket) -> PolicyDecision | None:
        if (
            packet.token_class == TokenClass.SMART
            and packet.route in STRUCTURAL_ROUTES
            and packet.capability.safety_profile == DEEP_EVOLUTION
        ):
            return PolicyDecision.deny(
                "Smart tokens cannot authorize deep evolution or nanoswarm structural changes",
                rule="smart_deep_evolution",
            )
        return None

    def _check_deep_evolution_requires_evolve(
        self, packet: SovereignPacket
    ) -> PolicyDecision | None:
        if (
            packet.route in STRUCTURAL_ROUTES
            and packet.capability.safety_profile == DEEP_EVOLUTION
            and packet.token_class != TokenClass.EVOLVE
        ):
            return PolicyDecision.deny(
                "DeepEvolution routes require an Evolve token",
                rule="deep_evolution_requires_evolve",
            )
        return None

    # =========================================================================
    # RoH Rules
    # =========================================================================

    def _check_roh(self, packet: SovereignPacket) -> PolicyDecision | None:
        """Check the packet's RoH slice against the Tsafe ceiling, then monotonicity."""
        roh = packet.roh
        if roh is None:
            return None

        if roh.exceeds_ceiling(self.tsafe.roh_ceiling):
            return PolicyDecision.deny(
                f"RoH {roh.roh_after} exceeds Tsafe ceiling {self.tsafe.roh_ceiling}",
                rule="tsafe_roh_ceiling",
            )
        if not roh.is_monotone():
            return PolicyDecision.deny(
                f"RoH monotone safety violated: {roh.roh_after} > {roh.roh_before}",
                rule="roh_monotone",
            )
        return None
