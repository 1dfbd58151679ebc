"""
Infranet guard.

InfranetGuard is the single entry point callers use to admit packets. It runs
packet-local pre-checks keyed on the packet's own neurorights envelope and
RoH slice, then hands the packet to the PolicyEngine for the policy-level
rules. A deny from either layer is final.
"""

import logging
from pathlib import Path

from infranet.errors import PolicyDeniedError
from infranet.policy.engine import PolicyEngine
from infranet.schema import (
    InfranetRouteKind,
    PolicyDecision,
    SovereignPacket,
    TokenClass,
)

logger = logging.getLogger(__name__)

PACKET_PRIVACY_ROUTES = frozenset({
    InfranetRouteKind.NEURO_STREAM_INDEX,
    InfranetRouteKind.BCI_CONTROL,
})

PACKET_DREAMSTATE_ROUTES = frozenset({
    InfranetRouteKind.GOVERNANCE_CHAT,
    InfranetRouteKind.MODEL_UPDATE,
})


class InfranetGuard:
    """
    Wires packet flow into neurorights and RoH policy enforcement.

    Usage:
        guard = InfranetGuard.load_from_policies(Path("policies"))
        decision = guard.evaluate(packet)

    Attributes:
        engine: The PolicyEngine consulted after the pre-checks pass
    """

    def __init__(self, engine: PolicyEngine) -> None:
        self.engine = engine

    @classmethod
    def load_from_policies(cls, policy_dir: Path | str) -> "InfranetGuard":
        """
        Build a guard from the policy documents in a directory.

        Raises:
            PolicyLoadError: If the documents are missing or malformed
        """
        return cls(PolicyEngine.load_from_dir(policy_dir))

    def evaluate(self, packet: SovereignPacket) -> PolicyDecision:
        """
        Evaluate a packet: packet-local pre-checks first, then the policy engine.

        Args:
            packet: The packet to evaluate

        Returns:
            PolicyDecision from the first layer that denies, or the engine's result
        """
        decision = self._precheck(packet)
        if decision is None:
            decision = self.engine.evaluate(packet)

        if decision.denied:
            logger.info(
                "denied %s packet %s -> %s [%s]: %s",
                packet.route.value,
                packet.src.subject_id,
                packet.dst.subject_id,
                decision.rule_matched,
                decision.reason,
            )
        else:
            logger.debug("admitted %s packet %s", packet.route.value, packet.payload_ref)
        return decision

    def enforce(self, packet: SovereignPacket) -> PolicyDecision:
        """
        Evaluate a packet and raise if it is denied.

        Returns:
            The ALLOW or ALLOW_WITH_CONSTRAINTS decision

        Raises:
            PolicyDeniedError: If the packet is denied
        """
        decision = self.evaluate(packet)
        if decision.denied:
            raise PolicyDeniedError(
                route=packet.route.value,
                reason=decision.reason or "",
                rule=decision.rule_matched,
            )
        return decision

    def _precheck(self, packet: SovereignPacket) -> PolicyDecision | None:
        """Checks driven by the packet's own envelope, independent of loaded policy."""
        envelope = packet.neurorights

        if envelope.mental_privacy and packet.route in PACKET_PRIVACY_ROUTES:
            return PolicyDecision.deny(
                "Neural stream metadata may not be routed for this subject",
                rule="packet_mental_privacy",
            )

        if (
            envelope.dreamstate_sensitive
            and packet.token_class != TokenClass.NONE
            and packet.route in PACKET_DREAMSTATE_ROUTES
        ):
            return PolicyDecision.deny(
                "Dream-state-derived data cannot be used in decision-making routes",
                rule="packet_dreamstate",
            )

        roh = packet.roh
        if roh is not None:
            if roh.exceeds_ceiling():
                return PolicyDecision.deny(
                    f"RoH {roh.roh_after} exceeds packet ceiling {roh.roh_ceiling}",
                    rule="packet_roh_ceiling",
                )
            if not roh.is_monotone():
                return PolicyDecision.deny(
                    "RoH monotone safety violated for this packet",
                    rule="packet_roh_monotone",
                )

        return None
