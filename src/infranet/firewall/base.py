"""
Firewall capability and packet wrapper.

- FirewallEngine: Abstract classifier, classify(text) -> FirewallVerdict
- InfranetFirewall: Applies an engine to chat, OTA proposal and model-update routes
- PassThroughEngine: Classifier that allows everything

The classification algorithm lives outside this package. The wrapper only
decides which packets are classified and what key they are classified by;
the engine's verdict is returned unchanged.
"""

from abc import ABC, abstractmethod

from infranet.schema import FirewallVerdict, InfranetRouteKind, SovereignPacket

CLASSIFIED_ROUTES = frozenset({
    InfranetRouteKind.GOVERNANCE_CHAT,
    InfranetRouteKind.OTA_PROPOSAL,
    InfranetRouteKind.MODEL_UPDATE,
})


class FirewallEngine(ABC):
    """
    Abstract content classifier.

    Implementations must be safe to call from concurrent contexts.

    Example:
        class KeywordEngine(FirewallEngine):
            def classify(self, text: str) -> FirewallVerdict:
                if "exfiltrate" in text:
                    return FirewallVerdict.BLOCK
                return FirewallVerdict.ALLOW
    """

    @abstractmethod
    def classify(self, text: str) -> FirewallVerdict:
        """Classify a text key into ALLOW, BLOCK or QUARANTINE."""
        ...

    def __repr__(self) -> str:
        return f"<FirewallEngine: {self.__class__.__name__}>"


class PassThroughEngine(FirewallEngine):
    """Classifier that allows every input."""

    def classify(self, text: str) -> FirewallVerdict:
        return FirewallVerdict.ALLOW


class InfranetFirewall:
    """
    Pluggable firewall for Infranet chat/OTA/model routes.

    Attributes:
        engine: The classifier to consult
    """

    def __init__(self, engine: FirewallEngine) -> None:
        self.engine = engine

    @staticmethod
    def classification_key(packet: SovereignPacket) -> str:
        """Key passed to the classifier: subject, payload type and payload reference."""
        return f"{packet.src.subject_id}:{packet.payload_type}:{packet.payload_ref}"

    def evaluate_packet(self, packet: SovereignPacket) -> FirewallVerdict:
        """
        Classify a packet before it enters an LLM, OTA or model pipeline.

        Packets on other routes are not classified and get ALLOW.
        """
        if packet.route not in CLASSIFIED_ROUTES:
            return FirewallVerdict.ALLOW

        # TODO: escalate borderline Evolve OTAProposal verdicts to QUARANTINE
        # once engines expose scores.
        return self.engine.classify(self.classification_key(packet))
