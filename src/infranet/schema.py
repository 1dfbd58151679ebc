"""
Schema definitions for Infranet.

This module defines the Pydantic models shared by the guard, the policy
engine and the mesh:
- SovereignPacket and its parts: what is being admitted
- NeurorightsPolicy/TsafeKernel: the loaded policy documents
- PolicyDecision: the result of evaluating a packet
- MeshRoute: a candidate transport path

Design Decisions:
    - Models are immutable (frozen=True); the core never mutates a packet
    - Unknown fields are rejected (extra="forbid")
    - RoH values must be finite so that ceiling comparisons cannot fail open
    - Closed vocabularies (route kinds, token classes) are str Enums;
      capability tags are open strings compared by equality
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class InfranetRouteKind(str, Enum):
    """High-level purpose of the route a packet travels on."""

    BCI_CONTROL = "BciControl"
    BIO_TELEMETRY = "BioTelemetry"
    NEURO_STREAM_INDEX = "NeuroStreamIndex"
    OTA_PROPOSAL = "OTAProposal"
    OTA_ARTIFACT_PROOF = "OTAArtifactProof"
    GOVERNANCE_CHAT = "GovernanceChat"
    MODEL_UPDATE = "ModelUpdate"
    CIVIC_XR_GRID = "CivicXRGrid"
    NANOSWARM_CONTROL = "NanoswarmControl"
    NANOSWARM_TELEMETRY = "NanoswarmTelemetry"


class TokenClass(str, Enum):
    """
    Authorization tier asserted for the originating action.

    There is no privilege ordering between classes; each one is gated
    by route-specific rules in the policy engine.
    """

    NONE = "None"
    SMART = "Smart"
    EVOLVE = "Evolve"
    CHAT = "Chat"


class DecisionKind(str, Enum):
    """Closed set of policy outcomes."""

    ALLOW = "allow"
    DENY = "deny"
    ALLOW_WITH_CONSTRAINTS = "allow_with_constraints"


class FirewallVerdict(str, Enum):
    """Tri-state verdict returned by a content classifier."""

    ALLOW = "Allow"
    BLOCK = "Block"
    QUARANTINE = "Quarantine"


# =============================================================================
# Packet Models
# =============================================================================


class SovereignAddress(BaseModel):
    """
    Originating or destination principal.

    Attributes:
        subject_id: Opaque subject identifier (e.g. a Bostrom address)
        ocpu_id: Optional OrganicCPU identifier
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject_id: str = Field(..., min_length=1, description="Opaque subject identifier")
    ocpu_id: str | None = Field(default=None, description="Optional OrganicCPU identifier")


class RoHSlice(BaseModel):
    """
    Risk-of-harm measurement for a packet or a route.

    Policy expects roh_after <= roh_ceiling and roh_after <= roh_before.
    The model records the values as measured; it never clamps them.

    Attributes:
        roh_before: RoH measured before the action
        roh_after: RoH measured (or predicted) after the action
        roh_ceiling: Ceiling applicable to this measurement context
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    roh_before: float = Field(..., allow_inf_nan=False)
    roh_after: float = Field(..., allow_inf_nan=False)
    roh_ceiling: float = Field(..., allow_inf_nan=False)

    def exceeds_ceiling(self, ceiling: float | None = None) -> bool:
        """Check roh_after against the given ceiling, or this slice's own."""
        limit = self.roh_ceiling if ceiling is None else ceiling
        return self.roh_after > limit

    def is_monotone(self) -> bool:
        """True when the action does not increase RoH."""
        return self.roh_after <= self.roh_before


class NeurorightsEnvelope(BaseModel):
    """Per-packet neurorights posture, independent of the loaded policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mental_privacy: bool = False
    mental_integrity: bool = False
    cognitive_liberty: bool = False
    noncommercial_neural_data: bool = False
    dreamstate_sensitive: bool = False
    forbid_decision_use: bool = False


class CapabilityScope(BaseModel):
    """
    Capability tags attached to a packet.

    Values come from an open vocabulary ("ReadOnly", "DerivedOnly",
    "SuggestOnly", "ConfigOnly", "DeepEvolution", "NeurorightsBound", ...)
    and are only ever compared by equality.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    biophysical_scope: str = Field(..., description="e.g. 'ReadOnly', 'DerivedOnly'")
    actuation_rights: str = Field(..., description="e.g. 'SuggestOnly', 'ConfigOnly'")
    safety_profile: str = Field(..., description="e.g. 'MonotoneSafetyUpdate', 'DeepEvolution'")
    rights_profile: str = Field(..., description="e.g. 'NeurorightsBound'")


class SovereignPacket(BaseModel):
    """
    Governed envelope for an action on sensitive neural data.

    Packets are built by an upstream producer and read by the guard and
    the mesh. payload_ref points into local storage; the raw payload is
    never carried.

    Attributes:
        src: Originating principal
        dst: Destination principal
        route: Purpose of the route
        timestamp: When the packet was produced
        roh: Optional RoH measurement for the action
        neurorights: Packet-level neurorights posture
        token_class: Authorization tier of the originating action
        capability: Capability tags
        payload_type: Free-form payload label (e.g. "ChatFragment")
        payload_ref: Opaque local reference to the payload
        hexstamp: Optional external anchor or proof
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    src: SovereignAddress
    dst: SovereignAddress
    route: InfranetRouteKind
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    roh: RoHSlice | None = None
    neurorights: NeurorightsEnvelope = Field(default_factory=NeurorightsEnvelope)
    token_class: TokenClass = TokenClass.NONE
    capability: CapabilityScope
    payload_type: str = Field(..., description="Logical payload type")
    payload_ref: str = Field(..., description="Reference into local shards/objects")
    hexstamp: str | None = None


# =============================================================================
# Policy Document Models
# =============================================================================


class NeurorightsPolicy(BaseModel):
    """
    Process-wide neurorights policy, as loaded from neurorights.json.

    Attributes:
        mental_privacy: Forbid raw/index-level neural routing
        cognitive_liberty: Cognitive liberty is asserted
        forbid_decision_use: Neural data may not drive decisions
        dreamstate_sensitive: Dream-state data is present or possible
        soulnontradeable: Non-tradeable rights marker
        storagescope: Where derived data may be stored
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mental_privacy: bool
    cognitive_liberty: bool
    forbid_decision_use: bool
    dreamstate_sensitive: bool
    soulnontradeable: bool
    storagescope: str


class TsafeKernel(BaseModel):
    """Authoritative RoH envelope, as loaded from tsafe.aln."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    roh_ceiling: float = Field(..., allow_inf_nan=False)


# =============================================================================
# Decision Models
# =============================================================================


class PolicyDecision(BaseModel):
    """
    Result of evaluating a packet.

    One of three variants, selected by ``kind``:
        ALLOW: no reason required, no redactions
        DENY: reason required
        ALLOW_WITH_CONSTRAINTS: reason required, optional redactions

    No current rule emits ALLOW_WITH_CONSTRAINTS; it is kept so that
    redaction-style rules can be added without changing callers.

    Attributes:
        kind: Which variant this is
        reason: Human-readable explanation
        redactions: Fields to redact (ALLOW_WITH_CONSTRAINTS only)
        rule_matched: Name of the rule that produced the decision
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: DecisionKind
    reason: str | None = None
    redactions: tuple[str, ...] = ()
    rule_matched: str | None = None

    @model_validator(mode="after")
    def check_variant(self) -> "PolicyDecision":
        """Enforce per-variant field requirements."""
        if self.kind != DecisionKind.ALLOW and not self.reason:
            msg = f"{self.kind.value} decisions require a reason"
            raise ValueError(msg)
        if self.kind != DecisionKind.ALLOW_WITH_CONSTRAINTS and self.redactions:
            msg = "Only allow_with_constraints decisions may carry redactions"
            raise ValueError(msg)
        return self

    @classmethod
    def allow(cls, rule: str | None = None) -> "PolicyDecision":
        """Create an ALLOW decision."""
        return cls(kind=DecisionKind.ALLOW, rule_matched=rule)

    @classmethod
    def deny(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create a DENY decision."""
        return cls(kind=DecisionKind.DENY, reason=reason, rule_matched=rule)

    @classmethod
    def allow_with_constraints(
        cls,
        reason: str,
        redactions: list[str] | tuple[str, ...] = (),
        rule: str | None = None,
    ) -> "PolicyDecision":
        """Create an ALLOW_WITH_CONSTRAINTS decision."""
        return cls(
            kind=DecisionKind.ALLOW_WITH_CONSTRAINTS,
            reason=reason,
            redactions=tuple(redactions),
            rule_matched=rule,
        )

    @property
    def allowed(self) -> bool:
        """Whether the packet may proceed (possibly with constraints)."""
        return self.kind != DecisionKind.DENY

    @property
    def denied(self) -> bool:
        """Whether the packet was refused."""
        return self.kind == DecisionKind.DENY


# =============================================================================
# Mesh Models
# =============================================================================


class MeshRoute(BaseModel):
    """
    A candidate transport path through the mesh.

    Attributes:
        path_id: Identifier of the path
        hops: Ordered logical node IDs
        roh_path_slice: RoH accounting for the path itself, if measured
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path_id: str = Field(..., min_length=1)
    hops: tuple[str, ...] = ()
    roh_path_slice: RoHSlice | None = None


# =============================================================================
# YAML/JSON Loading Helpers
# =============================================================================


def load_packet(path: Path | str) -> SovereignPacket:
    """
    Load a packet from a YAML or JSON file.

    Args:
        path: Path to the file

    Returns:
        Validated SovereignPacket

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the document doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return SovereignPacket.model_validate(data)


def load_packet_from_string(content: str) -> SovereignPacket:
    """Load a packet from a YAML or JSON string."""
    data = yaml.safe_load(content)
    return SovereignPacket.model_validate(data)


def _routes_from_data(data: Any) -> list[MeshRoute]:
    if isinstance(data, dict) and "routes" in data:
        data = data["routes"]
    if not isinstance(data, list):
        msg = "Routes document must be a list or a mapping with a 'routes' key"
        raise ValueError(msg)
    return [MeshRoute.model_validate(item) for item in data]


def load_routes(path: Path | str) -> list[MeshRoute]:
    """
    Load candidate routes from a YAML or JSON file.

    The document is either a list of routes or a mapping with a
    ``routes`` key holding that list.
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return _routes_from_data(data)


def load_routes_from_string(content: str) -> list[MeshRoute]:
    """Load candidate routes from a YAML or JSON string."""
    return _routes_from_data(yaml.safe_load(content))
