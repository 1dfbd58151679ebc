"""
Pytest configuration and fixtures for Infranet tests.

This module provides shared fixtures used across unit and integration tests:
policy directories on disk and a packet factory.
"""

import json
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from infranet.schema import (
    CapabilityScope,
    InfranetRouteKind,
    NeurorightsEnvelope,
    NeurorightsPolicy,
    RoHSlice,
    SovereignAddress,
    SovereignPacket,
    TokenClass,
    TsafeKernel,
)

SUBJECT = "bostrom18sd2ujv24ual9c9pshtxys6j8knh6xaead9ye7"

PERMISSIVE_NEURORIGHTS = {
    "mental_privacy": False,
    "cognitive_liberty": True,
    "forbid_decision_use": False,
    "dreamstate_sensitive": False,
    "soulnontradeable": True,
    "storagescope": "LocalOnly",
}

STRICT_NEURORIGHTS = {
    **PERMISSIVE_NEURORIGHTS,
    "mental_privacy": True,
    "forbid_decision_use": True,
    "dreamstate_sensitive": True,
}


def write_policy_dir(
    directory: Path,
    neurorights: dict[str, Any] | None = None,
    roh_ceiling: float = 0.3,
) -> Path:
    """Write neurorights.json and tsafe.aln into a directory."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "neurorights.json").write_text(json.dumps(neurorights or PERMISSIVE_NEURORIGHTS))
    (directory / "tsafe.aln").write_text(json.dumps({"roh_ceiling": roh_ceiling}))
    return directory


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def policy_dir(temp_dir: Path) -> Path:
    """Policy directory with mental privacy on and dreamstate off."""
    return write_policy_dir(
        temp_dir / "policies",
        {**PERMISSIVE_NEURORIGHTS, "mental_privacy": True, "forbid_decision_use": True},
    )


@pytest.fixture
def permissive_policy() -> NeurorightsPolicy:
    return NeurorightsPolicy.model_validate(PERMISSIVE_NEURORIGHTS)


@pytest.fixture
def strict_policy() -> NeurorightsPolicy:
    return NeurorightsPolicy.model_validate(STRICT_NEURORIGHTS)


@pytest.fixture
def tsafe() -> TsafeKernel:
    return TsafeKernel(roh_ceiling=0.3)


@pytest.fixture
def make_packet() -> Callable[..., SovereignPacket]:
    """
    Factory for packets based on a Chat/SuggestOnly GovernanceChat packet.

    Keyword overrides replace top-level packet fields; capability, roh and
    neurorights overrides may be given as dicts of field updates.
    """

    def _make(**overrides: Any) -> SovereignPacket:
        capability = {
            "biophysical_scope": "ReadOnly",
            "actuation_rights": "SuggestOnly",
            "safety_profile": "MonotoneSafetyUpdate",
            "rights_profile": "NeurorightsBound",
            **overrides.pop("capability", {}),
        }
        neurorights = {
            "mental_integrity": True,
            "cognitive_liberty": True,
            "noncommercial_neural_data": True,
            **overrides.pop("neurorights", {}),
        }
        roh = overrides.pop("roh", {})
        if roh is not None:
            roh = RoHSlice(**{"roh_before": 0.1, "roh_after": 0.1, "roh_ceiling": 0.3, **roh})

        fields: dict[str, Any] = {
            "src": SovereignAddress(subject_id=SUBJECT),
            "dst": SovereignAddress(subject_id=SUBJECT),
            "route": InfranetRouteKind.GOVERNANCE_CHAT,
            "roh": roh,
            "neurorights": NeurorightsEnvelope(**neurorights),
            "token_class": TokenClass.CHAT,
            "capability": CapabilityScope(**capability),
            "payload_type": "ChatFragment",
            "payload_ref": "answer:1234",
        }
        fields.update(overrides)
        return SovereignPacket(**fields)

    return _make


@pytest.fixture
def write_policies(temp_dir: Path) -> Callable[..., Path]:
    """
    Factory writing a policy directory under temp_dir.

    Usage: write_policies("a", neurorights={...}, roh_ceiling=0.2)
    """

    def _write(
        name: str,
        neurorights: dict[str, Any] | None = None,
        roh_ceiling: float = 0.3,
    ) -> Path:
        return write_policy_dir(temp_dir / name, neurorights, roh_ceiling)

    return _write
