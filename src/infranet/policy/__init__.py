"""
Policy module for Infranet.

This module implements the policy decision engine: a deterministic function
from (packet, loaded policy documents) to a PolicyDecision.

Key concepts:
    - NeurorightsPolicy/TsafeKernel: Policy documents, loaded once, immutable
    - PolicyEngine: Evaluates packets against the loaded documents
    - PolicyDecision: ALLOW, DENY (with reason) or ALLOW_WITH_CONSTRAINTS
"""

from infranet.policy.engine import PolicyEngine
from infranet.policy.loader import (
    NEURORIGHTS_DOCUMENT,
    TSAFE_DOCUMENT,
    load_neurorights_policy,
    load_policy_documents,
    load_tsafe_kernel,
)

__all__ = [
    "NEURORIGHTS_DOCUMENT",
    "TSAFE_DOCUMENT",
    "PolicyEngine",
    "load_neurorights_policy",
    "load_policy_documents",
    "load_tsafe_kernel",
]
