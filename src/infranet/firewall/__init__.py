"""
Content firewall for Infranet.

Wraps an opaque content classifier and applies it to the routes that feed
LLM, OTA and model pipelines.
"""

from infranet.firewall.base import (
    CLASSIFIED_ROUTES,
    FirewallEngine,
    InfranetFirewall,
    PassThroughEngine,
)
from infranet.schema import FirewallVerdict

__all__ = [
    "CLASSIFIED_ROUTES",
    "FirewallEngine",
    "FirewallVerdict",
    "InfranetFirewall",
    "PassThroughEngine",
]
