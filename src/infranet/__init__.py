"""
Infranet - Neurorights and risk-of-harm enforcement for sovereign packets.

Infranet decides whether a packet describing an action on neural or
biophysical data may enter a downstream pipeline, and over which mesh route.
It provides:
- A deterministic policy engine over loaded neurorights and Tsafe documents
- A guard layering packet-local pre-checks in front of the engine
- Route admissibility checks before mesh dispatch

Example usage:
    $ infranet evaluate packet.json --policies policies/
    $ infranet route packet.json --routes routes.yaml
"""

__version__ = "0.1.0"
__author__ = "Infranet Contributors"

__all__ = [
    "__version__",
    "__author__",
]
