"""
Mesh module for Infranet.

Selects a transport route for an admitted packet and re-validates the RoH
ceiling on the chosen path before dispatching it.

Key concepts:
    - LinkDriver/RouteSelector: Injected async capabilities
    - check_route_admissible: Route RoH vs route and packet ceilings
    - MeshNode: select -> re-check -> send
"""

from infranet.mesh.base import LinkDriver, RouteSelector
from infranet.mesh.loopback import CeilingAwareSelector, LoopbackDriver
from infranet.mesh.node import MeshNode, check_route_admissible

__all__ = [
    "CeilingAwareSelector",
    "LinkDriver",
    "LoopbackDriver",
    "MeshNode",
    "RouteSelector",
    "check_route_admissible",
]
