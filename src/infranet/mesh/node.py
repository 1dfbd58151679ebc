"""
Mesh node: route admissibility and dispatch.

A MeshNode ties a RouteSelector and a LinkDriver together. Sending a packet:
    1. Ask the selector for a route (optionally bounded by a timeout)
    2. Re-check the selected route's RoH slice against its own ceiling and
       the packet's declared ceiling
    3. Dispatch through the link driver

The guard admits the action; this check admits the path, since a route can
add measured risk of its own. Failures raise MeshError subclasses and are
never retried here.
"""

import asyncio
import logging
from collections.abc import Sequence

from infranet.errors import (
    InfranetError,
    LinkReceiveError,
    LinkSendError,
    NoAdmissibleRouteError,
    RouteCeilingViolationError,
)
from infranet.mesh.base import LinkDriver, RouteSelector
from infranet.schema import MeshRoute, PolicyDecision, SovereignPacket

logger = logging.getLogger(__name__)


def check_route_admissible(route: MeshRoute, packet: SovereignPacket) -> PolicyDecision:
    """
    Check a route's RoH slice against the route's and the packet's ceilings.

    Routes without a RoH slice are admissible. The packet-ceiling cross-check
    only applies when the packet carries a RoH slice.

    Args:
        route: Candidate or selected route
        packet: Packet to be sent on it

    Returns:
        ALLOW, or DENY naming the ceiling that was exceeded
    """
    path_roh = route.roh_path_slice
    if path_roh is None:
        return PolicyDecision.allow(rule="route_unmeasured")

    if path_roh.exceeds_ceiling():
        return PolicyDecision.deny(
            f"Route {route.path_id} RoH {path_roh.roh_after} exceeds "
            f"route ceiling {path_roh.roh_ceiling}",
            rule="route_ceiling",
        )

    if packet.roh is not None and path_roh.exceeds_ceiling(packet.roh.roh_ceiling):
        return PolicyDecision.deny(
            f"Route {route.path_id} RoH {path_roh.roh_after} exceeds "
            f"packet ceiling {packet.roh.roh_ceiling}",
            rule="packet_ceiling",
        )

    return PolicyDecision.allow(rule="route_within_ceiling")


class MeshNode:
    """
    A mesh node sending packets over RoH-checked routes.

    Usage:
        node = MeshNode("node-a", driver, selector, selection_timeout=2.0)
        route = await node.send_with_routes(packet, candidates)

    Attributes:
        node_id: Identifier of this node
        driver: Link driver used for dispatch and receive
        selector: Route selector consulted per send
        selection_timeout: Seconds allowed for selection (None = unbounded)
    """

    def __init__(
        self,
        node_id: str,
        driver: LinkDriver,
        selector: RouteSelector,
        selection_timeout: float | None = None,
    ) -> None:
        if selection_timeout is not None and selection_timeout <= 0:
            msg = "selection_timeout must be positive"
            raise ValueError(msg)
        self.node_id = node_id
        self.driver = driver
        self.selector = selector
        self.selection_timeout = selection_timeout

    async def send_with_routes(
        self,
        packet: SovereignPacket,
        routes: Sequence[MeshRoute],
    ) -> MeshRoute:
        """
        Select a route, re-check its RoH ceiling, and send the packet.

        Args:
            packet: Packet already admitted by the guard
            routes: Candidate routes

        Returns:
            The route the packet was dispatched on

        Raises:
            NoAdmissibleRouteError: Selector returned None, failed or timed out
            RouteCeilingViolationError: Selected route exceeds a ceiling
            LinkSendError: The driver failed to send
        """
        route = await self._select(packet, routes)

        decision = check_route_admissible(route, packet)
        if decision.denied:
            path_roh = route.roh_path_slice
            if decision.rule_matched == "route_ceiling":
                ceiling, source = path_roh.roh_ceiling, "route"
            else:
                ceiling, source = packet.roh.roh_ceiling, "packet"
            logger.warning("node %s refused route %s: %s", self.node_id, route.path_id, decision.reason)
            raise RouteCeilingViolationError(
                node_id=self.node_id,
                path_id=route.path_id,
                roh_after=path_roh.roh_after,
                ceiling=ceiling,
                ceiling_source=source,
            )

        try:
            await self.driver.send(packet)
        except InfranetError:
            raise
        except Exception as e:
            raise LinkSendError(
                node_id=self.node_id,
                path_id=route.path_id,
                underlying_error=str(e) or e.__class__.__name__,
            ) from e

        logger.debug(
            "node %s sent %s packet via %s (%d hops)",
            self.node_id,
            packet.route.value,
            route.path_id,
            len(route.hops),
        )
        return route

    async def receive(self) -> SovereignPacket:
        """
        Receive the next packet from the link driver.

        Raises:
            LinkReceiveError: The driver failed to receive
        """
        try:
            return await self.driver.recv()
        except InfranetError:
            raise
        except Exception as e:
            raise LinkReceiveError(
                node_id=self.node_id,
                underlying_error=str(e) or e.__class__.__name__,
            ) from e

    async def _select(
        self,
        packet: SovereignPacket,
        routes: Sequence[MeshRoute],
    ) -> MeshRoute:
        """Run the selector; no result, a timeout or a failure means no admissible route."""
        candidates = list(routes)
        try:
            if self.selection_timeout is None:
                route = await self.selector.select_route(candidates, packet)
            else:
                route = await asyncio.wait_for(
                    self.selector.select_route(candidates, packet),
                    timeout=self.selection_timeout,
                )
        except TimeoutError as e:
            logger.warning("node %s: route selection timed out", self.node_id)
            raise NoAdmissibleRouteError(
                node_id=self.node_id,
                candidates=len(candidates),
                message=f"Route selection timed out after {self.selection_timeout}s",
            ) from e
        except InfranetError:
            raise
        except Exception as e:
            logger.warning("node %s: route selector failed: %s", self.node_id, e)
            raise NoAdmissibleRouteError(
                node_id=self.node_id,
                candidates=len(candidates),
                message=f"Route selection failed: {str(e) or e.__class__.__name__}",
            ) from e

        if route is None:
            raise NoAdmissibleRouteError(node_id=self.node_id, candidates=len(candidates))
        return route
