"""
In-process mesh collaborators.

- LoopbackDriver: LinkDriver backed by an asyncio.Queue; what is sent can be
  received on the same driver. Used by the CLI and in tests.
- CeilingAwareSelector: RouteSelector preferring the least risky admissible route
"""

import asyncio
from collections.abc import Sequence

from infranet.mesh.base import LinkDriver, RouteSelector
from infranet.mesh.node import check_route_admissible
from infranet.schema import MeshRoute, SovereignPacket


class LoopbackDriver(LinkDriver):
    """
    Loopback link driver.

    Attributes:
        sent: Every packet sent, in order
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[SovereignPacket] = asyncio.Queue(maxsize=maxsize)
        self.sent: list[SovereignPacket] = []

    async def send(self, packet: SovereignPacket) -> None:
        await self._queue.put(packet)
        self.sent.append(packet)

    async def recv(self) -> SovereignPacket:
        return await self._queue.get()

    def pending(self) -> int:
        """Number of sent packets not yet received."""
        return self._queue.qsize()


class CeilingAwareSelector(RouteSelector):
    """
    Selects the admissible route with the lowest path RoH.

    Candidates failing check_route_admissible are skipped. Routes without a
    RoH slice count as 0.0. Ties go to the route with fewer hops, then to the
    earlier candidate.
    """

    async def select_route(
        self,
        candidates: Sequence[MeshRoute],
        packet: SovereignPacket,
    ) -> MeshRoute | None:
        admissible = [
            (index, route)
            for index, route in enumerate(candidates)
            if check_route_admissible(route, packet).allowed
        ]
        if not admissible:
            return None

        def score(item: tuple[int, MeshRoute]) -> tuple[float, int, int]:
            index, route = item
            roh = route.roh_path_slice.roh_after if route.roh_path_slice else 0.0
            return (roh, len(route.hops), index)

        return min(admissible, key=score)[1]
