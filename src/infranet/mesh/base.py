"""
Capability interfaces for the Infranet mesh.

- LinkDriver: Sends and receives packets over a physical or logical link
- RouteSelector: Picks one route from a set of candidates

Both are async: link I/O and route selection (which may consult live link
metrics) suspend. Implementations are injected into a MeshNode at
construction time and must be safe to invoke from concurrent tasks.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from infranet.schema import MeshRoute, SovereignPacket


class LinkDriver(ABC):
    """
    Abstract link driver (QUIC, TCP, serial, ...).

    Drivers signal failure by raising; the mesh node wraps the exception in
    a LinkSendError or LinkReceiveError.
    """

    @abstractmethod
    async def send(self, packet: SovereignPacket) -> None:
        """Transmit a packet."""
        ...

    @abstractmethod
    async def recv(self) -> SovereignPacket:
        """Wait for and return the next inbound packet."""
        ...

    def __repr__(self) -> str:
        return f"<LinkDriver: {self.__class__.__name__}>"


class RouteSelector(ABC):
    """
    Abstract route selector.

    Returning None means no candidate is acceptable. Selection may be
    cancelled by the caller at any await point.
    """

    @abstractmethod
    async def select_route(
        self,
        candidates: Sequence[MeshRoute],
        packet: SovereignPacket,
    ) -> MeshRoute | None:
        """Select one route for the packet, or None."""
        ...

    def __repr__(self) -> str:
        return f"<RouteSelector: {self.__class__.__name__}>"
