"""
Exception hierarchy for Infranet.

All Infranet exceptions inherit from InfranetError, allowing callers to catch
all Infranet-specific exceptions with a single except clause.

Exception Categories:
    - PolicyLoadError: Policy document missing or malformed (fatal at startup)
    - PolicyDeniedError: Packet denied, raised only by InfranetGuard.enforce()
    - MeshError: No admissible route, route ceiling violated, link failure
    - PacketLoadError: Packet or routes file could not be read

A Deny decision returned by an evaluate() call is a normal outcome, not an
error. Mesh errors are recoverable; nothing in this package retries.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_POLICY_LOAD = 1001
ERROR_POLICY_DOCUMENT_MISSING = 1002
ERROR_POLICY_DOCUMENT_MALFORMED = 1003

# Policy errors: 2xxx
ERROR_POLICY_DENIED = 2001

# Mesh errors: 3xxx
ERROR_MESH_NO_ROUTE = 3001
ERROR_MESH_ROUTE_CEILING = 3002
ERROR_MESH_LINK_SEND = 3003
ERROR_MESH_LINK_RECEIVE = 3004

# Input errors: 4xxx
ERROR_PACKET_LOAD = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class InfranetError(Exception):
    """
    Base exception for all Infranet errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class PolicyLoadError(InfranetError):
    """
    Raised when policy documents cannot be loaded.

    Fatal to engine construction: no default policy is ever substituted.

    Attributes:
        document: Logical document name (e.g. "neurorights.json")
        path: Filesystem path that was read
    """

    document: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Failed to load policy document {self.document}: {self.path}"
        if self.code == 0:
            self.code = ERROR_POLICY_LOAD
        self.context.update({
            "document": self.document,
            "path": self.path,
        })


@dataclass
class PolicyDocumentMissingError(PolicyLoadError):
    """Raised when a policy document does not exist or cannot be read."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Policy document not found: {self.path}"
        if self.code == 0:
            self.code = ERROR_POLICY_DOCUMENT_MISSING
        if not self.suggestion:
            self.suggestion = f"Create {self.document} in the policy directory"
        super().__post_init__()


@dataclass
class PolicyDocumentMalformedError(PolicyLoadError):
    """Raised when a policy document is not valid JSON or fails validation."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Malformed policy document {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_DOCUMENT_MALFORMED
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Policy Errors
# =============================================================================


@dataclass
class PolicyDeniedError(InfranetError):
    """
    Raised by InfranetGuard.enforce() when a packet is denied.

    Attributes:
        route: Route kind of the denied packet
        reason: Why the packet was denied
        rule: Which rule denied it
    """

    route: str = ""
    reason: str = ""
    rule: str | None = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Policy denied {self.route} packet: {self.reason}"
        if self.code == 0:
            self.code = ERROR_POLICY_DENIED
        self.context.update({
            "route": self.route,
            "reason": self.reason,
            "rule": self.rule,
        })


# =============================================================================
# Mesh Errors
# =============================================================================


@dataclass
class MeshError(InfranetError):
    """
    Base class for route admissibility and transport failures.

    Attributes:
        node_id: Mesh node that attempted the operation
        path_id: Route involved, if one was selected
    """

    node_id: str = ""
    path_id: str | None = None

    def __post_init__(self) -> None:
        self.context.update({
            "node_id": self.node_id,
            "path_id": self.path_id,
        })


@dataclass
class NoAdmissibleRouteError(MeshError):
    """Raised when the selector returns no route, or selection times out."""

    candidates: int = 0

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"No admissible route for packet ({self.candidates} candidates)"
        if self.code == 0:
            self.code = ERROR_MESH_NO_ROUTE
        super().__post_init__()
        self.context["candidates"] = self.candidates


@dataclass
class RouteCeilingViolationError(MeshError):
    """Raised when the selected route's RoH exceeds a ceiling."""

    roh_after: float = 0.0
    ceiling: float = 0.0
    ceiling_source: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"RoH mesh ceiling violated on route {self.path_id}: "
                f"{self.roh_after} > {self.ceiling} ({self.ceiling_source})"
            )
        if self.code == 0:
            self.code = ERROR_MESH_ROUTE_CEILING
        super().__post_init__()
        self.context.update({
            "roh_after": self.roh_after,
            "ceiling": self.ceiling,
            "ceiling_source": self.ceiling_source,
        })


@dataclass
class LinkSendError(MeshError):
    """Raised when the link driver fails to send."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Link send failed on route {self.path_id}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MESH_LINK_SEND
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class LinkReceiveError(MeshError):
    """Raised when the link driver fails to receive."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Link receive failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MESH_LINK_RECEIVE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Input Errors
# =============================================================================


@dataclass
class PacketLoadError(InfranetError):
    """Raised when a packet or routes file cannot be read or validated."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Failed to load {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_PACKET_LOAD
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
