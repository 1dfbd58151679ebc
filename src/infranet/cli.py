"""
CLI entry point for Infranet.

This module provides the Typer-based command-line interface for Infranet.

Commands:
    evaluate        Evaluate a packet file against the policy documents
    route           Evaluate a packet, then send it over an admissible route
    check-policies  Load and display the policy documents

Exit codes:
    0   Packet allowed (and, for route, dispatched)
    1   Packet denied, or no admissible route
    2   Policy documents, packet or routes could not be loaded

Architecture Note:
    The CLI is intentionally thin - it loads inputs and delegates to the
    guard and the mesh. The library itself never configures logging;
    --verbose installs a Rich handler here.
"""

import asyncio
import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from infranet import __version__
from infranet.errors import InfranetError, MeshError, PacketLoadError, PolicyLoadError
from infranet.firewall import CLASSIFIED_ROUTES, InfranetFirewall, PassThroughEngine
from infranet.guard import InfranetGuard
from infranet.mesh import CeilingAwareSelector, LoopbackDriver, MeshNode
from infranet.policy import load_policy_documents
from infranet.schema import (
    MeshRoute,
    PolicyDecision,
    SovereignPacket,
    load_packet,
    load_routes,
)

app = typer.Typer(
    name="infranet",
    help="Evaluate sovereign packets under neurorights and RoH policy.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_LOAD_ERROR = 2

PolicyDirOption = Annotated[
    Path,
    typer.Option(
        "--policies",
        "-p",
        help="Directory holding neurorights.json and tsafe.aln.",
        envvar="INFRANET_POLICY_DIR",
        resolve_path=True,
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]

VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging."),
]

DebugOption = Annotated[
    bool,
    typer.Option("--debug", help="Show full error tracebacks."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]infranet[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Infranet - neurorights and RoH enforcement for sovereign packets.
    """
    pass


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(error: InfranetError, json_output: bool, debug: bool) -> None:
    """Report a load error and exit with EXIT_LOAD_ERROR."""
    if json_output:
        output = {"error": True, **error.to_dict()}
        if debug:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2, default=str))
    else:
        console.print(f"[red]{error}[/red]")
        if debug:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=EXIT_LOAD_ERROR)


def _load_packet(path: Path) -> SovereignPacket:
    try:
        return load_packet(path)
    except (OSError, ValidationError, ValueError, yaml.YAMLError) as e:
        raise PacketLoadError(path=str(path), underlying_error=str(e)) from e


def _load_routes(path: Path) -> list[MeshRoute]:
    try:
        return load_routes(path)
    except (OSError, ValidationError, ValueError, yaml.YAMLError) as e:
        raise PacketLoadError(path=str(path), underlying_error=str(e)) from e


def _decision_dict(decision: PolicyDecision) -> dict[str, Any]:
    return {
        "kind": decision.kind.value,
        "allowed": decision.allowed,
        "reason": decision.reason,
        "redactions": list(decision.redactions),
        "rule_matched": decision.rule_matched,
    }


def _display_decision(packet: SovereignPacket, decision: PolicyDecision) -> None:
    """Display a decision in a formatted way."""
    if decision.allowed:
        console.print(f"[green]✓[/green] [bold]{packet.route.value}[/bold] packet [green]{decision.kind.value}[/green]")
    else:
        console.print(f"[red]✗[/red] [bold]{packet.route.value}[/bold] packet [red]denied[/red]")

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("From", packet.src.subject_id)
    table.add_row("To", packet.dst.subject_id)
    table.add_row("Token", packet.token_class.value)
    table.add_row("Payload", f"{packet.payload_type} ({packet.payload_ref})")
    if packet.roh is not None:
        table.add_row(
            "RoH",
            f"{packet.roh.roh_before} -> {packet.roh.roh_after} (ceiling {packet.roh.roh_ceiling})",
        )
    if decision.rule_matched:
        table.add_row("Rule", decision.rule_matched)
    if decision.reason:
        table.add_row("Reason", decision.reason)
    if decision.redactions:
        table.add_row("Redactions", ", ".join(decision.redactions))
    console.print(table)


@app.command()
def evaluate(
    packet_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the packet file (JSON or YAML).",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    policy_dir: PolicyDirOption = Path("policies"),
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Evaluate a packet against the policy documents.

    Example:
        $ infranet evaluate packet.json --policies policies/
    """
    _configure_logging(verbose)

    try:
        guard = InfranetGuard.load_from_policies(policy_dir)
        packet = _load_packet(packet_path)
    except InfranetError as e:
        _fail(e, json_output, debug)

    decision = guard.evaluate(packet)
    verdict = None
    if packet.route in CLASSIFIED_ROUTES:
        verdict = InfranetFirewall(PassThroughEngine()).evaluate_packet(packet)

    if json_output:
        output = {
            "route": packet.route.value,
            "decision": _decision_dict(decision),
            "firewall": verdict.value if verdict else None,
        }
        print(json.dumps(output, indent=2))
    else:
        _display_decision(packet, decision)
        if verdict is not None:
            console.print(f"[dim]Firewall: {verdict.value}[/dim]")

    raise typer.Exit(code=EXIT_ALLOWED if decision.allowed else EXIT_DENIED)


@app.command()
def route(
    packet_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the packet file (JSON or YAML).",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    routes_path: Annotated[
        Path,
        typer.Option(
            "--routes",
            "-r",
            help="Path to the candidate routes file (JSON or YAML).",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    policy_dir: PolicyDirOption = Path("policies"),
    node_id: Annotated[
        str,
        typer.Option("--node", help="Identifier of the sending node."),
    ] = "local",
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Route selection timeout in seconds.", min=0.001),
    ] = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Evaluate a packet and send it over the least risky admissible route.

    The packet is first evaluated by the guard. If allowed, a route is
    selected from the candidates, its RoH is re-checked, and the packet is
    dispatched over a loopback link.

    Example:
        $ infranet route packet.json --routes routes.yaml
    """
    _configure_logging(verbose)

    try:
        guard = InfranetGuard.load_from_policies(policy_dir)
        packet = _load_packet(packet_path)
        candidates = _load_routes(routes_path)
    except InfranetError as e:
        _fail(e, json_output, debug)

    decision = guard.evaluate(packet)
    if decision.denied:
        if json_output:
            print(json.dumps({"decision": _decision_dict(decision), "route": None}, indent=2))
        else:
            _display_decision(packet, decision)
        raise typer.Exit(code=EXIT_DENIED)

    node = MeshNode(node_id, LoopbackDriver(), CeilingAwareSelector(), selection_timeout=timeout)
    try:
        chosen = asyncio.run(node.send_with_routes(packet, candidates))
    except MeshError as e:
        if json_output:
            output = {"decision": _decision_dict(decision), "route": None, "error": e.to_dict()}
            print(json.dumps(output, indent=2, default=str))
        else:
            console.print(f"[red]{e}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=EXIT_DENIED)

    if json_output:
        output = {
            "decision": _decision_dict(decision),
            "route": chosen.model_dump(mode="json"),
        }
        print(json.dumps(output, indent=2))
    else:
        _display_decision(packet, decision)
        console.print(
            f"[green]✓[/green] Sent via [bold]{chosen.path_id}[/bold]"
            f" [dim]({' -> '.join(chosen.hops) or 'direct'})[/dim]"
        )

    raise typer.Exit(code=EXIT_ALLOWED)


@app.command("check-policies")
def check_policies(
    policy_dir: PolicyDirOption = Path("policies"),
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Load the policy documents and display them.

    Example:
        $ infranet check-policies --policies policies/
    """
    try:
        neurorights, tsafe = load_policy_documents(policy_dir)
    except PolicyLoadError as e:
        _fail(e, json_output, debug)

    if json_output:
        output = {
            "policy_dir": str(policy_dir),
            "neurorights": neurorights.model_dump(),
            "tsafe": tsafe.model_dump(),
        }
        print(json.dumps(output, indent=2))
        return

    console.print(f"[green]✓[/green] Policy documents loaded from [bold]{policy_dir}[/bold]")
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Document", style="cyan")
    table.add_column("Field")
    table.add_column("Value")
    for name, value in neurorights.model_dump().items():
        table.add_row("neurorights.json", name, str(value))
    table.add_row("tsafe.aln", "roh_ceiling", str(tsafe.roh_ceiling))
    console.print(table)


if __name__ == "__main__":
    app()
