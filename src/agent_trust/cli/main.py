"""CLI entry point for agent-trust.

Invoked as::

    agent-trust [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m agent_trust.cli.main

Commands
--------
version         Show version information
scan            Run the single-message security checks on a message
record          Record an interaction as trust evidence in a JSON store
score           Compute a trust profile from a JSON store
impersonation   Check a username against existing names
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option()
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Multi-dimensional trust scoring, threat detection and access control"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from agent_trust import __version__

    console.print(f"[bold]agent-trust[/bold] v{__version__}")


# ------------------------------------------------------------------
# scan
# ------------------------------------------------------------------


@cli.command(name="scan")
@click.argument("message")
@click.option("--entity", "-e", default="unknown", help="Entity ID of the sender.")
@click.option("--room", "-r", default=None, help="Room the message was sent in.")
def scan_command(message: str, entity: str, room: str | None) -> None:
    """Check MESSAGE for prompt injection, social engineering and credential theft."""
    from agent_trust.security import SecurityCheck, SecurityContext, SecurityDetector

    detector = SecurityDetector()
    context = SecurityContext(entity_id=entity, room_id=room)

    async def run() -> list[tuple[str, SecurityCheck]]:
        return [
            ("Prompt injection", await detector.detect_prompt_injection(message, context)),
            ("Social engineering", await detector.detect_social_engineering(message, context)),
            (
                "Credential request",
                await detector.scan_credential_request(message, entity, context),
            ),
        ]

    results = asyncio.run(run())

    table = Table(title="Security Scan", show_header=True)
    table.add_column("Check", style="cyan")
    table.add_column("Detected", justify="center")
    table.add_column("Confidence", justify="right")
    table.add_column("Severity")
    table.add_column("Action")
    table.add_column("Details")

    for name, check in results:
        table.add_row(
            name,
            "[red]yes[/red]" if check.detected else "[green]no[/green]",
            f"{check.confidence:.2f}",
            check.severity.value,
            check.action.value,
            check.details or "",
        )

    console.print(table)


# ------------------------------------------------------------------
# record
# ------------------------------------------------------------------


@cli.command(name="record")
@click.argument("entity_id")
@click.option(
    "--store",
    "store_dir",
    type=click.Path(file_okay=False),
    required=True,
    help="Directory of the JSON component store.",
)
@click.option("--observer", required=True, help="Entity that observed the interaction.")
@click.option("--type", "evidence_type", required=True, help="Evidence type, e.g. HELPFUL_ACTION.")
@click.option("--impact", type=float, required=True, help="Signed impact in [-100, 100].")
@click.option("--world", default=None, help="World the interaction happened in.")
@click.option("--description", default="", help="Free-text note stored with the evidence.")
def record_command(
    entity_id: str,
    store_dir: str,
    observer: str,
    evidence_type: str,
    impact: float,
    world: str | None,
    description: str,
) -> None:
    """Record an interaction by ENTITY_ID as trust evidence."""
    from agent_trust.clock import now_ms
    from agent_trust.store import JsonComponentStore
    from agent_trust.trust import TrustContext, TrustEngine, TrustEvidenceType, TrustInteraction

    try:
        kind = TrustEvidenceType(evidence_type.upper())
    except ValueError:
        valid = ", ".join(t.value for t in TrustEvidenceType)
        console.print(f"[red]Error:[/red] unknown evidence type {evidence_type!r}. Valid: {valid}")
        sys.exit(1)

    if not -100.0 <= impact <= 100.0:
        console.print("[red]Error:[/red] --impact must be within [-100, 100].")
        sys.exit(1)

    engine = TrustEngine(JsonComponentStore(Path(store_dir)), agent_id=observer)
    interaction = TrustInteraction(
        source_entity_id=entity_id,
        target_entity_id=observer,
        type=kind,
        timestamp=now_ms(),
        impact=impact,
        details={"description": description} if description else {},
        context=TrustContext(evaluator_id=observer, world_id=world),
    )
    asyncio.run(engine.record_interaction(interaction))
    console.print(
        f"[green]Recorded[/green] {kind.value} ({impact:+g}) for [bold]{entity_id}[/bold]"
    )


# ------------------------------------------------------------------
# score
# ------------------------------------------------------------------


@cli.command(name="score")
@click.argument("entity_id")
@click.option(
    "--store",
    "store_dir",
    type=click.Path(file_okay=False),
    required=True,
    help="Directory of the JSON component store.",
)
@click.option("--evaluator", required=True, help="Entity whose view of ENTITY_ID to compute.")
@click.option("--world", default=None, help="Restrict evidence to one world.")
@click.option("--room", default=None, help="Restrict evidence to one room.")
def score_command(
    entity_id: str,
    store_dir: str,
    evaluator: str,
    world: str | None,
    room: str | None,
) -> None:
    """Compute the trust profile of ENTITY_ID from a JSON component store."""
    from agent_trust.store import JsonComponentStore
    from agent_trust.trust import TrustContext, TrustEngine

    engine = TrustEngine(JsonComponentStore(Path(store_dir)), agent_id=evaluator)
    context = TrustContext(evaluator_id=evaluator, world_id=world, room_id=room)
    profile = asyncio.run(engine.calculate_trust(entity_id, context))

    table = Table(title=f"Trust Profile — {entity_id}", show_header=True)
    table.add_column("Dimension", style="cyan")
    table.add_column("Score", justify="right")

    for dim, score in profile.dimensions.items():
        table.add_row(dim.value.capitalize(), f"{score:.2f}")

    console.print(table)
    console.print(f"  Overall trust: [bold]{profile.overall_trust:g}[/bold]")
    console.print(f"  Confidence:    {profile.confidence:.2f}")
    console.print(f"  Evidence:      {profile.interaction_count}")
    console.print(
        f"  Trend:         {profile.trend.direction} ({profile.trend.change_rate:+.1f}/day)"
    )


# ------------------------------------------------------------------
# impersonation
# ------------------------------------------------------------------


@cli.command(name="impersonation")
@click.argument("username")
@click.option(
    "--existing",
    "-x",
    multiple=True,
    required=True,
    help="An existing username (repeatable).",
)
def impersonation_command(username: str, existing: tuple[str, ...]) -> None:
    """Check whether USERNAME imitates one of the existing names."""
    from agent_trust.security import SecurityDetector

    detector = SecurityDetector()
    detection = asyncio.run(detector.detect_impersonation(username, list(existing)))

    if detection is None:
        console.print(f"[green]No impersonation[/green] detected for [bold]{username}[/bold]")
        return

    console.print(
        f"[red]Possible impersonation:[/red] [bold]{detection.impersonator}[/bold] "
        f"resembles [bold]{detection.impersonated}[/bold]"
    )
    console.print(f"  Confidence:        {detection.confidence:.2f}")
    console.print(f"  Visual similarity: {detection.visual_similarity:.2f}")
    console.print(f"  Recommendation:    {detection.recommendation}")
    sys.exit(2)


if __name__ == "__main__":
    cli()
