"""``deckhand guard REF``: evaluate the branch guard for a ref.

Exits 0 when a push of REF would deploy, 1 when it would not.
"""

from __future__ import annotations

import typer
from rich.console import Console

from deckhand.core.branch_guard import BranchGuard
from deckhand.models.events import PushEvent

console = Console()


def guard_cmd(
    ref: str = typer.Argument(..., help="Fully qualified ref, e.g. refs/heads/main."),
    release_ref: str = typer.Option(
        "refs/heads/main",
        "--release-ref",
        help="The one ref allowed to deploy.",
    ),
) -> None:
    """Check whether a push of REF is allowed to deploy."""
    decision = BranchGuard(release_ref=release_ref).evaluate(PushEvent(ref=ref))
    if decision.allowed:
        console.print(f"[green]deploy allowed:[/green] {decision.reason}")
        return
    console.print(f"[yellow]deploy skipped:[/yellow] {decision.reason}")
    raise typer.Exit(code=1)
