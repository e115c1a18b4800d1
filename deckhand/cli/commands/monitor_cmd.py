"""``deckhand monitor RUN_ID`` and ``deckhand runs``: inspect recorded runs.

Both commands are read-only projections over the run ledger.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from deckhand.config import Settings
from deckhand.core.run_ledger import LedgerIntegrityError, RunLedger
from deckhand.monitor.projection import RunProjection
from deckhand.monitor.renderer import RunRenderer

console = Console()


def _open_ledger(ledger_db: Path | None) -> RunLedger:
    db_path = ledger_db or Settings().ledger_path
    if not db_path.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {db_path}")
        console.print("[dim]Record a run first with: deckhand run --ref <ref>[/dim]")
        raise typer.Exit(code=1)
    return RunLedger(db_path)


def monitor_cmd(
    run_id: str = typer.Argument(..., help="The pipeline run ID to show."),
    verify_chain: bool = typer.Option(
        False,
        "--verify-chain",
        "-V",
        help="Verify the hash chain integrity before displaying.",
    ),
    ledger_db: Path = typer.Option(
        None,
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """Show job states, artifacts and chain status for a run."""
    ledger = _open_ledger(ledger_db)
    renderer = RunRenderer(console=console)

    if ledger.get_run(run_id) is None:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        all_runs = ledger.run_ids()
        if all_runs:
            console.print("\n[bold]Available runs:[/bold]")
            for rid in all_runs[:10]:
                console.print(f"  [cyan]{rid}[/cyan]")
            if len(all_runs) > 10:
                console.print(f"  [dim]... and {len(all_runs) - 10} more[/dim]")
        raise typer.Exit(code=1)

    if verify_chain:
        try:
            valid = ledger.verify_chain(run_id)
        except LedgerIntegrityError as exc:
            console.print(f"[bold red]Chain verification failed:[/bold red] {exc}")
            valid = False
        renderer.print_chain_verification(run_id, valid)
        if not valid:
            raise typer.Exit(code=1)

    renderer.print_snapshot(RunProjection(ledger).snapshot(run_id))


def runs_cmd(
    limit: int = typer.Option(20, "--limit", "-n", help="Show at most this many runs."),
    ledger_db: Path = typer.Option(
        None,
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """List recorded runs, newest first."""
    ledger = _open_ledger(ledger_db)
    projection = RunProjection(ledger)

    run_ids = ledger.run_ids()
    if not run_ids:
        console.print("[dim]No runs recorded.[/dim]")
        return

    table = Table(title="Runs")
    table.add_column("Run ID", style="cyan")
    table.add_column("Ref")
    table.add_column("Jobs")
    table.add_column("Result", justify="center")

    for rid in run_ids[:limit]:
        snap = projection.snapshot(rid)
        jobs = ", ".join(f"{j.job_id}={j.state.value}" for j in snap.jobs)
        if snap.failed:
            outcome = "[red]failed[/red]"
        elif snap.finished:
            outcome = "[green]ok[/green]"
        else:
            outcome = "[yellow]incomplete[/yellow]"
        table.add_row(rid, snap.ref, jobs, outcome)

    console.print(table)
