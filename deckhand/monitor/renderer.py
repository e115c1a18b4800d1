"""Rich terminal renderer for run snapshots.

Color scheme
------------
- green     : PASSED
- red       : FAILED / BLOCKED
- yellow    : RUNNING
- cyan      : SKIPPED
- dim       : NOT_STARTED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from deckhand.models.jobs import JobState
from deckhand.monitor.projection import RunSnapshot

_STATE_LABELS: dict[JobState, str] = {
    JobState.PASSED: "[green]PASSED[/green]",
    JobState.FAILED: "[bold red]FAILED[/bold red]",
    JobState.RUNNING: "[yellow]RUNNING[/yellow]",
    JobState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    JobState.SKIPPED: "[cyan]SKIPPED[/cyan]",
    JobState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}


class RunRenderer:
    """Renders ``RunSnapshot`` as Rich terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_snapshot(self, snapshot: RunSnapshot) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Job", min_width=12)
        table.add_column("State", min_width=12, justify="center")
        table.add_column("Details", min_width=20)
        table.add_column("Artifacts", justify="right", width=10)

        for i, job in enumerate(snapshot.jobs):
            details: list[str] = []
            if job.failed_step:
                details.append(f"step: {job.failed_step}")
            if job.detail:
                details.append(Text(job.detail).plain)
            if job.entered_at:
                details.append(job.entered_at.strftime("%H:%M:%S"))
            table.add_row(
                str(i),
                job.display_name,
                _STATE_LABELS.get(job.state, job.state.value),
                Text(" | ".join(details) or "-"),
                str(len(job.artifact_refs)),
            )

        chain = "[green]valid[/green]" if snapshot.chain_valid else "[bold red]BROKEN[/bold red]"
        summary = "  |  ".join([
            f"[bold]Run:[/bold] {snapshot.run_id}",
            f"[bold]Ref:[/bold] {snapshot.ref or '-'}",
            f"[bold]Sha:[/bold] {snapshot.sha[:12] or '-'}",
            f"[bold]Artifacts:[/bold] {snapshot.artifact_count}",
            f"[bold]Chain:[/bold] {chain}",
        ])

        border = "red" if snapshot.failed else "green" if snapshot.finished else "blue"
        return Panel(
            Group(table, Text(""), Text.from_markup(summary)),
            title="[bold]Deckhand Run[/bold]",
            subtitle=f"Last updated: {snapshot.last_updated.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style=border,
            padding=(1, 2),
        )

    def print_snapshot(self, snapshot: RunSnapshot) -> None:
        self.console.print(self.render_snapshot(snapshot))

    def print_chain_verification(self, run_id: str, valid: bool) -> None:
        if valid:
            self.console.print(f"[green]Hash chain for run {run_id} is valid.[/green]")
        else:
            self.console.print(f"[bold red]Hash chain for run {run_id} is BROKEN![/bold red]")
