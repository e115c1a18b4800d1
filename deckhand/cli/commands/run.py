"""``deckhand run``: run the build-and-deploy pipeline for one push.

Exit code 0 when no job failed (a skipped deploy is a success), 1 otherwise.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from deckhand.config import Settings
from deckhand.core.orchestrator import Pipeline
from deckhand.core.run_ledger import RunExistsError
from deckhand.log import configure_logging
from deckhand.models.config import load_pipeline_config
from deckhand.models.events import PushEvent
from deckhand.monitor.projection import RunProjection
from deckhand.monitor.renderer import RunRenderer

console = Console()


def run_cmd(
    ref: str = typer.Option(
        ...,
        "--ref",
        help="Fully qualified ref that was pushed, e.g. refs/heads/main.",
    ),
    sha: str = typer.Option(
        "",
        "--sha",
        help="Commit to check out. Defaults to the tip of the source.",
    ),
    source: str = typer.Option(
        None,
        "--source",
        "-s",
        help="Repository path or URL to build. Overrides the config file.",
    ),
    config_file: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="deckhand.toml or pyproject.toml to read pipeline config from.",
    ),
    run_id: str = typer.Option(
        None,
        "--run-id",
        help="Explicit run ID. Generated when omitted.",
    ),
) -> None:
    """Run the build job, and the deploy job when the ref is the release branch."""
    settings = Settings()
    configure_logging(settings.log_level)

    try:
        config = load_pipeline_config(
            config_file,
            source=source,
            ledger_db_path=settings.ledger_path,
            artifact_store_path=settings.artifact_store_path,
            cache_dir=settings.cache_dir,
            workspace_dir=settings.workspace_dir,
        )
    except (FileNotFoundError, tomllib.TOMLDecodeError, ValidationError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    pipeline = Pipeline(config=config)
    try:
        result = pipeline.run(PushEvent(ref=ref, sha=sha), run_id=run_id)
    except RunExistsError as exc:
        console.print(f"[bold red]Run not started:[/bold red] {escape(str(exc))}")
        console.print("[dim]Omit --run-id to get a fresh one.[/dim]")
        raise typer.Exit(code=1)

    snapshot = RunProjection(pipeline.ledger, pipeline.job_definitions).snapshot(
        result.run_id
    )
    RunRenderer(console=console).print_snapshot(snapshot)

    for job in result.jobs:
        if job.failed_step:
            console.print(
                f"[bold red]{job.job_id} failed at step "
                f"'{job.failed_step}':[/bold red] {escape(job.error or '')}"
            )

    # Print the run_id plainly for scripting
    console.print(f"[bold]{result.run_id}[/bold]")

    if not result.succeeded:
        raise typer.Exit(code=1)
