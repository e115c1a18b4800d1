"""Main Typer application: imports and registers all CLI commands.

Entry point: ``deckhand`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from deckhand.cli.commands.guard import guard_cmd
from deckhand.cli.commands.image import image_app
from deckhand.cli.commands.monitor_cmd import monitor_cmd, runs_cmd
from deckhand.cli.commands.run import run_cmd

app = typer.Typer(
    name="deckhand",
    help="Deckhand: build the apwm binary on every push, deploy it from main.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Run the pipeline for a pushed ref.")(run_cmd)
app.command(name="guard", help="Check whether a ref is allowed to deploy.")(guard_cmd)
app.command(name="monitor", help="Show the state of a recorded run.")(monitor_cmd)
app.command(name="runs", help="List recorded runs.")(runs_cmd)
app.add_typer(image_app, name="image")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
