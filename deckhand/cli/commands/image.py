"""``deckhand image``: list, render and build the preset container images."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from deckhand.config import Settings
from deckhand.core.build_context import BuildContextError
from deckhand.core.runner import SubprocessRunner
from deckhand.image.builder import ImageBuildError, ImageBuilder
from deckhand.image.dockerfile import render_dockerfile
from deckhand.image.presets import PRESETS, get_preset
from deckhand.log import configure_logging
from deckhand.models.image import ImageSpec

console = Console()

image_app = typer.Typer(
    name="image",
    help="Render and build the apwm container images.",
    no_args_is_help=True,
)


def _load(name: str) -> ImageSpec:
    try:
        return get_preset(name)
    except KeyError as exc:
        console.print(f"[bold red]{exc.args[0]}[/bold red]")
        raise typer.Exit(code=1)


@image_app.command(name="list", help="List the available image presets.")
def list_cmd() -> None:
    table = Table(title="Image Presets")
    table.add_column("Name", style="cyan")
    table.add_column("Reference", style="green")
    table.add_column("Base")
    table.add_column("Strategy")

    for name in sorted(PRESETS):
        spec = get_preset(name)
        table.add_row(name, spec.reference, spec.base_image, spec.strategy.kind)

    console.print(table)


@image_app.command(name="render", help="Print the Dockerfile for a preset.")
def render_cmd(
    name: str = typer.Argument(..., help="Preset name, see `deckhand image list`."),
    output: Path = typer.Option(
        None, "--output", "-o", help="Write the Dockerfile here instead of stdout."
    ),
) -> None:
    dockerfile = render_dockerfile(_load(name))
    if output is None:
        typer.echo(dockerfile, nl=False)
        return
    output.write_text(dockerfile, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output}")


@image_app.command(name="build", help="Build a preset image with docker.")
def build_cmd(
    name: str = typer.Argument(..., help="Preset name, see `deckhand image list`."),
    context: Path = typer.Option(
        Path("."), "--context", "-C", help="Build context directory."
    ),
    tag: str = typer.Option(None, "--tag", "-t", help="Override the image tag."),
) -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    spec = _load(name)
    if tag:
        spec = spec.model_copy(update={"tag": tag})

    builder = ImageBuilder(SubprocessRunner(), docker=settings.docker_binary)
    try:
        result = builder.build(spec, context)
    except BuildContextError as exc:
        console.print(f"[bold red]Invalid build context:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except ImageBuildError as exc:
        console.print(f"[bold red]Image build failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[green]Built[/green] {result.reference} [dim]{result.image_id}[/dim]")
