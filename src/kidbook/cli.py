"""Command-line studio for building illustrated children's books."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

from kidbook.archive import ArchiveKind, save_archive
from kidbook.config import StudioConfig, load_config, merge_cli_overrides
from kidbook.gemini import GeminiStudioClient
from kidbook.images import load_image_file
from kidbook.models import BookProject, ImageSize
from kidbook.workflow import AUTO_PILOT_PAGE_COUNT, StudioController, StudioSession

app = typer.Typer(
    name="kidbook",
    help="Plan, illustrate, and package children's books with Gemini.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from kidbook import __version__

        console.print(f"kidbook {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .kidbook.toml file."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Kidbook Studio - illustrated children's books from one topic."""
    _configure_logging(verbose)
    ctx.obj = load_config(config_path)


def _make_controller(config: StudioConfig, session: StudioSession, status: Status) -> StudioController:
    def render(s: StudioSession) -> None:
        if s.status:
            status.update(s.status)
        elif s.generating_index is not None:
            status.update(f"Illustrating page {s.generating_index}...")

    return StudioController(GeminiStudioClient(config), session, config=config, on_change=render)


def _print_project(project: BookProject) -> None:
    table = Table(title=project.title, show_lines=True)
    table.add_column("Page", justify="right")
    table.add_column("Text")
    table.add_column("Image", justify="center")
    for page in project.pages:
        table.add_row(str(page.page_number), page.text, "yes" if page.has_image else "-")
    console.print(table)

    if project.seo is not None:
        body = (
            f"[bold]{project.seo.title}[/bold]\n\n"
            f"{project.seo.description}\n\n"
            f"[dim]{', '.join(project.seo.keywords)}[/dim]"
        )
        console.print(Panel(body, title="Marketing"))


def _export(project: BookProject, output_dir: Path, images_only: bool) -> None:
    kinds = [ArchiveKind.IMAGES] if images_only else [ArchiveKind.FULL_KIT, ArchiveKind.IMAGES]
    for kind in kinds:
        path = save_archive(project, kind, output_dir)
        console.print(f"[green]Saved[/green] {path}")


def _fail(session: StudioSession, fallback: str) -> None:
    console.print(f"[red]{session.error or fallback}[/red]")
    raise typer.Exit(1)


@app.command()
def trend(ctx: typer.Context) -> None:
    """Suggest a trending book niche via search-grounded analysis."""
    config: StudioConfig = ctx.obj
    session = StudioSession.from_config(config)
    with console.status("Analyzing trends...") as status:
        controller = _make_controller(config, session, status)
        ok = asyncio.run(controller.discover_trend())
    if not ok:
        _fail(session, "Trend discovery failed.")

    console.print(f"[bold]Topic:[/bold] {session.topic}")
    console.print(f"[bold]Title:[/bold] {session.book_title}")
    console.print(f"[bold]Why:[/bold] {session.trend_reason}")


@app.command()
def create(
    ctx: typer.Context,
    topic: Annotated[str, typer.Argument(help="What the book is about.")],
    title: Annotated[
        Optional[str], typer.Option("--title", "-t", help="Book title.")
    ] = None,
    pages: Annotated[
        Optional[int], typer.Option("--pages", "-p", min=1, help="Number of pages.")
    ] = None,
    size: Annotated[
        Optional[ImageSize], typer.Option("--size", help="Illustration resolution tier.")
    ] = None,
    deep_thinking: Annotated[
        bool, typer.Option("--deep-thinking", help="Spend a reasoning budget on the story.")
    ] = False,
    reference: Annotated[
        Optional[Path],
        typer.Option("--reference", "-r", exists=True, dir_okay=False, help="Style reference image."),
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Directory for the zip bundles.")
    ] = None,
    images_only: Annotated[
        bool, typer.Option("--images-only", help="Only export the images bundle.")
    ] = False,
) -> None:
    """Plan, illustrate, and package a book for TOPIC."""
    config = merge_cli_overrides(
        ctx.obj,
        page_count=pages,
        image_size=size,
        output_directory=str(output) if output else None,
    )
    session = StudioSession.from_config(config)
    session.topic = topic
    session.book_title = title or ""
    session.deep_thinking = deep_thinking
    if reference is not None:
        session.reference_image = load_image_file(reference)

    async def run(controller: StudioController) -> bool:
        if not await controller.start_planning():
            return False
        await controller.generate_all_images()
        if not controller.can_generate_marketing:
            return False
        if not await controller.generate_marketing():
            return False
        controller.go_to_preview()
        return True

    with console.status("Planning the story...") as status:
        controller = _make_controller(config, session, status)
        ok = asyncio.run(run(controller))

    if session.project is not None:
        _print_project(session.project)
    if not ok:
        _fail(session, "Some pages could not be illustrated.")

    _export(session.project, Path(config.output.directory), images_only)


@app.command()
def autopilot(
    ctx: typer.Context,
    pages: Annotated[
        int, typer.Option("--pages", "-p", min=1, help="Number of pages.")
    ] = AUTO_PILOT_PAGE_COUNT,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Directory for the zip bundles.")
    ] = None,
) -> None:
    """Find a trend and build the whole book with no interaction."""
    config = merge_cli_overrides(ctx.obj, output_directory=str(output) if output else None)
    session = StudioSession.from_config(config)

    with console.status("Starting auto-pilot...") as status:
        controller = _make_controller(config, session, status)
        ok = asyncio.run(controller.run_auto_pilot(pages))

    if not ok:
        _fail(session, "Auto-pilot failed.")

    console.print(f"[bold]Trend:[/bold] {session.trend_reason}")
    _print_project(session.project)
    _export(session.project, Path(config.output.directory), images_only=False)


if __name__ == "__main__":
    app()
