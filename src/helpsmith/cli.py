"""CLI entrypoints for helpsmith."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from helpsmith.config import Settings, load_settings
from helpsmith.errors import HelpsmithError
from helpsmith.logging import configure_logging, get_logger, project_context
from helpsmith.models.toc import TocNode
from helpsmith.session import ProjectSession

app = typer.Typer(add_completion=False, help="Edit, search and build HTML help projects")
console = Console()
logger = get_logger(__name__)

ProjectOption = typer.Option(Path("."), "--project", "-p", help="Project directory containing the TOC file")


def _settings() -> Settings:
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


async def _open(project: Path, settings: Settings, *, index: bool = False, scan: bool = False) -> ProjectSession:
    session = ProjectSession.for_directory(project, settings)
    try:
        await session.open(index=index, scan=scan)
    except HelpsmithError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    return session


def _add_branch(branch: Tree, nodes: list[TocNode]) -> None:
    for node in nodes:
        label = f"[bold]{node.text}[/bold]" if node.is_folder else node.text
        child = branch.add(f"{label} [dim]#{node.id} {node.url}[/dim]")
        _add_branch(child, node.children)


@app.command()
def toc(project: Path = ProjectOption) -> None:
    """Print the table of contents as a tree."""

    settings = _settings()

    async def _run() -> None:
        session = await _open(project, settings)
        document = session.require_document()
        root = Tree(f"[bold]{settings.toc_filename}[/bold]")
        _add_branch(root, document.elements)
        console.print(root)

    with project_context(project=str(project)):
        asyncio.run(_run())


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to find; * and ? are wildcards"),
    mode: str = typer.Option("title", "--mode", "-m", help="title (titles and content) or content"),
    stems: bool = typer.Option(False, "--stems", help="Match word stems, tolerating typos"),
    project: Path = ProjectOption,
) -> None:
    """Search section titles and page content."""

    if mode not in ("title", "content"):
        raise typer.BadParameter("--mode must be 'title' or 'content'")
    settings = _settings()

    async def _run() -> None:
        session = await _open(project, settings, index=True)
        hits = session.index.search_stems(query) if stems else session.search(query, mode)  # type: ignore[arg-type]
        if not hits:
            console.print("No matches")
            return
        table = Table("id", "title", "url", "snippet")
        for hit in hits:
            table.add_row(hit.id, hit.title, hit.url, hit.snippet)
        console.print(table)

    with project_context(project=str(project)):
        asyncio.run(_run())


@app.command()
def scan(project: Path = ProjectOption) -> None:
    """List pages missing from the TOC and images nothing refers to."""

    settings = _settings()

    async def _run() -> None:
        session = await _open(project, settings, scan=True)
        result = session.scan_result
        console.print(f"[bold]Orphan pages[/bold] ({len(result.orphan_pages)})")
        for page in result.orphan_pages:
            console.print(f"  {page.filename}  {page.title}")
        console.print(f"[bold]Unused images[/bold] ({len(result.unused_images)})")
        for image in result.unused_images:
            console.print(f"  {image}")

    with project_context(project=str(project)):
        asyncio.run(_run())


@app.command()
def build(
    project: Path = ProjectOption,
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory (overrides HELPSMITH_OUTPUT_DIR)"),
) -> None:
    """Save the project and generate the help artifacts."""

    settings = _settings()
    if output is not None:
        settings.output_dir = output
    elif not settings.output_dir.is_absolute():
        settings.output_dir = project / settings.output_dir

    async def _run() -> bool:
        session = await _open(project, settings, index=True)
        logger.info("Building %s into %s", project, settings.output_dir)
        report = await session.build()
        for warning in report.warnings:
            console.print(f"[yellow]warning:[/yellow] {warning}")
        for error in report.errors:
            console.print(f"[red]error:[/red] {error}")
        for filename in sorted(report.files):
            console.print(str(settings.output_dir / filename))
        return report.success

    with project_context(project=str(project)):
        if not asyncio.run(_run()):
            raise typer.Exit(code=1)


@app.command()
def add(
    title: str = typer.Argument(..., help="Section title"),
    filename: str = typer.Argument(..., help="Page file, relative to the project"),
    parent: str | None = typer.Option(None, "--parent", help="Parent node id; top level when omitted"),
    project: Path = ProjectOption,
) -> None:
    """Add a section and create its page when it does not exist yet."""

    settings = _settings()

    async def _run() -> str | None:
        session = await _open(project, settings)
        if await session.backend.afile_exists(filename):
            new_id = await session.add_section_from_file(title, filename, parent)
        else:
            new_id = await session.add_section(title, filename, parent)
        if new_id is not None:
            await session.save_all()
        return new_id

    with project_context(project=str(project)):
        new_id = asyncio.run(_run())
    if new_id is None:
        console.print(f"[red]Could not add '{title}'[/red]")
        raise typer.Exit(code=1)
    typer.echo(new_id)


@app.command()
def remove(node_id: str = typer.Argument(..., help="Node id"), project: Path = ProjectOption) -> None:
    """Remove a section and its subsections from the TOC; pages stay on disk."""

    settings = _settings()

    async def _run() -> bool:
        session = await _open(project, settings)
        if not await session.delete_section(node_id):
            return False
        return (await session.save_all()).success

    with project_context(project=str(project)):
        if not asyncio.run(_run()):
            console.print(f"[red]No section '{node_id}'[/red]")
            raise typer.Exit(code=1)


@app.command()
def move(
    node_id: str = typer.Argument(..., help="Node id"),
    parent: str | None = typer.Option(None, "--parent", help="New parent id; top level when omitted"),
    project: Path = ProjectOption,
) -> None:
    """Move a section under another section."""

    settings = _settings()

    async def _run() -> bool:
        session = await _open(project, settings)
        try:
            moved = await session.move_section(node_id, parent)
        except HelpsmithError as e:
            console.print(f"[red]{e}[/red]")
            return False
        if not moved:
            console.print("[red]Unknown section or parent[/red]")
            return False
        return (await session.save_all()).success

    with project_context(project=str(project)):
        if not asyncio.run(_run()):
            raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
