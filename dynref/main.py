"""dynref CLI - find references to symbols loaded through dynamic imports."""
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from dynref.analyzer.matcher_config import load_registry, matchers_file_for
from dynref.analyzer.matchers import DEFAULT_MATCHERS
from dynref.analyzer.references import Location
from dynref.analyzer.search import find_references, search_symbol
from dynref.config import __version__, get_config
from dynref.utils.console import SafeConsole

app = typer.Typer(
    name="dynref",
    help="Find references to components loaded with dynamic(), lazy() and loadable()",
    add_completion=False
)
console = SafeConsole(force_terminal=True)


def _print_locations(locations: List[Location], symbol_label: str) -> None:
    if not locations:
        console.print(f"[yellow]No dynamic import references found for {escape(symbol_label)}[/yellow]")
        return

    table = Table(title=f"Dynamic import references: {escape(symbol_label)}")
    table.add_column("File", style="cyan", no_wrap=False)
    table.add_column("Line", justify="right", style="green")
    table.add_column("Column", justify="right", style="green")

    for location in locations:
        table.add_row(escape(location.file_path), str(location.line), str(location.column))

    console.print(table)
    console.print(f"[bold]{len(locations)} location(s)[/bold]", highlight=False)


@app.command()
def find(
    document: Path = typer.Argument(..., help="File that exports the symbol"),
    line: Optional[int] = typer.Option(None, "--line", "-l", help="0-based line of the symbol in DOCUMENT"),
    column: Optional[int] = typer.Option(None, "--column", "-c", help="0-based column of the symbol in DOCUMENT"),
    symbol: Optional[str] = typer.Option(None, "--symbol", "-s", help="Symbol name (instead of --line/--column)"),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Workspace root to search"),
    json_output: bool = typer.Option(False, "--json", help="Print locations as JSON"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads (default: DYNREF_MAX_WORKERS)"),
):
    """Find dynamic-import references to a symbol exported by DOCUMENT.

    Positions are 0-based, as are the reported locations.
    """
    document = document.resolve()
    root = root.resolve()

    if not document.is_file():
        console.print(f"[bold red]Error:[/bold red] Document does not exist: {escape(str(document))}")
        raise typer.Exit(1)
    if not root.is_dir():
        console.print(f"[bold red]Error:[/bold red] Workspace root is not a directory: {escape(str(root))}")
        raise typer.Exit(1)
    if symbol is None and (line is None or column is None):
        console.print("[bold red]Error:[/bold red] Pass --symbol, or both --line and --column")
        raise typer.Exit(1)

    workers = workers or get_config().max_workers

    if json_output:
        locations = _run_search(document, root, symbol, line, column, workers)
        typer.echo(json.dumps([location.to_dict() for location in locations], indent=2))
        return

    with console.status(f"Searching {escape(str(root))}..."):
        locations = _run_search(document, root, symbol, line, column, workers)

    _print_locations(locations, symbol or f"{document.name}:{line}:{column}")


def _run_search(document: Path, root: Path, symbol: Optional[str], line: Optional[int],
                column: Optional[int], workers: Optional[int]) -> List[Location]:
    if symbol is not None:
        return search_symbol(document, symbol, root, max_workers=workers)
    return find_references(document, line, column, root, max_workers=workers)


@app.command()
def matchers(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Workspace root holding the matcher configuration"),
):
    """List the active dynamic-import matcher rules."""
    root = root.resolve()
    registry = load_registry(root)

    table = Table(title="Dynamic import matchers", show_header=True, header_style="bold cyan")
    table.add_column("Origin", style="magenta")
    table.add_column("Kind", style="cyan")
    table.add_column("Name")
    table.add_column("Source", style="yellow")
    table.add_column("Namespace.Member")
    table.add_column("Alias", justify="center")

    for rule in registry.all_matchers():
        origin = "built-in" if rule in DEFAULT_MATCHERS else "custom"
        member = f"{rule.namespace}.{rule.member}" if rule.member else ""
        table.add_row(
            origin,
            rule.kind.value,
            rule.name or "",
            rule.source or "",
            member,
            "yes" if rule.allow_alias else "no",
        )

    console.print(table)
    console.print(f"[dim]Custom matchers file: {escape(str(matchers_file_for(root)))}[/dim]")


def _version_callback(value: bool):
    if value:
        typer.echo(f"dynref {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """dynref - references through dynamic imports."""
    pass


if __name__ == "__main__":
    app()
