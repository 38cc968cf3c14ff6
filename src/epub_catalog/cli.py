"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from epub_catalog.commands.scan import execute_scan
from epub_catalog.core.batch import DEFAULT_MAX_FILES, ScanConfig, scan_directory
from epub_catalog.core.cover import resolve_cover
from epub_catalog.core.normalizer import MetadataNormalizer
from epub_catalog.core.opener import Opened
from epub_catalog.core.session import ContainerSession

app = typer.Typer(
    name="epub-catalog",
    help="Extract metadata, tables of contents and covers from EPUB files.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def format_file_size(size_bytes: int | None) -> str:
    if size_bytes is None:
        return "—"
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / 1024 / 1024:.2f} MB"


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging",
        ),
    ] = False,
) -> None:
    """Extract metadata, tables of contents and covers from EPUB files."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@app.command()
def scan(
    sources: Annotated[
        list[Path],
        typer.Argument(
            help="EPUB files and/or directories to scan recursively",
            exists=True,
            resolve_path=True,
        ),
    ],
    max_files: Annotated[
        int,
        typer.Option(
            "--max-files",
            "-n",
            help="Maximum number of files collected from directories",
            min=1,
        ),
    ] = DEFAULT_MAX_FILES,
    csv_path: Annotated[
        Optional[Path],
        typer.Option(
            "--csv",
            help="Write a CSV report to this path",
        ),
    ] = None,
    json_path: Annotated[
        Optional[Path],
        typer.Option(
            "--json",
            help="Write a JSON manifest (failures and TOC included) to this path",
        ),
    ] = None,
    archive_path: Annotated[
        Optional[Path],
        typer.Option(
            "--archive",
            "-o",
            help="Write a ZIP with the CSV report and all cover images",
        ),
    ] = None,
    no_covers: Annotated[
        bool,
        typer.Option(
            "--no-covers",
            help="Skip cover image extraction",
        ),
    ] = False,
    seed: Annotated[
        Optional[int],
        typer.Option(
            "--seed",
            help="Seed for placeholder data of unreadable books",
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output",
        ),
    ] = False,
) -> None:
    """Extract metadata from EPUB files and export the results."""
    config = ScanConfig(
        max_files=max_files,
        extract_covers=not no_covers,
        seed=seed,
        csv_path=csv_path,
        json_path=json_path,
        archive_path=archive_path,
    )
    try:
        execute_scan(sources=sources, config=config, quiet=quiet, console=console)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(1)


@app.command("list")
def list_files(
    directory: Annotated[
        Path,
        typer.Argument(
            help="Directory to scan recursively",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    max_files: Annotated[
        int,
        typer.Option(
            "--max-files",
            "-n",
            help="Maximum number of files to list",
            min=1,
        ),
    ] = DEFAULT_MAX_FILES,
) -> None:
    """List EPUB files found under a directory."""
    try:
        files = scan_directory(directory, max_files=max_files)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(1)

    if not files:
        console.print("[dim]No EPUB files found[/]")
        return

    table = Table(title="EPUB Files", show_header=True, header_style="bold cyan")
    table.add_column("Path", style="white")
    table.add_column("Size", justify="right", style="green")
    table.add_column("Modified", style="dim")
    table.add_column("Created", style="dim")

    for f in files:
        # Truncate path for display
        display_path = f.path if len(f.path) < 60 else "..." + f.path[-57:]
        table.add_row(
            escape(display_path),
            format_file_size(f.size),
            f.modified.strftime("%Y-%m-%d %H:%M") if f.modified else "—",
            f.created.strftime("%Y-%m-%d %H:%M") if f.created else "—",
        )

    console.print(table)
    if len(files) >= max_files:
        console.print(f"[yellow]Stopped at {max_files} file(s)[/]")


@app.command()
def info(
    book_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the EPUB file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
) -> None:
    """Display book metadata and table of contents."""
    try:
        with ContainerSession() as session:
            container = session.open(book_path)
            book = MetadataNormalizer().normalize(
                Opened(container), str(book_path), book_path.stat().st_size
            )
            has_cover = resolve_cover(container) is not None

        record = book.record
        info_lines = [
            f"[bold]{escape(record.title or record.file_name)}[/]",
            "",
            f"[dim]Author:[/] {escape(record.author) or 'Unknown'}",
            f"[dim]Publisher:[/] {escape(record.publisher) or 'Unknown'}",
            f"[dim]Published:[/] {record.publish_date or 'Unknown'}",
            f"[dim]Identifier:[/] {escape(record.book_identifier) or '—'}",
            f"[dim]File size:[/] {format_file_size(record.file_size_bytes)}",
            f"[dim]TOC entries:[/] {record.chapter_count}",
            f"[dim]Cover:[/] {'yes' if has_cover else 'no'}",
        ]
        if book.placeholder:
            info_lines.append("")
            info_lines.append("[yellow]No navigation found, showing placeholder data[/]")
        if record.description:
            info_lines.append("")
            info_lines.append(escape(record.description))

        console.print()
        console.print(
            Panel(
                "\n".join(info_lines),
                title="Book Information",
                border_style="green",
            )
        )

        # TOC table
        console.print()
        table = Table(
            title="Table of Contents", show_header=True, header_style="bold cyan"
        )
        table.add_column("#", style="dim", width=4)
        table.add_column("Title", style="white")
        table.add_column("Type", style="dim")
        table.add_column("Size", justify="right", style="green")

        for i, entry in enumerate(book.toc):
            indent = "  " * entry.level
            table.add_row(
                str(i + 1),
                f"{indent}{escape(entry.title)}",
                entry.type.value,
                format_file_size(entry.size_bytes),
            )

        console.print(table)
        console.print()

    except Exception as e:
        console.print(f"[red]Error reading file: {escape(str(e))}[/]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
