"""Scan command implementation."""

import random
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from epub_catalog.core.batch import BatchRunner, ScanConfig, scan_directory
from epub_catalog.core.normalizer import MetadataNormalizer
from epub_catalog.core.report_writer import (
    catalog_entries,
    successes,
    write_csv,
    write_json_manifest,
)
from epub_catalog.core.zip_writer import write_archive
from epub_catalog.models.batch import BatchFailure, BatchRunState, BatchSuccess


def collect_paths(sources: list[Path], max_files: int) -> list[str]:
    """Expand directories into container paths; files are kept as given.

    The cap is shared by all directories.
    """
    paths: list[str] = []
    for source in sources:
        if source.is_dir():
            remaining = max_files - len(paths)
            if remaining <= 0:
                continue
            paths.extend(f.path for f in scan_directory(source, max_files=remaining))
        else:
            paths.append(str(source))
    return paths


def display_results(results: list[BatchSuccess | BatchFailure], console: Console) -> None:
    """Display per-file results table."""
    table = Table(title="Catalog", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("File", style="white")
    table.add_column("Title", style="white")
    table.add_column("Author", style="dim")
    table.add_column("Chapters", justify="right", style="green")
    table.add_column("Cover", justify="center")

    for i, result in enumerate(results):
        if isinstance(result, BatchSuccess):
            record = result.record
            table.add_row(
                str(i + 1),
                escape(record.file_name),
                escape(record.title[:40] + "..." if len(record.title) > 40 else record.title),
                escape(record.author),
                str(record.chapter_count),
                "[green]yes[/]" if record.cover_data_uri else "[dim]no[/]",
            )
        else:
            table.add_row(
                str(i + 1),
                escape(Path(result.path).name),
                f"[red]{escape(result.error_message)}[/]",
                "",
                "",
                "",
            )

    console.print(table)


def run_batch(
    paths: list[str], config: ScanConfig, quiet: bool, console: Console
) -> list[BatchSuccess | BatchFailure]:
    """Run the batch, with a progress bar unless quiet."""
    rng = random.Random(config.seed) if config.seed is not None else None
    normalizer = MetadataNormalizer(rng=rng)

    if quiet:
        runner = BatchRunner(normalizer=normalizer, extract_covers=config.extract_covers)
        return runner.run(paths)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Extracting...", total=100)

        def on_progress(state: BatchRunState) -> None:
            name = Path(state.current_path or "").name
            progress.update(
                task,
                completed=state.percent,
                description=f"[{state.current_index + 1}/{state.total}] {escape(name[:40])}",
            )

        runner = BatchRunner(
            normalizer=normalizer,
            extract_covers=config.extract_covers,
            on_progress=on_progress,
        )
        results = runner.run(paths)
        progress.update(task, completed=100, description="Done")
    return results


def execute_scan(
    sources: list[Path],
    config: ScanConfig,
    quiet: bool,
    console: Console,
) -> list[BatchSuccess | BatchFailure]:
    """Execute the scan command."""
    paths = collect_paths(sources, config.max_files)
    if not paths:
        console.print("[yellow]No EPUB files found.[/]")
        return []

    if not quiet:
        console.print(f"[dim]Found {len(paths)} file(s)[/]")

    results = run_batch(paths, config, quiet, console)

    written: list[Path] = []
    if config.csv_path:
        written.append(write_csv(config.csv_path, results))
    if config.json_path:
        written.append(write_json_manifest(config.json_path, results))
    if config.archive_path:
        written.append(write_archive(config.archive_path, catalog_entries(results)))

    if not quiet:
        console.print()
        display_results(results, console)
        console.print()

        ok = successes(results)
        summary_lines = [
            f"[green]Extracted {len(ok)} of {len(results)} file(s)[/]",
        ]
        failed = len(results) - len(ok)
        if failed:
            summary_lines.append(f"[red]{failed} file(s) could not be read[/]")
        if written:
            summary_lines.append("")
            summary_lines.extend(f"[dim]Wrote:[/] {path}" for path in written)

        console.print(
            Panel(
                "\n".join(summary_lines),
                title="Complete",
                border_style="green",
            )
        )

    return results
