"""Sequential batch extraction over many container files."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from epub_catalog.core.cover import resolve_cover
from epub_catalog.core.normalizer import MetadataNormalizer
from epub_catalog.core.opener import Opened, OpenResult, open_container
from epub_catalog.core.source import FileSource, SourceBuffer
from epub_catalog.errors import SourceError
from epub_catalog.models.batch import (
    BatchFailure,
    BatchRunState,
    BatchSuccess,
    ScannedFile,
)

log = logging.getLogger(__name__)

EPUB_EXTENSION = ".epub"
DEFAULT_MAX_FILES = 500


@dataclass
class ScanConfig:
    """Options for a scan-and-export run."""

    max_files: int = DEFAULT_MAX_FILES
    extract_covers: bool = True
    seed: int | None = None
    csv_path: Path | None = None
    json_path: Path | None = None
    archive_path: Path | None = None


class BatchRunner:
    """Extract records from container files one at a time."""

    def __init__(
        self,
        source: FileSource | None = None,
        opener: Callable[[SourceBuffer], OpenResult] = open_container,
        normalizer: MetadataNormalizer | None = None,
        extract_covers: bool = True,
        on_progress: Callable[[BatchRunState], None] | None = None,
    ):
        self.source = source or FileSource()
        self.opener = opener
        self.normalizer = normalizer or MetadataNormalizer()
        self.extract_covers = extract_covers
        self.on_progress = on_progress
        self.state = BatchRunState()

    def run(self, paths: list[str]) -> list[BatchSuccess | BatchFailure]:
        """Process every path in order and return one result per path.

        A failing path produces a BatchFailure; the run always continues
        with the next path.
        """
        self.state.reset()
        self.state.total = len(paths)
        self.state.processing = True
        try:
            for index, path in enumerate(paths):
                self.state.begin_item(index, path)
                if self.on_progress:
                    self.on_progress(self.state)
                self.state.results.append(self._process(path))
            return list(self.state.results)
        finally:
            self.state.reset()

    def _process(self, path: str) -> BatchSuccess | BatchFailure:
        try:
            return self.extract(path)
        except SourceError as e:
            log.warning(f"Skipping {path}: {e}")
            return BatchFailure(path=path, error_message=str(e))
        except Exception as e:
            log.exception(f"Extraction failed for {path}")
            return BatchFailure(
                path=path, error_message=f"Extraction failed: {type(e).__name__}: {e}"
            )

    def extract(self, path: str) -> BatchSuccess:
        """Extract one container. Raises SourceError if it cannot be read."""
        buffer = self.source.read_bytes(path)
        try:
            file_size = self.source.stat(path).size
        except SourceError:
            file_size = len(buffer)

        opened = self.opener(buffer)
        book = self.normalizer.normalize(opened, path, file_size)

        record = book.record
        if self.extract_covers and isinstance(opened, Opened):
            cover = resolve_cover(opened.container)
            if cover:
                record = record.model_copy(update={"cover_data_uri": cover})

        return BatchSuccess(path=path, record=record, toc=book.toc)


def scan_directory(
    root: str | Path,
    max_files: int = DEFAULT_MAX_FILES,
    source: FileSource | None = None,
) -> list[ScannedFile]:
    """Recursively collect container files under `root`, at most `max_files`.

    Raises SourceError if `root` itself cannot be listed. Unreadable
    subdirectories are skipped.
    """
    source = source or FileSource()
    found: list[ScannedFile] = []
    if max_files <= 0:
        return found

    def walk(directory: str, is_root: bool) -> None:
        try:
            entries = source.list_dir(directory)
        except SourceError as e:
            if is_root:
                raise
            log.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            if len(found) >= max_files:
                return
            path = os.path.join(directory, entry.name)
            if entry.is_directory:
                walk(path, False)
            elif entry.is_file and entry.name.lower().endswith(EPUB_EXTENSION):
                found.append(_scanned_file(source, path, entry.name))

    walk(str(root), True)
    return found


def _scanned_file(source: FileSource, path: str, name: str) -> ScannedFile:
    try:
        stat = source.stat(path)
    except SourceError as e:
        log.debug(f"No stat for {path}: {e}")
        return ScannedFile(path=path, name=name)
    return ScannedFile(
        path=path,
        name=name,
        size=stat.size,
        modified=datetime.fromtimestamp(stat.mtime),
        created=datetime.fromtimestamp(stat.birthtime),
    )
