"""Export batch results as CSV, JSON manifest and archive entries."""

import csv
import io
import mimetypes
import re
from pathlib import Path

from epub_catalog.core.cover import data_uri_to_bytes
from epub_catalog.models.archive import ArchiveEntry
from epub_catalog.models.batch import BatchFailure, BatchSuccess, CatalogManifest

BOM = "\ufeff"

CSV_HEADERS = [
    "File Name",
    "Title",
    "Identifier",
    "Author",
    "Publisher",
    "Publish Date",
    "Description",
    "Chapter Count",
    "File Size",
]

COVERS_DIR = "covers"
CSV_ENTRY_NAME = "catalog.csv"

# mimetypes maps image/jpeg to .jpg only on some platforms
_COVER_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}


def successes(results: list[BatchSuccess | BatchFailure]) -> list[BatchSuccess]:
    return [r for r in results if isinstance(r, BatchSuccess)]


def to_delimited_text(results: list[BatchSuccess | BatchFailure]) -> str:
    """Render successful results as BOM-prefixed CSV.

    Text columns are always quoted with internal quotes doubled; the
    chapter count and file size columns are bare integers.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for result in successes(results):
        record = result.record
        writer.writerow(
            [
                record.file_name,
                record.title,
                record.book_identifier,
                record.author,
                record.publisher,
                record.publish_date,
                record.description,
                record.chapter_count,
                record.file_size_bytes,
            ]
        )
    return BOM + buffer.getvalue()


def to_json_manifest(results: list[BatchSuccess | BatchFailure]) -> str:
    """Render all results, failures included, as a JSON manifest."""
    ok = successes(results)
    manifest = CatalogManifest(
        total=len(results),
        succeeded=len(ok),
        failed=len(results) - len(ok),
        items=results,
    )
    return manifest.model_dump_json(indent=2)


def _cover_entry_name(file_name: str, media_type: str, used: set[str]) -> str:
    stem = re.sub(r"\.[^.]*$", "", file_name) or "cover"
    extension = _COVER_EXTENSIONS.get(media_type) or mimetypes.guess_extension(media_type) or ".bin"
    name = f"{COVERS_DIR}/{stem}{extension}"
    counter = 2
    while name in used:
        name = f"{COVERS_DIR}/{stem}_{counter}{extension}"
        counter += 1
    used.add(name)
    return name


def cover_entries(results: list[BatchSuccess | BatchFailure]) -> list[ArchiveEntry]:
    """One archive entry per successful result with a decodable cover."""
    entries = []
    used: set[str] = set()
    for result in successes(results):
        decoded = data_uri_to_bytes(result.record.cover_data_uri)
        if decoded is None:
            continue
        data, media_type = decoded
        name = _cover_entry_name(result.record.file_name, media_type, used)
        entries.append(ArchiveEntry(name=name, data=data))
    return entries


def catalog_entries(results: list[BatchSuccess | BatchFailure]) -> list[ArchiveEntry]:
    """CSV report followed by all cover images."""
    csv_entry = ArchiveEntry(
        name=CSV_ENTRY_NAME, data=to_delimited_text(results).encode("utf-8")
    )
    return [csv_entry, *cover_entries(results)]


def write_csv(path: Path, results: list[BatchSuccess | BatchFailure]) -> Path:
    path.write_text(to_delimited_text(results), encoding="utf-8", newline="")
    return path


def write_json_manifest(path: Path, results: list[BatchSuccess | BatchFailure]) -> Path:
    path.write_text(to_json_manifest(results), encoding="utf-8")
    return path
