"""Data models."""

from epub_catalog.models.archive import ArchiveEntry
from epub_catalog.models.batch import (
    BatchFailure,
    BatchItemResult,
    BatchRunState,
    BatchSuccess,
    CatalogManifest,
    ScannedFile,
)
from epub_catalog.models.book import (
    ContainerRecord,
    NormalizedBook,
    TocEntry,
    TocEntryType,
)

__all__ = [
    # Book models
    "TocEntry",
    "TocEntryType",
    "ContainerRecord",
    "NormalizedBook",
    # Batch models
    "BatchSuccess",
    "BatchFailure",
    "BatchItemResult",
    "BatchRunState",
    "ScannedFile",
    "CatalogManifest",
    # Archive models
    "ArchiveEntry",
]
