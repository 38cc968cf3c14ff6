"""Data models for batch runs and directory scans."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from epub_catalog.models.book import ContainerRecord, TocEntry


class BatchSuccess(BaseModel):
    """Extraction result for a container that could be read."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    path: str
    record: ContainerRecord
    toc: list[TocEntry] = Field(default_factory=list)


class BatchFailure(BaseModel):
    """Extraction result for a container that could not be read."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    path: str
    error_message: str


BatchItemResult = Annotated[
    Union[BatchSuccess, BatchFailure], Field(discriminator="kind")
]


class ScannedFile(BaseModel):
    """Container file discovered by a directory scan."""

    path: str
    name: str
    size: int | None = None
    modified: datetime | None = None
    created: datetime | None = None


class CatalogManifest(BaseModel):
    """JSON manifest for a whole batch run."""

    created_at: datetime = Field(default_factory=datetime.now)
    total: int
    succeeded: int
    failed: int
    items: list[BatchItemResult]


@dataclass
class BatchRunState:
    """Progress of the batch run currently executing."""

    results: list[BatchSuccess | BatchFailure] = field(default_factory=list)
    current_index: int = 0
    current_path: str | None = None
    percent: int = 0
    total: int = 0
    processing: bool = False

    def reset(self) -> None:
        """Return to the initial, idle state."""
        self.results = []
        self.current_index = 0
        self.current_path = None
        self.percent = 0
        self.total = 0
        self.processing = False

    def begin_item(self, index: int, path: str) -> None:
        """Record that item `index` is about to be processed."""
        self.current_index = index
        self.current_path = path
        self.percent = progress_percent(index, self.total)


def progress_percent(index: int, total: int) -> int:
    """round((index + 1) / total * 100), with halves rounded up."""
    if total <= 0:
        return 0
    return (200 * (index + 1) + total) // (2 * total)
