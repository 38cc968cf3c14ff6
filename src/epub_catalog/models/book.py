"""Data models for extracted book metadata and table of contents."""

from enum import Enum

from pydantic import BaseModel, Field


class TocEntryType(str, Enum):
    """Kind of document a TOC entry points at."""

    TEXT = "text"
    IMAGE = "image"
    OTHER = "other"


class TocEntry(BaseModel):
    """Single flattened entry in table of contents."""

    title: str = "Untitled chapter"
    type: TocEntryType = TocEntryType.TEXT
    size_bytes: int = Field(default=0, ge=0)
    level: int = Field(default=0, ge=0)


class ContainerRecord(BaseModel):
    """Normalized metadata for one container file."""

    file_name: str
    title: str = ""
    book_identifier: str = ""
    author: str = ""
    publisher: str = ""
    publish_date: str = ""  # YYYY-MM-DD or empty
    description: str = ""
    chapter_count: int = Field(default=0, ge=0)
    file_size_bytes: int = Field(default=0, ge=0)
    cover_data_uri: str | None = None


class NormalizedBook(BaseModel):
    """Record plus the TOC it was counted from."""

    record: ContainerRecord
    toc: list[TocEntry] = Field(default_factory=list)
    placeholder: bool = False  # True when built from fallback data
