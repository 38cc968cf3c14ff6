"""Data models for archive export."""

from pydantic import BaseModel


class ArchiveEntry(BaseModel):
    """One named payload stored in an output archive."""

    name: str  # path inside the archive
    data: bytes = b""
