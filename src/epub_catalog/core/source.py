"""File system access for container files."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from epub_catalog.errors import SourceError


class BufferKind(str, Enum):
    """Where a byte buffer came from."""

    NATIVE = "native"  # bytes read from disk
    GENERIC = "generic"  # bytearray/memoryview handed in by a caller


@dataclass(frozen=True)
class SourceBuffer:
    """Container bytes, tagged once at the I/O boundary."""

    kind: BufferKind
    data: bytes | bytearray | memoryview

    @classmethod
    def wrap(cls, data: bytes | bytearray | memoryview) -> "SourceBuffer":
        if isinstance(data, bytes):
            return cls(BufferKind.NATIVE, data)
        return cls(BufferKind.GENERIC, data)

    def as_bytes(self) -> bytes:
        if self.kind is BufferKind.NATIVE:
            return self.data  # type: ignore[return-value]
        return bytes(self.data)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class FileStat:
    """Size and timestamps of a file."""

    size: int
    mtime: float
    birthtime: float


@dataclass(frozen=True)
class DirEntry:
    """One entry of a directory listing."""

    name: str
    is_directory: bool
    is_file: bool


class FileSource:
    """Read files and list directories, raising SourceError on failure."""

    def read_bytes(self, path: str | Path) -> SourceBuffer:
        try:
            return SourceBuffer.wrap(Path(path).read_bytes())
        except OSError as e:
            raise SourceError(str(path), f"Failed to read file ({e.strerror or e})")

    def stat(self, path: str | Path) -> FileStat:
        try:
            st = os.stat(path)
        except OSError as e:
            raise SourceError(str(path), f"Failed to stat file ({e.strerror or e})")
        # st_birthtime only exists on macOS/BSD (and Windows on 3.12+)
        birthtime = getattr(st, "st_birthtime", st.st_ctime)
        return FileStat(size=st.st_size, mtime=st.st_mtime, birthtime=birthtime)

    def list_dir(self, path: str | Path) -> list[DirEntry]:
        try:
            with os.scandir(path) as it:
                entries = [
                    DirEntry(
                        name=e.name,
                        is_directory=e.is_dir(),
                        is_file=e.is_file(),
                    )
                    for e in it
                ]
        except OSError as e:
            raise SourceError(str(path), f"Failed to read directory ({e.strerror or e})")
        return sorted(entries, key=lambda e: e.name)
