"""Explicit open/close lifecycle for a single container."""

from pathlib import Path

from epub_catalog.core.opener import EpubContainer, Opened, open_container
from epub_catalog.core.source import FileSource
from epub_catalog.errors import SessionNotOpenError


class ContainerSession:
    """Holds one opened container for interactive use.

    Usage:
        with ContainerSession() as session:
            container = session.open(path)
    """

    def __init__(self, source: FileSource | None = None):
        self.source = source or FileSource()
        self.path: Path | None = None
        self._container: EpubContainer | None = None

    @property
    def is_open(self) -> bool:
        return self._container is not None

    @property
    def container(self) -> EpubContainer:
        if self._container is None:
            raise SessionNotOpenError("No container is open")
        return self._container

    def open(self, path: str | Path) -> EpubContainer:
        """Open `path`, closing whatever was open before.

        Raises SourceError if the file cannot be read and ValueError if it is
        not a readable EPUB.
        """
        self.close()
        result = open_container(self.source.read_bytes(path))
        if not isinstance(result, Opened):
            raise ValueError(f"Could not open {path}: {result.reason}")
        self.path = Path(path)
        self._container = result.container
        return self._container

    def close(self) -> None:
        self._container = None
        self.path = None

    def __enter__(self) -> "ContainerSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
