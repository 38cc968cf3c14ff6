"""Exceptions raised by the catalog pipeline."""


class SourceError(Exception):
    """A file or directory could not be read."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class ResourceNotFound(Exception):
    """A path requested from an opened container does not exist in it."""

    def __init__(self, href: str):
        self.href = href
        super().__init__(f"Resource not found in container: {href}")


class SessionNotOpenError(Exception):
    """A container session was used before open() or after close()."""


class ArchiveError(Exception):
    """The archive could not be assembled."""
