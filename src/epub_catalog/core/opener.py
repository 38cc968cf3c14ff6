"""Open EPUB containers with ebooklib and expose what the pipeline needs."""

import logging
import mimetypes
import posixpath
import tempfile
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

# ebooklib emits UserWarning/FutureWarning noise for most real-world books
warnings.filterwarnings("ignore", category=UserWarning, module="ebooklib")
warnings.filterwarnings("ignore", category=FutureWarning, module="ebooklib")

import ebooklib
from ebooklib import epub

from epub_catalog.core.source import SourceBuffer
from epub_catalog.errors import ResourceNotFound

log = logging.getLogger(__name__)

METADATA_FIELDS = ("title", "creator", "publisher", "date", "identifier", "description")
TEXT_MEDIA_TYPES = {"application/xhtml+xml", "text/html", "application/x-dtbook+xml"}


@dataclass
class NavPoint:
    """Node of the navigation tree."""

    label: str | None
    href: str | None = None
    type: str | None = None
    size: int | None = None
    subitems: list["NavPoint"] = field(default_factory=list)


@dataclass
class Navigation:
    """Navigation structure of an opened container."""

    toc: list[NavPoint] = field(default_factory=list)


@dataclass
class ManifestItem:
    """Manifest entry of the package document."""

    id: str
    href: str
    media_type: str


@dataclass
class Resource:
    """A file fetched from inside a container."""

    path: str
    data: bytes
    media_type: str

    def blob(self) -> bytes:
        return self.data

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


def normalize_href(href: str) -> str:
    """Strip fragment/query, decode, and collapse ./ and ../ segments."""
    path = unquote(href.split("#", 1)[0].split("?", 1)[0])
    path = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
    while path.startswith("../"):
        path = path[3:]
    return "" if path == "." else path


def resolve_href(base_href: str, href: str) -> str:
    """Resolve `href` relative to the document at `base_href`."""
    if href.startswith("/"):
        return normalize_href(href)
    base_dir = posixpath.dirname(normalize_href(base_href))
    return normalize_href(posixpath.join(base_dir, href))


def guess_media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name)
    return media_type or "application/octet-stream"


class EpubContainer:
    """Handle on an opened EPUB, backed by an ebooklib book."""

    def __init__(self, book: epub.EpubBook):
        self.book = book
        self._items = {
            normalize_href(item.get_name()): item for item in book.get_items()
        }

    @property
    def package_metadata(self) -> dict[str, str]:
        """First value of each Dublin Core field plus the cover-image id."""
        metadata: dict[str, str] = {}
        for name in METADATA_FIELDS:
            value = self._first_metadata("DC", name)
            if value:
                metadata[name] = value
        # ebooklib files <meta name="cover" content="..."> under OPF "meta"
        for _, attrs in self._metadata("OPF", "meta"):
            attrs = attrs or {}
            if attrs.get("name") == "cover" and attrs.get("content"):
                metadata["cover-image"] = attrs["content"]
                break
        return metadata

    @property
    def manifest(self) -> list[ManifestItem]:
        return [
            ManifestItem(
                id=item.get_id() or "",
                href=item.get_name(),
                media_type=item.media_type or guess_media_type(item.get_name()),
            )
            for item in self.book.get_items()
        ]

    @property
    def navigation(self) -> Navigation | None:
        """Navigation tree, or None when the book has no NCX and no nav document."""
        has_navigation = any(
            isinstance(item, (epub.EpubNcx, epub.EpubNav))
            for item in self.book.get_items()
        )
        if not has_navigation:
            return None
        return Navigation(toc=self._build_nav_points(self.book.toc))

    @property
    def cover(self) -> str | None:
        """Href of the manifest item flagged as cover image."""
        for item in self.book.get_items_of_type(ebooklib.ITEM_COVER):
            return item.get_name()
        return None

    def request(self, href: str) -> Resource:
        path = normalize_href(href)
        item = self._items.get(path)
        if item is None:
            raise ResourceNotFound(href)
        return Resource(
            path=path,
            data=item.get_content(),
            media_type=item.media_type or guess_media_type(path),
        )

    def cover_url(self) -> str | None:
        """Image href named by the guide, else the first image called 'cover'."""
        for reference in getattr(self.book, "guide", None) or []:
            if (reference.get("type") or "").lower() != "cover":
                continue
            item = self._items.get(normalize_href(reference.get("href") or ""))
            if item is not None and self._is_image(item):
                return item.get_name()

        for item in self.book.get_items():
            if not self._is_image(item):
                continue
            if "cover" in (item.get_id() or "").lower() or "cover" in item.get_name().lower():
                return item.get_name()
        return None

    def _metadata(self, namespace: str, name: str) -> list:
        try:
            return self.book.get_metadata(namespace, name) or []
        except KeyError:
            # namespace missing from the package document
            return []

    def _first_metadata(self, namespace: str, name: str) -> str | None:
        for value, _ in self._metadata(namespace, name):
            if value and value.strip():
                return value.strip()
        return None

    def _is_image(self, item) -> bool:
        media_type = item.media_type or guess_media_type(item.get_name())
        return media_type.startswith("image/")

    def _build_nav_points(self, toc_items) -> list[NavPoint]:
        """Convert ebooklib's Link / (Section, children) tree."""
        points = []
        for item in toc_items or []:
            if isinstance(item, tuple):
                section, children = item
                point = self._nav_point(section)
                point.subitems = self._build_nav_points(children)
            else:
                point = self._nav_point(item)
            points.append(point)
        return points

    def _nav_point(self, node) -> NavPoint:
        href = getattr(node, "href", None) or None
        point = NavPoint(label=getattr(node, "title", None) or None, href=href)
        if href:
            item = self._items.get(normalize_href(href))
            if item is not None:
                media_type = item.media_type or guess_media_type(item.get_name())
                if media_type in TEXT_MEDIA_TYPES:
                    point.type = "text"
                elif media_type.startswith("image/"):
                    point.type = "image"
                else:
                    point.type = "other"
                point.size = len(item.get_content() or b"")
        return point


@dataclass(frozen=True)
class Opened:
    """The container was opened."""

    container: EpubContainer


@dataclass(frozen=True)
class OpenFailed:
    """The container could not be opened."""

    reason: str


OpenResult = Opened | OpenFailed


def open_container(buffer: SourceBuffer) -> OpenResult:
    """Open EPUB bytes. Never raises; failures come back as OpenFailed."""
    data = buffer.as_bytes()
    try:
        # ebooklib reads from a path and loads every item eagerly,
        # so the temporary file can go once read_epub returns
        with tempfile.TemporaryDirectory() as tmp:
            book_path = Path(tmp) / "book.epub"
            book_path.write_bytes(data)
            book = epub.read_epub(str(book_path), {"ignore_ncx": False})
    except Exception as e:
        reason = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
        log.debug(f"Could not open container ({len(data)} bytes): {reason}")
        return OpenFailed(reason=reason)
    return Opened(container=EpubContainer(book))
