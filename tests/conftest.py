import os
import zipfile
from pathlib import Path

import pytest
from ebooklib import epub

from epub_catalog.core.opener import ManifestItem, Navigation, NavPoint, Resource
from epub_catalog.core.source import DirEntry, FileStat, SourceBuffer
from epub_catalog.errors import ResourceNotFound, SourceError

# Smallest byte strings that still carry the right magic numbers
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02"


def _chapter(file_name: str, title: str, body: str = "") -> epub.EpubHtml:
    ch = epub.EpubHtml(title=title, file_name=file_name, lang="en")
    ch.content = (
        f"<html><head><title>{title}</title></head>"
        f"<body><h1>{title}</h1>{body}<p>Some text for {title}.</p></body></html>"
    )
    return ch


def make_epub(
    path: Path,
    *,
    title: str = "Sample Book",
    identifier: str = "isbn-9780000000001",
    author: str = "Jane Doe",
    publisher: str = "Test Publisher",
    date: str | None = "2021-03-04",
    description: str | None = "<p>A   <b>sample</b> book.</p>",
    cover: bytes | None = None,
    first_image: bytes | None = None,
) -> Path:
    """
    Create a small EPUB with a nested TOC.

    TOC: Chapter 1, Part Two > (Chapter 2, Chapter 3)
    """
    book = epub.EpubBook()
    book.set_identifier(identifier)
    book.set_title(title)
    book.set_language("en")
    book.add_author(author)
    book.add_metadata("DC", "publisher", publisher)
    if date:
        book.add_metadata("DC", "date", date)
    if description:
        book.add_metadata("DC", "description", description)

    body = ""
    if first_image is not None:
        image = epub.EpubImage(
            uid="pic", file_name="images/pic.png", media_type="image/png", content=first_image
        )
        book.add_item(image)
        body = '<p><img src="images/pic.png" alt="picture"/></p>'

    ch1 = _chapter("ch1.xhtml", "Chapter 1", body)
    ch2 = _chapter("ch2.xhtml", "Chapter 2")
    ch3 = _chapter("ch3.xhtml", "Chapter 3")
    for ch in (ch1, ch2, ch3):
        book.add_item(ch)

    if cover is not None:
        book.set_cover("cover.jpg", cover)

    book.toc = (
        epub.Link("ch1.xhtml", "Chapter 1", "ch1"),
        (
            epub.Section("Part Two", "ch2.xhtml"),
            (
                epub.Link("ch2.xhtml", "Chapter 2", "ch2"),
                epub.Link("ch3.xhtml", "Chapter 3", "ch3"),
            ),
        ),
    )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", ch1, ch2, ch3]

    epub.write_epub(str(path), book)
    return path


def make_bare_epub(
    path: Path, title: str = "No Navigation", meta_cover: bytes | None = None
) -> Path:
    """EPUB 2 package with a spine but neither NCX nor nav document.

    With `meta_cover`, a PNG is added whose only cover marker is
    <meta name="cover" content="img1"/>.
    """
    cover_meta = "<meta name=\"cover\" content=\"img1\"/>" if meta_cover else ""
    cover_item = (
        "<item id=\"img1\" href=\"images/pic.png\" media-type=\"image/png\"/>"
        if meta_cover
        else ""
    )
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", b"application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr(
            "META-INF/container.xml",
            (
                "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
                "<container version=\"1.0\" xmlns=\"urn:oasis:names:tc:opendocument:xmlns:container\">"
                "<rootfiles><rootfile full-path=\"OEBPS/content.opf\" media-type=\"application/oebps-package+xml\"/>"
                "</rootfiles></container>"
            ),
        )
        zf.writestr(
            "OEBPS/content.opf",
            (
                "<?xml version=\"1.0\" encoding=\"utf-8\"?>"
                "<package xmlns=\"http://www.idpf.org/2007/opf\" unique-identifier=\"BookId\" version=\"2.0\">"
                "<metadata xmlns:dc=\"http://purl.org/dc/elements/1.1/\">"
                "<dc:identifier id=\"BookId\">isbn-1</dc:identifier>"
                f"<dc:title>{title}</dc:title>"
                "<dc:language>en</dc:language>"
                f"{cover_meta}"
                "</metadata>"
                "<manifest>"
                "<item id=\"c1\" href=\"ch1.xhtml\" media-type=\"application/xhtml+xml\"/>"
                f"{cover_item}"
                "</manifest>"
                "<spine><itemref idref=\"c1\"/></spine>"
                "</package>"
            ),
        )
        zf.writestr(
            "OEBPS/ch1.xhtml",
            "<html xmlns=\"http://www.w3.org/1999/xhtml\"><head><title>One</title></head>"
            "<body><p>Text</p></body></html>",
        )
        if meta_cover:
            zf.writestr("OEBPS/images/pic.png", meta_cover)
    return path


@pytest.fixture
def sample_epub(tmp_path):
    return make_epub(tmp_path / "sample.epub")


@pytest.fixture
def cover_epub(tmp_path):
    return make_epub(tmp_path / "covered.epub", title="Covered", cover=JPEG_BYTES)


@pytest.fixture
def no_nav_epub(tmp_path):
    return make_bare_epub(tmp_path / "plain.epub")


@pytest.fixture
def broken_epub(tmp_path):
    path = tmp_path / "broken.epub"
    path.write_bytes(b"PK\x03\x04 this is not really a zip file")
    return path


# =============================================================================
# Fakes
# =============================================================================


class FakeContainer:
    """In-memory stand-in for an opened container."""

    def __init__(
        self,
        files: dict[str, tuple[bytes, str]] | None = None,
        *,
        cover: str | None = None,
        metadata: dict[str, str] | None = None,
        manifest: list[ManifestItem] | None = None,
        toc: list[NavPoint] | None = None,
        navigation: bool = True,
        cover_url: str | None = None,
    ):
        self.files = files or {}
        self.cover = cover
        self.package_metadata = metadata or {}
        self.manifest = manifest or []
        self.navigation = Navigation(toc=toc or []) if navigation else None
        self._cover_url = cover_url
        self.requests: list[str] = []

    def request(self, href: str) -> Resource:
        self.requests.append(href)
        if href not in self.files:
            raise ResourceNotFound(href)
        data, media_type = self.files[href]
        return Resource(path=href, data=data, media_type=media_type)

    def cover_url(self) -> str | None:
        return self._cover_url


class FakeSource:
    """Directory tree held in a dict: directory path -> entries."""

    def __init__(self, tree: dict[str, list[DirEntry]], broken_stats: set[str] | None = None):
        self.tree = tree
        self.broken_stats = broken_stats or set()
        self.listed: list[str] = []

    def list_dir(self, path):
        self.listed.append(str(path))
        if str(path) not in self.tree:
            raise SourceError(str(path), "Failed to read directory")
        return self.tree[str(path)]

    def stat(self, path):
        if str(path) in self.broken_stats:
            raise SourceError(str(path), "Failed to stat file")
        return FileStat(size=100, mtime=1_600_000_000.0, birthtime=1_500_000_000.0)

    def read_bytes(self, path):
        return SourceBuffer.wrap(b"")


def build_tree(root: str, dirs: int, files_per_dir: int) -> dict[str, list[DirEntry]]:
    tree = {root: [DirEntry(name=f"d{i}", is_directory=True, is_file=False) for i in range(dirs)]}
    for i in range(dirs):
        tree[os.path.join(root, f"d{i}")] = [
            DirEntry(name=f"book{j:03d}.epub", is_directory=False, is_file=True)
            for j in range(files_per_dir)
        ]
    return tree
