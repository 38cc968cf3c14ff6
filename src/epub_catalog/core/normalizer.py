"""Turn raw package metadata into normalized container records."""

import logging
import random
import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Mapping

from epub_catalog.core.opener import Opened, OpenResult
from epub_catalog.core.toc import extract_toc
from epub_catalog.models.book import (
    ContainerRecord,
    NormalizedBook,
    TocEntry,
    TocEntryType,
)

log = logging.getLogger(__name__)

# Default dates written by common authoring tools when no date was set
NULL_DATES = {"0101-01-01T00:00:00+00:00", "0001-01-01T00:00:00Z"}

UNKNOWN_FILE_NAME = "Unknown file"

PLACEHOLDER_TITLES = [
    "Travels in the Digital World",
    "Programming Languages of the Future",
    "Where Technology Meets the Humanities",
    "Thinking in the Age of Data",
    "The Ethics of Artificial Intelligence",
]
PLACEHOLDER_AUTHORS = ["Alex Smith", "Jordan Lee", "Sam Taylor", "Casey Brown", "Morgan Davis"]
PLACEHOLDER_PUBLISHERS = [
    "Technology Press",
    "Literary House",
    "Education Press",
    "People's Publishing",
    "Electronics Industry Press",
]
PLACEHOLDER_DESCRIPTION = (
    "A book about technology and innovation, exploring how modern "
    "scientific progress shapes society."
)

PLACEHOLDER_TOC = [
    ("Cover", TocEntryType.IMAGE, 0),
    ("Preface", TocEntryType.TEXT, 0),
    ("Chapter 1 Getting Started", TocEntryType.TEXT, 0),
    ("1.1 Preparation", TocEntryType.TEXT, 1),
    ("1.2 Fundamentals", TocEntryType.TEXT, 1),
    ("Chapter 2 Going Further", TocEntryType.TEXT, 0),
    ("Chapter 3 In Practice", TocEntryType.TEXT, 0),
    ("Appendix", TocEntryType.TEXT, 0),
    ("References", TocEntryType.TEXT, 0),
]

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_YEAR_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def file_name_from_path(file_path: str) -> str:
    """Last path segment, for both POSIX and Windows separators."""
    if not file_path:
        return UNKNOWN_FILE_NAME
    name = re.split(r"[/\\]", file_path)[-1]
    return name or file_path


def format_book_identifier(identifier: str | None) -> str:
    """Drop urn:uuid identifiers, which carry no catalog meaning."""
    if not identifier:
        return ""
    identifier = identifier.strip()
    if identifier.lower().startswith("urn:uuid:"):
        return ""
    return identifier


def clean_author(author: str | None) -> str:
    author = (author or "").strip()
    if author.lower() == "unknown":
        return ""
    return author


def clean_description(description: str | None) -> str:
    """Remove markup tags and collapse whitespace."""
    if not description:
        return ""
    text = _TAG_RE.sub("", description)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_publish_date(raw: str | None) -> str:
    """YYYY-MM-DD for a parseable date, empty for sentinels and garbage."""
    raw = (raw or "").strip()
    if not raw or raw in NULL_DATES:
        return ""

    if _YEAR_RE.match(raw):
        return f"{raw}-01-01"

    match = _YEAR_MONTH_RE.match(raw)
    if match:
        if 1 <= int(match.group(2)) <= 12:
            return f"{raw}-01"
        return ""

    try:
        parsed = datetime.fromisoformat(raw)
        if parsed.tzinfo is not None:
            # astimezone overflows next to year 1 and year 9999
            parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        log.debug(f"Unparseable publish date: {raw!r}")
        return ""
    return parsed.date().isoformat()


def build_record(
    raw_metadata: Mapping[str, str],
    toc: list[TocEntry],
    file_path: str,
    file_size: int,
) -> ContainerRecord:
    """Build a record from metadata of a successfully opened container."""
    return ContainerRecord(
        file_name=file_name_from_path(file_path),
        title=(raw_metadata.get("title") or "").strip(),
        book_identifier=format_book_identifier(raw_metadata.get("identifier")),
        author=clean_author(raw_metadata.get("creator")),
        publisher=(raw_metadata.get("publisher") or "").strip(),
        publish_date=normalize_publish_date(
            raw_metadata.get("date") or raw_metadata.get("pubdate")
        ),
        description=clean_description(raw_metadata.get("description")),
        chapter_count=len(toc),
        file_size_bytes=max(file_size, 0),
    )


def placeholder_toc() -> list[TocEntry]:
    """Generic book skeleton used when no navigation could be read."""
    return [
        TocEntry(title=title, type=entry_type, level=level)
        for title, entry_type, level in PLACEHOLDER_TOC
    ]


class MetadataNormalizer:
    """Normalize opened containers, degrading to placeholder data."""

    def __init__(
        self,
        rng: random.Random | None = None,
        today: Callable[[], date] | None = None,
    ):
        """Initialize normalizer.

        Args:
            rng: Source of randomness for placeholder values. Pass a seeded
                instance for reproducible output.
            today: Returns the reference date for placeholder publish dates.
        """
        self.rng = rng or random.Random()
        self.today = today or date.today

    def normalize(
        self, opened: OpenResult, file_path: str, file_size: int
    ) -> NormalizedBook:
        """Build the record and TOC for one container.

        Never raises for a malformed container: a failed open or a missing
        navigation structure yields placeholder data.
        """
        if isinstance(opened, Opened):
            navigation = opened.container.navigation
            if navigation is not None:
                toc = extract_toc(navigation.toc)
                record = build_record(
                    opened.container.package_metadata, toc, file_path, file_size
                )
                return NormalizedBook(record=record, toc=toc)
            log.warning(f"No navigation in {file_path}, using placeholder data")
        else:
            log.warning(f"Could not parse {file_path} ({opened.reason}), using placeholder data")

        return self.placeholder(file_path, file_size)

    def placeholder(self, file_path: str, file_size: int) -> NormalizedBook:
        toc = placeholder_toc()
        published = self.today() - timedelta(days=self.rng.randrange(365))
        record = ContainerRecord(
            file_name=file_name_from_path(file_path),
            title=self.rng.choice(PLACEHOLDER_TITLES),
            book_identifier="ISBN" + str(self.rng.randrange(1_000_000_000)).zfill(10),
            author=self.rng.choice(PLACEHOLDER_AUTHORS),
            publisher=self.rng.choice(PLACEHOLDER_PUBLISHERS),
            publish_date=published.isoformat(),
            description=PLACEHOLDER_DESCRIPTION,
            chapter_count=len(toc),
            file_size_bytes=max(file_size, 0),
        )
        return NormalizedBook(record=record, toc=toc, placeholder=True)
