"""Flatten navigation trees into leveled TOC entries."""

from typing import Iterable

from epub_catalog.models.book import TocEntry, TocEntryType

DEFAULT_TITLE = "Untitled chapter"


def extract_toc(nodes: Iterable | None) -> list[TocEntry]:
    """Pre-order walk of a navigation tree.

    Nodes only need `label`, `type`, `size` and `subitems` attributes; any
    of them may be missing. An empty or absent tree gives an empty list.
    """
    entries: list[TocEntry] = []
    _walk(nodes or [], 0, entries)
    return entries


def _walk(nodes: Iterable, level: int, entries: list[TocEntry]) -> None:
    for node in nodes:
        entries.append(
            TocEntry(
                title=getattr(node, "label", None) or DEFAULT_TITLE,
                type=_entry_type(getattr(node, "type", None)),
                size_bytes=max(getattr(node, "size", None) or 0, 0),
                level=level,
            )
        )
        children = getattr(node, "subitems", None)
        if children:
            _walk(children, level + 1, entries)


def _entry_type(value: str | None) -> TocEntryType:
    if not value:
        return TocEntryType.TEXT
    try:
        return TocEntryType(value)
    except ValueError:
        return TocEntryType.OTHER
