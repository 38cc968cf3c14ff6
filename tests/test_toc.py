"""
Test TOC Module
===============
Flattening of navigation trees into leveled entries.
"""

from types import SimpleNamespace

from epub_catalog.core.opener import NavPoint
from epub_catalog.core.toc import extract_toc
from epub_catalog.models.book import TocEntryType


def test_preorder_walk_assigns_levels():
    tree = [
        NavPoint(label="A", type="text", size=10),
        NavPoint(
            label="B",
            type="text",
            size=20,
            subitems=[
                NavPoint(label="B1", type="text", size=5),
                NavPoint(label="B2", type="image", size=7),
            ],
        ),
    ]

    entries = extract_toc(tree)

    assert [e.title for e in entries] == ["A", "B", "B1", "B2"]
    assert [e.level for e in entries] == [0, 0, 1, 1]
    assert entries[3].type == TocEntryType.IMAGE
    assert entries[3].size_bytes == 7


def test_missing_fields_get_defaults():
    entries = extract_toc([SimpleNamespace(), NavPoint(label="")])

    assert len(entries) == 2
    for entry in entries:
        assert entry.title == "Untitled chapter"
        assert entry.type == TocEntryType.TEXT
        assert entry.size_bytes == 0
        assert entry.level == 0


def test_unknown_type_maps_to_other():
    entries = extract_toc([NavPoint(label="Audio", type="audio")])
    assert entries[0].type == TocEntryType.OTHER


def test_deep_nesting():
    leaf = NavPoint(label="deep")
    node = leaf
    for depth in range(4):
        node = NavPoint(label=f"level{3 - depth}", subitems=[node])

    entries = extract_toc([node])

    assert [e.level for e in entries] == [0, 1, 2, 3, 4]
    assert entries[-1].title == "deep"


def test_empty_or_absent_tree():
    assert extract_toc([]) == []
    assert extract_toc(None) == []
