"""
Test ZIP Writer Module
======================
Store-only archives checked against the standard library reader.
"""

import io
import struct
import zipfile
import zlib

import pytest

from epub_catalog.core.zip_writer import (
    END_OF_CENTRAL_DIRECTORY,
    LOCAL_HEADER,
    _assemble,
    encode_archive,
    write_archive,
)
from epub_catalog.errors import ArchiveError
from epub_catalog.models.archive import ArchiveEntry

ENTRIES = [
    ArchiveEntry(name="catalog.csv", data=b"\xef\xbb\xbf\"File Name\"\n"),
    ArchiveEntry(name="covers/封面.jpg", data=b"\xff\xd8\xff\xd9"),
    ArchiveEntry(name="empty.txt", data=b""),
]


def _eocd(archive: bytes) -> tuple:
    return END_OF_CENTRAL_DIRECTORY.unpack(archive[-END_OF_CENTRAL_DIRECTORY.size:])


def test_readable_by_zipfile():
    archive = encode_archive(ENTRIES)

    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        assert zf.testzip() is None
        assert zf.namelist() == [e.name for e in ENTRIES]
        for entry in ENTRIES:
            info = zf.getinfo(entry.name)
            assert info.compress_type == zipfile.ZIP_STORED
            assert info.flag_bits & 0x0800
            assert zf.read(entry.name) == entry.data


def test_layout():
    archive = encode_archive(ENTRIES)

    assert archive[:4] == b"PK\x03\x04"
    signature, _, _, on_disk, total, cd_size, cd_offset, comment_len = _eocd(archive)
    assert signature == 0x06054B50
    assert on_disk == total == len(ENTRIES)
    assert comment_len == 0
    assert cd_offset + cd_size + END_OF_CENTRAL_DIRECTORY.size == len(archive)
    assert archive[cd_offset:cd_offset + 4] == b"PK\x01\x02"

    expected_offset = 0
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        for entry, info in zip(ENTRIES, zf.infolist()):
            assert info.header_offset == expected_offset
            assert archive[info.header_offset:info.header_offset + 4] == b"PK\x03\x04"
            expected_offset += LOCAL_HEADER.size + len(entry.name.encode("utf-8")) + len(entry.data)


def test_crc_values():
    archive = encode_archive(ENTRIES[:1])
    crc = struct.unpack_from("<I", archive, 14)[0]
    assert crc == zlib.crc32(ENTRIES[0].data)


def test_crc_can_be_zeroed():
    archive = encode_archive(ENTRIES[:1], compute_crc=False)
    assert struct.unpack_from("<I", archive, 14)[0] == 0

    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        assert zf.getinfo("catalog.csv").CRC == 0


def test_no_entries():
    archive = encode_archive([])

    assert len(archive) == END_OF_CENTRAL_DIRECTORY.size
    assert _eocd(archive)[3] == 0
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        assert zf.namelist() == []


def test_too_many_entries():
    with pytest.raises(ArchiveError):
        encode_archive([ArchiveEntry(name=f"{i}.txt") for i in range(0x10000)])


def test_assemble():
    assert _assemble([b"ab", b"", b"cde"]) == b"abcde"
    with pytest.raises(ArchiveError):
        _assemble([b"", b""])


def test_write_archive(tmp_path):
    path = write_archive(tmp_path / "out.zip", ENTRIES)

    assert path.exists()
    with zipfile.ZipFile(path) as zf:
        assert zf.read("covers/封面.jpg") == b"\xff\xd8\xff\xd9"
