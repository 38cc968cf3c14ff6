"""Store-only ZIP archive writer.

Writes local file headers, a central directory and an end-of-central-directory
record with no compression. All fields are little-endian. No ZIP64 support,
so entry counts and sizes must fit the classic 16/32-bit fields.
"""

import logging
import struct
import zlib
from pathlib import Path

from epub_catalog.errors import ArchiveError
from epub_catalog.models.archive import ArchiveEntry

log = logging.getLogger(__name__)

LOCAL_HEADER_SIGNATURE = 0x04034B50
CENTRAL_DIRECTORY_SIGNATURE = 0x02014B50
END_OF_CENTRAL_DIRECTORY_SIGNATURE = 0x06054B50

ZIP_VERSION = 20
UTF8_NAME_FLAG = 0x0800
METHOD_STORED = 0

# signature, version, flags, method, time, date, crc, csize, usize, name len, extra len
LOCAL_HEADER = struct.Struct("<IHHHHHIIIHH")
# signature, made by, needed, flags, method, time, date, crc, csize, usize,
# name len, extra len, comment len, disk, internal attrs, external attrs, offset
CENTRAL_DIRECTORY_RECORD = struct.Struct("<IHHHHHHIIIHHHHHII")
# signature, disk, cd disk, entries on disk, entries total, cd size, cd offset, comment len
END_OF_CENTRAL_DIRECTORY = struct.Struct("<IHHHHIIH")

MAX_ENTRIES = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF


def _local_header(name: bytes, data: bytes, crc: int) -> bytes:
    return LOCAL_HEADER.pack(
        LOCAL_HEADER_SIGNATURE,
        ZIP_VERSION,
        UTF8_NAME_FLAG,
        METHOD_STORED,
        0,  # mod time
        0,  # mod date
        crc,
        len(data),
        len(data),
        len(name),
        0,  # extra field length
    ) + name


def _central_directory_record(name: bytes, data: bytes, crc: int, offset: int) -> bytes:
    return CENTRAL_DIRECTORY_RECORD.pack(
        CENTRAL_DIRECTORY_SIGNATURE,
        ZIP_VERSION,  # version made by
        ZIP_VERSION,  # version needed
        UTF8_NAME_FLAG,
        METHOD_STORED,
        0,  # mod time
        0,  # mod date
        crc,
        len(data),
        len(data),
        len(name),
        0,  # extra field length
        0,  # comment length
        0,  # disk number start
        0,  # internal attributes
        0,  # external attributes
        offset,
    ) + name


def _end_of_central_directory(count: int, size: int, offset: int) -> bytes:
    return END_OF_CENTRAL_DIRECTORY.pack(
        END_OF_CENTRAL_DIRECTORY_SIGNATURE,
        0,
        0,
        count,
        count,
        size,
        offset,
        0,
    )


def _assemble(parts: list[bytes]) -> bytes:
    """Copy parts into one buffer, falling back to a plain join."""
    total_length = sum(len(part) for part in parts)
    if total_length <= 0:
        raise ArchiveError("Archive has no content")

    try:
        result = bytearray(total_length)
        position = 0
        for part in parts:
            end = position + len(part)
            if end > total_length:
                raise ArchiveError(
                    f"Part overruns buffer ({end} > {total_length} bytes)"
                )
            result[position:end] = part
            position = end
        if position != total_length:
            raise ArchiveError(f"Wrote {position} of {total_length} bytes")
        return bytes(result)
    except ArchiveError as e:
        log.warning(f"Buffer assembly failed, concatenating parts: {e}")
        return b"".join(parts)


def encode_archive(entries: list[ArchiveEntry], compute_crc: bool = True) -> bytes:
    """Encode entries as a store-only ZIP archive.

    Args:
        entries: Named payloads, written in the given order.
        compute_crc: Write real CRC-32 values. When False the CRC fields are
            zero-filled, which lenient readers accept but strict ones reject.

    Returns:
        The complete archive bytes.

    Raises:
        ArchiveError: If the entries cannot be represented without ZIP64.
    """
    if len(entries) > MAX_ENTRIES:
        raise ArchiveError(f"Too many entries: {len(entries)} (max {MAX_ENTRIES})")

    parts: list[bytes] = []
    central_directory: list[bytes] = []
    offset = 0

    for entry in entries:
        name = entry.name.encode("utf-8")
        data = bytes(entry.data)
        if len(data) > MAX_UINT32:
            raise ArchiveError(f"Entry too large: {entry.name}")
        if len(name) > MAX_ENTRIES:
            raise ArchiveError(f"Entry name too long: {entry.name[:40]}...")
        if offset > MAX_UINT32:
            raise ArchiveError("Archive exceeds 4 GiB")
        crc = zlib.crc32(data) & MAX_UINT32 if compute_crc else 0

        header = _local_header(name, data, crc)
        parts.append(header)
        parts.append(data)
        central_directory.append(_central_directory_record(name, data, crc, offset))
        offset += len(header) + len(data)

    directory_offset = offset
    directory_size = sum(len(record) for record in central_directory)
    if directory_offset > MAX_UINT32 or directory_size > MAX_UINT32:
        raise ArchiveError("Archive exceeds 4 GiB")

    parts.extend(central_directory)
    parts.append(
        _end_of_central_directory(len(central_directory), directory_size, directory_offset)
    )
    return _assemble(parts)


def write_archive(path: Path, entries: list[ArchiveEntry], compute_crc: bool = True) -> Path:
    """Encode entries and write the archive to `path` in one go."""
    path.write_bytes(encode_archive(entries, compute_crc=compute_crc))
    return path
