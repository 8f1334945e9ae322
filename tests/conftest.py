"""
Shared fixtures for the dbfkit tests.

DBF and memo files are assembled byte by byte here, independently of the
library's own encoders, so the readers are tested against known layouts.
"""

import struct
from typing import Callable, Optional, Sequence

import pytest


# =============================================================================
# Byte Builders
# =============================================================================

def build_header(
    file_type: int = 0x03,
    year_byte: int = 124,
    month: int = 5,
    day: int = 17,
    record_count: int = 0,
    header_length: int = 0,
    record_length: int = 0,
    tx_flag: int = 0,
    encryption_flag: int = 0,
    code_page: int = 0x03,
) -> bytes:
    """Build a 32-byte file header."""
    header = bytearray(32)
    header[0] = file_type
    header[1] = year_byte
    header[2] = month
    header[3] = day
    struct.pack_into("<iHH", header, 4, record_count, header_length, record_length)
    header[14] = tx_flag
    header[15] = encryption_flag
    header[29] = code_page
    return bytes(header)


def build_descriptor(name, type_char: str, length: int, decimals: int = 0) -> bytes:
    """Build a 32-byte field descriptor; name is str (ASCII) or raw bytes."""
    descriptor = bytearray(32)
    raw_name = name if isinstance(name, bytes) else name.encode("ascii")
    descriptor[0:len(raw_name)] = raw_name
    descriptor[11] = ord(type_char)
    descriptor[16] = length
    descriptor[17] = decimals
    return bytes(descriptor)


def build_dbf(
    fields: Sequence[tuple],
    records: Sequence[bytes] = (),
    file_type: int = 0x03,
    code_page: int = 0x03,
    header_length: Optional[int] = None,
    record_length: Optional[int] = None,
    record_count: Optional[int] = None,
    padding: bytes = b"",
    eof_marker: bool = True,
) -> bytes:
    """
    Build a complete DBF image.

    Args:
        fields: (name, type_char, length[, decimals]) tuples
        records: Raw record bytes, deletion flag included
        padding: Bytes placed between the terminator and the first record
    """
    descriptors = b"".join(build_descriptor(*f) for f in fields)
    if header_length is None:
        header_length = 32 + len(descriptors) + 1 + len(padding)
    if record_length is None:
        record_length = 1 + sum(f[2] for f in fields)
    if record_count is None:
        record_count = len(records)

    header = build_header(
        file_type=file_type,
        record_count=record_count,
        header_length=header_length,
        record_length=record_length,
        code_page=code_page,
    )
    body = b"".join(records) + (b"\x1a" if eof_marker else b"")
    return header + descriptors + b"\x0d" + padding + body


def build_memo(blocks: dict, block_size: int = 64, next_free: int = 0) -> bytes:
    """
    Build an FPT memo image.

    Args:
        blocks: Block number -> (memo type, payload)
        block_size: Bytes per block
    """
    header = bytearray(512)
    struct.pack_into(">I", header, 0, next_free)
    struct.pack_into(">H", header, 6, block_size)
    data = bytearray(header)

    for block, (memo_type, payload) in sorted(blocks.items()):
        start = block * block_size
        if len(data) < start:
            data.extend(bytes(start - len(data)))
        data[start:] = struct.pack(">II", memo_type, len(payload)) + payload
    return bytes(data)


def build_dbt(blocks: dict, block_size: int = 0, next_free: int = 0) -> bytes:
    """
    Build a dBASE DBT memo image.

    Args:
        blocks: Block number -> payload
        block_size: 0 for a dBASE III file (512-byte blocks, text ended by
            0x1A 0x1A), otherwise the dBASE IV block size
    """
    header = bytearray(512)
    struct.pack_into("<I", header, 0, next_free)
    struct.pack_into("<H", header, 20, block_size)
    data = bytearray(header)
    size = block_size or 512

    for block, payload in sorted(blocks.items()):
        start = block * size
        if len(data) < start:
            data.extend(bytes(start - len(data)))
        if block_size:
            data[start:] = b"\xff\xff\x08\x00" + struct.pack("<I", len(payload) + 8) + payload
        else:
            data[start:] = payload + b"\x1a\x1a"
    return bytes(data)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def make_dbf() -> Callable[..., bytes]:
    """Factory for DBF images (see build_dbf)."""
    return build_dbf


@pytest.fixture
def make_header() -> Callable[..., bytes]:
    """Factory for 32-byte file headers (see build_header)."""
    return build_header


@pytest.fixture
def make_descriptor() -> Callable[..., bytes]:
    """Factory for 32-byte field descriptors (see build_descriptor)."""
    return build_descriptor


@pytest.fixture
def make_memo() -> Callable[..., bytes]:
    """Factory for FPT memo images (see build_memo)."""
    return build_memo


@pytest.fixture
def make_dbt() -> Callable[..., bytes]:
    """Factory for dBASE DBT memo images (see build_dbt)."""
    return build_dbt


@pytest.fixture
def name_dbf() -> bytes:
    """
    The smallest useful table: one 9-byte Character field NAME and one
    active record holding "JOHN".

    Record bytes: 20 'J' 'O' 'H' 'N' 20 20 20 20 20 (record length 10)
    """
    return build_dbf(
        [("NAME", "C", 9)],
        [b" JOHN     "],
    )


@pytest.fixture
def people_dbf() -> bytes:
    """
    A table with one field of each common textual type and three records,
    the second of them deleted.
    """
    fields = [
        ("NAME", "C", 10),
        ("BORN", "D", 8),
        ("SALARY", "N", 10, 2),
        ("ACTIVE", "L", 1),
    ]
    records = [
        b" " + b"ALICE     " + b"19700501" + b"   1234.50" + b"T",
        b"*" + b"BOB       " + b"19851224" + b"     99.00" + b"F",
        b" " + b"CAROL     " + b"        " + b"          " + b"?",
    ]
    return build_dbf(fields, records, code_page=0x03)


@pytest.fixture
def people_file(tmp_path, people_dbf: bytes):
    """people_dbf written to disk."""
    path = tmp_path / "PEOPLE.DBF"
    path.write_bytes(people_dbf)
    return path
