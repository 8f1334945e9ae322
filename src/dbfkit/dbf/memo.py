"""
Memo File Reader
================

Memo fields do not store their text in the DBF record. The record holds
a block number; the text lives in a companion memo file (.FPT for
FoxPro, .DBT for dBASE) that is divided into fixed-size blocks.

Three layouts are in use. The reader tells them apart from the 512-byte
file header unless the caller names one.

FoxPro (.FPT)
-------------
Memo header:
    Offset  Size    Description
    ------  ----    -----------
    0       4       Next free block (big-endian)
    4       2       Unused
    6       2       Block size in bytes (big-endian)
    8       504     Unused

Memo block (at block_number * block_size):
    Offset  Size    Description
    ------  ----    -----------
    0       4       Record type: 0 picture, 1 text, 2 object (big-endian)
    4       4       Length of the data (big-endian)
    8       n       Data

dBASE IV (.DBT)
---------------
Memo header:
    Offset  Size    Description
    ------  ----    -----------
    0       4       Next free block (little-endian)
    8       8       Name of the DBF file
    20      2       Block size in bytes (little-endian)

Memo block:
    Offset  Size    Description
    ------  ----    -----------
    0       4       Signature FF FF 08 00
    4       4       Length including these 8 bytes (little-endian)
    8       n       Data

dBASE III (.DBT)
----------------
Only the next free block (little-endian) is set in the header. Blocks
are 512 bytes and hold plain text ended by 0x1A 0x1A; a value longer
than one block runs on into the following blocks.

Usage
-----
    >>> with MemoReader.open("CUSTOMER.FPT") as memo:
    ...     print(memo.read(8).get_value_as_string("cp1252"))
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import BinaryIO, Optional, Union
import logging
import struct

from dbfkit.errors import MemoError

# Logger for this module
logger = logging.getLogger(__name__)


MEMO_HEADER_SIZE = 512
DEFAULT_BLOCK_SIZE = 512
_BLOCK_HEADER_FORMAT = ">II"
_BLOCK_HEADER_SIZE = 8
DBASE4_BLOCK_SIGNATURE = b"\xff\xff\x08\x00"
DBASE3_TERMINATOR = b"\x1a\x1a"


class MemoFormat(Enum):
    """Memo file layout."""
    FOXPRO = "foxpro"
    DBASE3 = "dbase3"
    DBASE4 = "dbase4"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["MemoFormat"]:
        """FoxPro for .FPT files; None (detect from the header) otherwise."""
        return cls.FOXPRO if Path(path).suffix.lower() == ".fpt" else None


class MemoType(IntEnum):
    """Memo block record type."""
    PICTURE = 0
    TEXT = 1
    OBJECT = 2


@dataclass(frozen=True)
class MemoRecord:
    """
    One memo value.

    Attributes:
        block: Block number the value was read from
        memo_type: Record type from the block header (MemoType when known)
        value: Raw memo bytes
    """
    block: int
    memo_type: int
    value: bytes

    def get_value_as_string(self, encoding: str) -> str:
        """Decode the memo bytes."""
        return self.value.decode(encoding, errors="replace")

    def is_text(self) -> bool:
        return self.memo_type == MemoType.TEXT


class MemoReader:
    """
    Random-access reader for FoxPro and dBASE memo files.

    The reader owns its stream and closes it in close(). The stream must
    be seekable. Calls to read() are not thread-safe; callers sharing a
    reader between threads must serialise access.

    Example:
        >>> memo = MemoReader(open("ORDERS.FPT", "rb"))
        >>> record = memo.read(1)
        >>> record.value
        b'Deliver before noon'
    """

    def __init__(self, stream: BinaryIO, memo_format: Optional[MemoFormat] = None):
        """
        Read the memo header.

        Args:
            stream: Seekable binary stream of the memo file
            memo_format: File layout (default: detected from the header)

        Raises:
            MemoError: If the header is truncated; the stream is closed
        """
        self._stream: Optional[BinaryIO] = stream
        try:
            self._read_header(memo_format)
        except MemoError:
            self.close()
            raise
        logger.debug(
            f"Memo file ({self.memo_format.value}): block size {self.block_size}, "
            f"next free block {self.next_free_block}"
        )

    @classmethod
    def open(
        cls, path: Union[str, Path], memo_format: Optional[MemoFormat] = None
    ) -> "MemoReader":
        """
        Open a memo file from disk.

        A .FPT file is read as FoxPro; other files are detected from the
        header unless memo_format is given.

        Raises:
            FileNotFoundError: If the file doesn't exist
            MemoError: If the memo header is truncated
        """
        if memo_format is None:
            memo_format = MemoFormat.from_path(path)
        return cls(Path(path).open("rb"), memo_format=memo_format)

    def _read_header(self, memo_format: Optional[MemoFormat]) -> None:
        self._stream.seek(0)
        header = self._stream.read(MEMO_HEADER_SIZE)
        if len(header) < 8:
            raise MemoError(f"Memo header too short: {len(header)} bytes")
        header = header.ljust(MEMO_HEADER_SIZE, b"\x00")

        foxpro_block_size = struct.unpack_from(">H", header, 6)[0]
        dbase_block_size = struct.unpack_from("<H", header, 20)[0]

        if memo_format is None:
            if foxpro_block_size:
                memo_format = MemoFormat.FOXPRO
            elif dbase_block_size:
                memo_format = MemoFormat.DBASE4
            else:
                memo_format = MemoFormat.DBASE3
        self.memo_format = memo_format

        if memo_format is MemoFormat.FOXPRO:
            self.next_free_block = struct.unpack_from(">I", header, 0)[0]
            self.block_size = foxpro_block_size or DEFAULT_BLOCK_SIZE
        else:
            self.next_free_block = struct.unpack_from("<I", header, 0)[0]
            if memo_format is MemoFormat.DBASE4:
                self.block_size = dbase_block_size or DEFAULT_BLOCK_SIZE
            else:
                self.block_size = DEFAULT_BLOCK_SIZE

    def read(self, block: int) -> MemoRecord:
        """
        Read the memo value stored at a block.

        dBASE values carry no record type and are reported as TEXT.

        Args:
            block: Block number (positive)

        Returns:
            The memo record

        Raises:
            ValueError: If block is not positive
            MemoError: If the reader is closed or the block is truncated,
                lacks its dBASE IV signature or its dBASE III terminator
        """
        if block <= 0:
            raise ValueError(f"Memo block number must be positive, got {block}")
        if self._stream is None:
            raise MemoError("Memo reader is closed", block=block)

        self._stream.seek(block * self.block_size)
        if self.memo_format is MemoFormat.DBASE3:
            return MemoRecord(block=block, memo_type=MemoType.TEXT, value=self._read_text(block))

        header = self._stream.read(_BLOCK_HEADER_SIZE)
        if len(header) < _BLOCK_HEADER_SIZE:
            raise MemoError("Memo block past end of file", block=block)

        if self.memo_format is MemoFormat.DBASE4:
            if header[:4] != DBASE4_BLOCK_SIGNATURE:
                raise MemoError("Invalid dBASE IV memo block signature", block=block)
            memo_type = MemoType.TEXT
            length = max(struct.unpack_from("<I", header, 4)[0] - _BLOCK_HEADER_SIZE, 0)
        else:
            memo_type, length = struct.unpack(_BLOCK_HEADER_FORMAT, header)

        value = self._stream.read(length)
        if len(value) < length:
            raise MemoError(
                f"Memo block truncated: expected {length} bytes, got {len(value)}",
                block=block,
            )

        try:
            memo_type = MemoType(memo_type)
        except ValueError:
            logger.debug(f"Unknown memo type {memo_type} in block {block}")

        return MemoRecord(block=block, memo_type=memo_type, value=value)

    def _read_text(self, block: int) -> bytes:
        data = b""
        while True:
            chunk = self._stream.read(self.block_size)
            if not chunk:
                if not data:
                    raise MemoError("Memo block past end of file", block=block)
                raise MemoError("Memo text has no 0x1A 0x1A terminator", block=block)
            data += chunk
            end = data.find(DBASE3_TERMINATOR)
            if end >= 0:
                return data[:end]

    def close(self) -> None:
        """Close the underlying stream. Safe to call more than once."""
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    @property
    def closed(self) -> bool:
        return self._stream is None

    def __enter__(self) -> "MemoReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
