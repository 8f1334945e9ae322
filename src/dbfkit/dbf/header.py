"""
DBF Header and Metadata
=======================

This module parses and serialises the file header and the field table
that together form the "metadata" of a DBF file.

File Structure
--------------
    Offset  Size    Description
    ------  ----    -----------
    0       1       Dialect tag (file type)
    1       3       Last update date: year, month, day
    4       4       Number of records (LE)
    8       2       Header length: this header + descriptors + terminator (LE)
    10      2       Record length including the deletion flag (LE)
    12      2       Reserved, zero
    14      1       Incomplete transaction flag
    15      1       Encryption flag
    16      13      Reserved (multi-user, MDX flag)
    29      1       Language driver (code page) byte
    30      2       Reserved
    32      32*n    Field descriptors
    32+32*n 1       Terminator 0x0D

Update Date
-----------
The year byte counts years since 1900 (124 = 2024). FoxBASE+ /
dBASE III files (tag 0x03) are read with the byte taken verbatim as
the year, which is how the producers of that dialect are treated by
the readers this package stays compatible with.

Length Cross-Check
------------------
After the field table has been read, the header and record lengths are
recomputed from the fields. Disagreements are logged and kept on
Metadata.warnings but the declared values stay authoritative, since
several historical producers write padding after the field table.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import IntEnum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional
import logging
import struct

from dbfkit.errors import DBFFormatError, FieldNotFoundError
from dbfkit.dbf.charset import code_byte_for, default_encoding, resolve_encoding
from dbfkit.dbf.fields import (
    FieldDefinition,
    FIELD_DESCRIPTOR_SIZE,
    assign_offsets,
    decode_field,
    encode_field,
    fields_to_string,
    header_length_for,
    parse_fields_string,
    record_length_for,
)
from dbfkit.dbf.stream import ByteSource

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

FILE_HEADER_SIZE = 32
HEADER_TERMINATOR = 0x0D
YEAR_BASE = 1900

_COUNTS_FORMAT = "<iHH"  # record count, header length, record length


# =============================================================================
# Dialect Tags
# =============================================================================

class FileType(IntEnum):
    """
    Dialect tag stored in byte 0 of the header.

    Identifies the program (family) that wrote the file.
    """
    FOXBASE = 0x02
    FOXBASE_PLUS = 0x03             # FoxBASE+ / dBASE III PLUS, no memo
    DBASE_IV = 0x04
    DBASE_V = 0x05
    VISUAL_FOXPRO = 0x30
    VISUAL_FOXPRO_AUTOINC = 0x31
    VISUAL_FOXPRO_VARCHAR = 0x32
    DBASE_IV_SQL_TABLE = 0x43
    DBASE_IV_SQL_SYSTEM = 0x63
    FOXBASE_PLUS_MEMO = 0x83        # FoxBASE+ / dBASE III PLUS, with memo
    DBASE_IV_MEMO = 0x8B
    DBASE_IV_SQL_TABLE_MEMO = 0xCB
    FOXPRO_MEMO = 0xF5
    FOXBASE_ALT = 0xFB

    @classmethod
    def from_byte(cls, value: int) -> "FileType":
        """
        Convert header byte 0 to a FileType.

        Raises:
            DBFFormatError: If the byte is not a recognised dialect tag
        """
        try:
            return cls(value)
        except ValueError:
            raise DBFFormatError(
                f"Unknown file type 0x{value:02X}, not a DBF file", position=0
            ) from None

    @property
    def year_is_verbatim(self) -> bool:
        """True for the dialect whose header year byte is the year itself."""
        return self is FileType.FOXBASE_PLUS

    def get_description(self) -> str:
        """Get a human-readable description of the dialect."""
        descriptions = {
            FileType.FOXBASE: "FoxBASE",
            FileType.FOXBASE_PLUS: "FoxBASE+/dBASE III PLUS, no memo",
            FileType.DBASE_IV: "dBASE IV",
            FileType.DBASE_V: "dBASE V",
            FileType.VISUAL_FOXPRO: "Visual FoxPro",
            FileType.VISUAL_FOXPRO_AUTOINC: "Visual FoxPro, autoincrement enabled",
            FileType.VISUAL_FOXPRO_VARCHAR: "Visual FoxPro, Varchar/Varbinary",
            FileType.DBASE_IV_SQL_TABLE: "dBASE IV SQL table, no memo",
            FileType.DBASE_IV_SQL_SYSTEM: "dBASE IV SQL system file, no memo",
            FileType.FOXBASE_PLUS_MEMO: "FoxBASE+/dBASE III PLUS, with memo",
            FileType.DBASE_IV_MEMO: "dBASE IV with memo",
            FileType.DBASE_IV_SQL_TABLE_MEMO: "dBASE IV SQL table, with memo",
            FileType.FOXPRO_MEMO: "FoxPro 2.x with memo",
            FileType.FOXBASE_ALT: "FoxBASE",
        }
        return descriptions[self]


# =============================================================================
# Metadata
# =============================================================================

@dataclass(frozen=True)
class Metadata:
    """
    Everything the header and field table say about a DBF file.

    Instances are immutable. Field offsets and the name index are computed
    once, when the instance is created; with_fields() builds a new
    instance for a different field list.

    Attributes:
        file_type: Dialect tag
        update_date: Last update date, None if the header bytes are not a date
        record_count: Number of records declared by the header
        header_length: Declared header length (offset of the first record)
        record_length: Declared record length, including the deletion flag
        tx_flag: Incomplete transaction flag (stored, not interpreted)
        encryption_flag: Encryption flag (stored, not interpreted)
        code_page_byte: Raw language driver byte
        encoding: Python codec used for text fields
        fields: Fields in table order, with offsets assigned
        warnings: Soft inconsistencies found while reading
    """
    file_type: FileType = FileType.FOXBASE_PLUS
    update_date: Optional[date] = None
    record_count: int = 0
    header_length: int = 0
    record_length: int = 0
    tx_flag: int = 0
    encryption_flag: int = 0
    code_page_byte: int = 0
    encoding: str = field(default_factory=default_encoding)
    fields: tuple[FieldDefinition, ...] = ()
    warnings: tuple[str, ...] = ()
    _index: Mapping[str, FieldDefinition] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        """Assign offsets and build the read-only name index."""
        fields = tuple(assign_offsets(self.fields))
        index: dict[str, FieldDefinition] = {}
        for f in fields:
            if f.name in index:
                logger.warning(f"Duplicate field name '{f.name}', keeping the first")
                continue
            index[f.name] = f
        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "_index", MappingProxyType(index))

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_fields(
        cls,
        fields: Iterable[FieldDefinition],
        file_type: FileType = FileType.FOXBASE_PLUS,
        update_date: Optional[date] = None,
        encoding: Optional[str] = None,
    ) -> "Metadata":
        """
        Build metadata for a new table.

        Header and record lengths are derived from the fields.

        Args:
            fields: Fields in table order
            file_type: Dialect tag to write
            update_date: Defaults to today
            encoding: Codec for text fields (default: process default)

        Returns:
            A Metadata instance with record_count 0
        """
        fields = list(fields)
        encoding = encoding or default_encoding()
        return cls(
            file_type=file_type,
            update_date=update_date or date.today(),
            header_length=header_length_for(fields),
            record_length=record_length_for(fields),
            code_page_byte=code_byte_for(encoding),
            encoding=encoding,
            fields=tuple(fields),
        )

    @classmethod
    def from_fields_string(cls, text: str) -> "Metadata":
        """
        Build metadata from the descriptive `name,type,length,decimals|...` form.

        Raises:
            FieldDefinitionError: If the string is malformed
        """
        return cls.from_fields(parse_fields_string(text))

    def with_fields(self, fields: Iterable[FieldDefinition]) -> "Metadata":
        """Return a copy with a different field list (offsets recomputed)."""
        return replace(self, fields=tuple(fields))

    def with_record_count(self, record_count: int) -> "Metadata":
        """Return a copy with a different record count."""
        return replace(self, record_count=record_count)

    # =========================================================================
    # Field Lookup
    # =========================================================================

    @property
    def field_index(self) -> Mapping[str, FieldDefinition]:
        """Read-only mapping from field name to definition."""
        return self._index

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldDefinition:
        """
        Look up a field by name.

        Raises:
            FieldNotFoundError: If there is no such field
        """
        try:
            return self._index[name]
        except KeyError:
            raise FieldNotFoundError(name, self.field_names) from None

    def has_field(self, name: str) -> bool:
        return name in self._index

    def fields_string(self) -> str:
        """Get the `|`-separated descriptive form of the field list."""
        return fields_to_string(self.fields)

    def get_info(self) -> dict:
        """
        Get summary information about the table.

        Returns:
            Dictionary with header information
        """
        return {
            "file_type": self.file_type.get_description(),
            "file_type_byte": f"0x{self.file_type:02X}",
            "update_date": self.update_date.isoformat() if self.update_date else None,
            "record_count": self.record_count,
            "header_length": self.header_length,
            "record_length": self.record_length,
            "field_count": len(self.fields),
            "encoding": self.encoding,
            "code_page_byte": f"0x{self.code_page_byte:02X}",
            "tx_flag": self.tx_flag,
            "encryption_flag": self.encryption_flag,
            "warnings": list(self.warnings),
        }


# =============================================================================
# Header Codec
# =============================================================================

def parse_update_date(
    year_byte: int, month: int, day: int, file_type: FileType
) -> Optional[date]:
    """
    Decode the 3-byte update date.

    Args:
        year_byte: Header byte 1
        month: Header byte 2
        day: Header byte 3
        file_type: Dialect, selects the year rule

    Returns:
        The date, or None if the bytes do not form a valid date
    """
    year = year_byte if file_type.year_is_verbatim else YEAR_BASE + year_byte
    try:
        return date(year, month, day)
    except ValueError:
        logger.debug(f"Invalid update date bytes {year_byte}/{month}/{day}")
        return None


def decode_header(data: bytes) -> Metadata:
    """
    Decode the 32-byte file header.

    Args:
        data: The raw header bytes

    Returns:
        Metadata without fields

    Raises:
        DBFFormatError: If the header is short or the dialect is unknown
    """
    if len(data) < FILE_HEADER_SIZE:
        raise DBFFormatError(
            f"File header too short: need {FILE_HEADER_SIZE} bytes, got {len(data)}",
            position=len(data),
        )

    file_type = FileType.from_byte(data[0])
    record_count, header_length, record_length = struct.unpack_from(
        _COUNTS_FORMAT, data, 4
    )

    return Metadata(
        file_type=file_type,
        update_date=parse_update_date(data[1], data[2], data[3], file_type),
        record_count=record_count,
        header_length=header_length,
        record_length=record_length,
        tx_flag=data[14],
        encryption_flag=data[15],
        code_page_byte=data[29],
        encoding=resolve_encoding(data[29]),
    )


def encode_header(metadata: Metadata) -> bytes:
    """
    Encode the 32-byte file header.

    The year is written as years since 1900. A FoxBASE+ header written
    here therefore decodes to a different year, since that dialect reads
    the byte verbatim.

    Args:
        metadata: The metadata to encode (update_date None = today)

    Returns:
        32 bytes
    """
    update_date = metadata.update_date or date.today()

    data = bytearray(FILE_HEADER_SIZE)
    data[0] = metadata.file_type
    data[1] = (update_date.year - YEAR_BASE) & 0xFF
    data[2] = update_date.month
    data[3] = update_date.day
    struct.pack_into(
        _COUNTS_FORMAT,
        data,
        4,
        metadata.record_count,
        metadata.header_length,
        metadata.record_length,
    )
    # Bytes 12-13 reserved
    data[14] = metadata.tx_flag & 0xFF
    data[15] = metadata.encryption_flag & 0xFF
    data[29] = metadata.code_page_byte & 0xFF
    return bytes(data)


def encode_metadata(metadata: Metadata) -> bytes:
    """Encode header, field descriptors and terminator."""
    parts = [encode_header(metadata)]
    parts.extend(encode_field(f) for f in metadata.fields)
    parts.append(bytes([HEADER_TERMINATOR]))
    return b"".join(parts)


# =============================================================================
# Field Table
# =============================================================================

def read_field_table(source: ByteSource) -> list[FieldDefinition]:
    """
    Read field descriptors up to the 0x0D terminator.

    The table is delimited only by the terminator byte. One byte is
    read ahead before each descriptor; anything other than 0x0D is pushed
    back and read as the first byte of the next descriptor.

    Args:
        source: Byte source positioned just after the file header

    Returns:
        Fields in table order (offsets not yet assigned)

    Raises:
        DBFFormatError: If the stream ends before the terminator or a
            descriptor is truncated or has an unknown type
    """
    fields: list[FieldDefinition] = []

    while True:
        lookahead = source.read_byte()
        if lookahead == -1:
            raise DBFFormatError(
                "Field table ends without 0x0D terminator", position=source.position
            )
        if lookahead == HEADER_TERMINATOR:
            break
        source.unread(bytes([lookahead]))

        start = source.position
        data = source.read_fully(FIELD_DESCRIPTOR_SIZE)
        if len(data) != FIELD_DESCRIPTOR_SIZE:
            raise DBFFormatError(
                f"Truncated field descriptor #{len(fields) + 1}: "
                f"{len(data)} of {FIELD_DESCRIPTOR_SIZE} bytes",
                position=start,
            )

        try:
            f = decode_field(data)
        except DBFFormatError as e:
            raise DBFFormatError(
                f"{e.message} in field descriptor #{len(fields) + 1}", position=start
            ) from e

        logger.debug(
            f"Field '{f.name}' type {f.field_type.value} "
            f"length {f.length} decimals {f.decimals}"
        )
        fields.append(f)

    return fields


def check_lengths(metadata: Metadata, fields: list[FieldDefinition]) -> list[str]:
    """
    Compare declared header/record lengths with the field table.

    Returns:
        A message for each disagreement (empty if consistent)
    """
    problems = []

    computed_header = header_length_for(fields)
    if computed_header != metadata.header_length:
        problems.append(
            f"Header length mismatch: declared {metadata.header_length}, "
            f"computed {computed_header}"
        )

    computed_record = record_length_for(fields)
    if computed_record != metadata.record_length:
        problems.append(
            f"Record length mismatch: declared {metadata.record_length}, "
            f"computed {computed_record}"
        )

    return problems


def read_metadata(source: ByteSource, strict_lengths: bool = False) -> Metadata:
    """
    Read the file header and the field table.

    Args:
        source: Byte source positioned at the start of the file
        strict_lengths: Raise instead of warning on length disagreements

    Returns:
        Complete metadata; the source is left just after the terminator

    Raises:
        DBFFormatError: On a short header, unknown dialect or broken field
            table, or on a length disagreement when strict_lengths is set
    """
    header = decode_header(source.read_fully(FILE_HEADER_SIZE))
    fields = read_field_table(source)

    problems = check_lengths(header, fields)
    for problem in problems:
        if strict_lengths:
            raise DBFFormatError(problem)
        # Declared lengths stay authoritative for buffer sizing
        logger.warning(problem)

    metadata = replace(header, fields=tuple(fields), warnings=tuple(problems))
    logger.debug(
        f"Read {metadata.file_type.get_description()} header: "
        f"{len(metadata.fields)} fields, {metadata.record_count} records, "
        f"encoding {metadata.encoding}"
    )
    return metadata
