"""
Field Descriptors
=================

Each column of a DBF table is described by a 32-byte field descriptor
stored after the file header.

Descriptor Layout
-----------------
    Offset  Size    Description
    ------  ----    -----------
    0       11      Field name, ASCII, NUL padded
    11      1       Field type tag ('C', 'N', 'D', ...)
    12      4       Offset of the field in the record (LE, advisory)
    16      1       Field length in bytes (unsigned)
    17      1       Decimal places (Numeric fields)
    18      14      Reserved

Descriptive String Form
-----------------------
Field lists can also be written as text: one `name,type,length,decimals`
tuple per field, joined by `|`:

    >>> parse_fields_string("NAME,C,20,0|PRICE,N,10,2")
    [FieldDefinition(name='NAME', ...), FieldDefinition(name='PRICE', ...)]
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable
import struct

from dbfkit.errors import DBFFormatError, FieldDefinitionError


# =============================================================================
# Constants
# =============================================================================

FIELD_DESCRIPTOR_SIZE = 32
FIELD_NAME_SIZE = 11
FIELD_NAME_ENCODING = "latin-1"

FIELD_SEPARATOR = "|"
ATTRIBUTE_SEPARATOR = ","


# =============================================================================
# Field Types
# =============================================================================

class FieldType(str, Enum):
    """
    Field type tags.

    The value is the single character stored at descriptor byte 11.
    """
    CHARACTER = "C"
    NUMERIC = "N"
    FLOAT = "F"
    INTEGER = "I"
    LOGICAL = "L"
    DATE = "D"
    DATE_TIME = "T"
    TIMESTAMP = "@"
    MEMO = "M"
    GENERAL = "G"
    PICTURE = "P"
    DOUBLE = "B"
    CURRENCY = "Y"
    AUTOINCREMENT = "+"
    DOUBLE7 = "O"
    VARCHAR = "V"
    VARBINARY = "Q"
    NULL_FLAGS = "0"

    @classmethod
    def from_char(cls, char: str) -> "FieldType":
        """
        Convert a type tag to a FieldType.

        Raises:
            DBFFormatError: If the tag is not a known field type
        """
        try:
            return cls(char.upper())
        except ValueError:
            raise DBFFormatError(f"Unknown field type {char!r}") from None

    def to_byte(self) -> int:
        """Get the tag as stored in the descriptor."""
        return ord(self.value)

    def is_text(self) -> bool:
        return self in (FieldType.CHARACTER, FieldType.VARCHAR)

    def is_numeric_text(self) -> bool:
        return self in (FieldType.NUMERIC, FieldType.FLOAT)

    def is_date_time(self) -> bool:
        return self in (FieldType.DATE_TIME, FieldType.TIMESTAMP)


# =============================================================================
# Field Definition
# =============================================================================

@dataclass(frozen=True)
class FieldDefinition:
    """
    One column of a DBF table.

    Attributes:
        name: Field name (at most 11 bytes)
        field_type: Type tag
        length: Width in bytes, 0-255
        decimals: Decimal places (Numeric fields)
        offset: Position of the field inside a record buffer. Byte 0 of a
            record is the deletion flag, so the first field starts at 1.
            Assigned by assign_offsets(); 0 until then.
    """
    name: str
    field_type: FieldType
    length: int
    decimals: int = 0
    offset: int = 0

    @property
    def end(self) -> int:
        """Offset one past the last byte of this field."""
        return self.offset + self.length

    def to_string(self) -> str:
        """Get the `name,type,length,decimals` form of this field."""
        return ATTRIBUTE_SEPARATOR.join(
            (self.name, self.field_type.value, str(self.length), str(self.decimals))
        )


def assign_offsets(fields: Iterable[FieldDefinition]) -> list[FieldDefinition]:
    """
    Compute record offsets for an ordered field list.

    Args:
        fields: Fields in table order

    Returns:
        New FieldDefinition objects with offset set; the first field
        starts at 1 and each following field starts where the previous
        one ends.
    """
    result = []
    offset = 1  # Byte 0 is the deletion flag
    for field in fields:
        result.append(replace(field, offset=offset))
        offset += field.length
    return result


def record_length_for(fields: Iterable[FieldDefinition]) -> int:
    """Record width: the deletion flag plus every field."""
    return sum(field.length for field in fields) + 1


def header_length_for(fields: Iterable[FieldDefinition]) -> int:
    """Header size: file header, one descriptor per field and the 0x0D terminator."""
    return 32 + FIELD_DESCRIPTOR_SIZE * len(list(fields)) + 1


# =============================================================================
# Binary Descriptor Codec
# =============================================================================

def decode_field(data: bytes) -> FieldDefinition:
    """
    Decode a 32-byte field descriptor.

    Args:
        data: The raw descriptor

    Returns:
        The field definition (offset not yet assigned)

    Raises:
        DBFFormatError: If the descriptor is short or the type is unknown
    """
    if len(data) < FIELD_DESCRIPTOR_SIZE:
        raise DBFFormatError(
            f"Field descriptor too short: need {FIELD_DESCRIPTOR_SIZE} bytes, "
            f"got {len(data)}"
        )

    name_end = data.find(b"\x00", 0, FIELD_NAME_SIZE)
    if name_end < 0:
        name_end = FIELD_NAME_SIZE
    # latin-1 maps every byte, so names survive a decode/encode round trip
    name = data[:name_end].decode(FIELD_NAME_ENCODING)

    field_type = FieldType.from_char(chr(data[11]))

    # Bytes are already unsigned in Python; decimals stay as stored
    return FieldDefinition(
        name=name,
        field_type=field_type,
        length=data[16],
        decimals=data[17],
    )


def encode_field(field: FieldDefinition) -> bytes:
    """
    Encode a field definition as a 32-byte descriptor.

    Args:
        field: The field to encode

    Returns:
        32 bytes

    Raises:
        FieldDefinitionError: If the name does not fit in 11 bytes or has
            characters outside latin-1
    """
    try:
        name_bytes = field.name.encode(FIELD_NAME_ENCODING)
    except UnicodeEncodeError as e:
        raise FieldDefinitionError(
            f"Field name '{field.name}' cannot be stored in a descriptor: {e.reason}"
        ) from e
    if len(name_bytes) > FIELD_NAME_SIZE:
        raise FieldDefinitionError(
            f"Field name '{field.name}' is {len(name_bytes)} bytes long, "
            f"maximum is {FIELD_NAME_SIZE}"
        )

    data = bytearray(FIELD_DESCRIPTOR_SIZE)
    data[0:len(name_bytes)] = name_bytes
    data[11] = field.field_type.to_byte()
    struct.pack_into("<I", data, 12, field.offset & 0xFFFFFFFF)
    data[16] = field.length & 0xFF
    data[17] = field.decimals & 0xFF
    return bytes(data)


# =============================================================================
# Descriptive String Form
# =============================================================================

def parse_field_string(text: str) -> FieldDefinition:
    """
    Parse one `name,type,length,decimals` tuple.

    Raises:
        FieldDefinitionError: If the tuple is malformed
    """
    parts = text.split(ATTRIBUTE_SEPARATOR)
    if len(parts) != 4:
        raise FieldDefinitionError(
            f"Expected 'name,type,length,decimals', got {text!r}"
        )

    name, type_char, length, decimals = (part.strip() for part in parts)
    if not name or not type_char:
        raise FieldDefinitionError(f"Missing name or type in {text!r}")

    try:
        field_type = FieldType.from_char(type_char[0])
    except DBFFormatError as e:
        raise FieldDefinitionError(f"{e} in {text!r}") from e

    try:
        length_value = int(length)
        decimals_value = int(decimals)
    except ValueError as e:
        raise FieldDefinitionError(f"Invalid length or decimals in {text!r}") from e

    if not 0 <= length_value <= 255:
        raise FieldDefinitionError(f"Field length {length_value} out of range 0-255")

    return FieldDefinition(
        name=name,
        field_type=field_type,
        length=length_value,
        decimals=decimals_value,
    )


def parse_fields_string(text: str) -> list[FieldDefinition]:
    """
    Parse a `|`-separated list of field tuples. Empty entries are skipped.

    Raises:
        FieldDefinitionError: If any entry is malformed
    """
    return [
        parse_field_string(entry)
        for entry in text.split(FIELD_SEPARATOR)
        if entry.strip()
    ]


def fields_to_string(fields: Iterable[FieldDefinition]) -> str:
    """Join fields into the `|`-separated descriptive form."""
    return FIELD_SEPARATOR.join(field.to_string() for field in fields)
