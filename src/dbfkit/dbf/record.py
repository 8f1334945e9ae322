"""
DBF Records
===========

A record is one fixed-width row of the table. Byte 0 is the deletion
flag: 0x2A ('*') marks a deleted record, anything else (normally 0x20)
an active one. The remaining bytes hold the fields, each at the offset
assigned by the field table.

Field Encodings
---------------
    Type    Stored as                                   Python value
    ----    ---------                                   ------------
    C, V    Text, space padded                          str
    D       YYYYMMDD                                    datetime.date
    T, @    8-byte Julian form or YYYYMMDDHHmmss        datetime.datetime
    N, F    Right-aligned decimal text                  decimal.Decimal
    L       T/F (also Y/N/? in the wild)                bool
    I, +    Little-endian signed 32-bit integer         int
    B       Little-endian IEEE double                   float
    Y       Little-endian int64, 4 implied decimals     decimal.Decimal
    M       Memo block number (LE int32 or 10 digits)   str / bytes

Blank values (all spaces, zero dates, numeric overflow '*', logical
'?') are returned as None.

Usage
-----
    >>> record.get_string("NAME")
    'JOHN'
    >>> record.to_dict()
    {'NAME': 'JOHN', 'BORN': datetime.date(1970, 5, 1), ...}
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import re
import struct

from dbfkit.errors import DBFFormatError, FieldTypeError, MemoError
from dbfkit.dbf.dates import (
    decode_julian_bytes,
    encode_julian,
    format_date,
    format_date_time,
    parse_date_or_none,
    parse_date_time_or_none,
)
from dbfkit.dbf.fields import FieldDefinition, FieldType
from dbfkit.dbf.header import Metadata
from dbfkit.dbf.memo import MemoReader, MemoRecord


# =============================================================================
# Constants
# =============================================================================

DELETED_FLAG = 0x2A
ACTIVE_FLAG = 0x20
PAD_BYTE = b" "

NUMERIC_OVERFLOW = "*"
TEXT_MEMO_POINTER_LENGTH = 10
BINARY_DATE_TIME_LENGTH = 8
TEXT_DATE_TIME_LENGTH = 14

_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_CURRENCY_SCALE = Decimal(10000)

_BINARY_TYPES = frozenset((
    FieldType.INTEGER,
    FieldType.AUTOINCREMENT,
    FieldType.DOUBLE,
    FieldType.DOUBLE7,
    FieldType.CURRENCY,
))


def _is_binary(f: FieldDefinition) -> bool:
    """True for fields stored as binary numbers rather than text."""
    if f.field_type in _BINARY_TYPES:
        return True
    if f.field_type.is_date_time():
        return f.length == BINARY_DATE_TIME_LENGTH
    if f.field_type is FieldType.MEMO:
        return f.length != TEXT_MEMO_POINTER_LENGTH
    return False


class Record:
    """
    One row of a DBF table.

    The record keeps a private copy of its bytes; the metadata and memo
    reader are shared with the reader that produced it and are never
    modified here.

    Attributes:
        metadata: Table metadata (shared)
        number: 1-based position in the file (0 for records built in memory)
        encoding: Override codec for text fields (None = metadata encoding)
        tz: Zone attached to DateTime values (None = naive)
    """

    def __init__(
        self,
        data: bytes,
        metadata: Metadata,
        memo_reader: Optional[MemoReader] = None,
        number: int = 0,
        encoding: Optional[str] = None,
        tz: Optional[tzinfo] = None,
    ):
        self._data = bytearray(data)
        self.metadata = metadata
        self._memo_reader = memo_reader
        self.number = number
        self.encoding = encoding
        self.tz = tz

    @classmethod
    def blank(cls, metadata: Metadata, **kwargs: Any) -> "Record":
        """
        Create an active record with every field blank.

        Text fields are filled with spaces, binary fields with zeros.
        """
        data = bytearray(PAD_BYTE * metadata.record_length)
        for f in metadata.fields:
            if _is_binary(f):
                data[f.offset:f.end] = bytes(f.length)
        return cls(data, metadata, **kwargs)

    def __repr__(self) -> str:
        state = "deleted" if self.is_deleted() else "active"
        return f"<Record #{self.number} {state} {len(self._data)} bytes>"

    @property
    def data(self) -> bytes:
        """The raw record bytes."""
        return bytes(self._data)

    # =========================================================================
    # Deletion Flag
    # =========================================================================

    def is_deleted(self) -> bool:
        """True if the record is marked deleted (first byte 0x2A)."""
        return self._data[0] == DELETED_FLAG

    def set_deleted(self, deleted: bool = True) -> None:
        self._data[0] = DELETED_FLAG if deleted else ACTIVE_FLAG

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get_field(self, name: str) -> FieldDefinition:
        return self.metadata.get_field(name)

    def _window(self, f: FieldDefinition) -> bytes:
        return bytes(self._data[f.offset:f.end])

    def _encoding(self, encoding: Optional[str] = None) -> str:
        return encoding or self.encoding or self.metadata.encoding

    def get_bytes(self, name: str) -> bytes:
        """Get a copy of the raw bytes of a field."""
        return self._window(self.get_field(name))

    def set_bytes(self, name: str, data: bytes) -> None:
        """
        Overwrite the raw bytes of a field.

        Raises:
            ValueError: If data is not exactly the field length
        """
        f = self.get_field(name)
        if len(data) != f.length:
            raise ValueError(
                f"Field '{name}' is {f.length} bytes, got {len(data)} bytes"
            )
        self._data[f.offset:f.end] = data

    # =========================================================================
    # Typed Accessors
    # =========================================================================

    def get_string(self, name: str, encoding: Optional[str] = None) -> Optional[str]:
        """
        Get a field as text with surrounding spaces removed.

        Args:
            name: Field name
            encoding: Codec override for this call

        Returns:
            The text, or None if the field is blank
        """
        raw = self.get_bytes(name).strip(PAD_BYTE)
        if not raw:
            return None
        return raw.decode(self._encoding(encoding), errors="replace")

    def get_date(self, name: str) -> Optional[date]:
        """Get a YYYYMMDD field; blank or unparseable text gives None."""
        return parse_date_or_none(self.get_string(name))

    def get_date_time(self, name: str, tz: Optional[tzinfo] = None) -> Optional[datetime]:
        """
        Get a DateTime field.

        8-byte T and @ fields use the binary Julian form; anything else is
        read as 14-character YYYYMMDDHHmmss text.

        Raises:
            FieldTypeError: If the field is too narrow to hold either form
        """
        f = self.get_field(name)
        tz = tz or self.tz

        if f.field_type.is_date_time() and f.length == BINARY_DATE_TIME_LENGTH:
            return decode_julian_bytes(self._window(f), tz)

        if f.length < TEXT_DATE_TIME_LENGTH:
            raise FieldTypeError(
                name, f"{f.field_type.value}({f.length})",
                "8-byte binary or 14-character DateTime",
            )
        return parse_date_time_or_none(self.get_string(name), tz)

    def get_decimal(self, name: str) -> Optional[Decimal]:
        """
        Get a Numeric/Float field as an exact Decimal.

        Returns:
            The value, or None if blank or overflowed ('*')

        Raises:
            DBFFormatError: If the text is not a decimal number
        """
        text = self.get_string(name)
        if text is None:
            return None
        text = text.strip()
        if not text or NUMERIC_OVERFLOW in text:
            return None
        if not _DECIMAL_RE.match(text):
            raise DBFFormatError(
                f"Field '{name}' of record {self.number} is not a number: {text!r}"
            )
        return Decimal(text)

    def get_boolean(self, name: str) -> Optional[bool]:
        """Get a Logical field: 't' is True, 'f' is False, anything else None."""
        text = self.get_string(name)
        if text is None:
            return None
        text = text.lower()
        if text == "t":
            return True
        if text == "f":
            return False
        return None

    def get_integer(self, name: str) -> int:
        """Get a little-endian signed 32-bit integer field."""
        f = self.get_field(name)
        if f.length < 4:
            raise FieldTypeError(name, f"{f.field_type.value}({f.length})", "4-byte integer")
        return struct.unpack_from("<i", self._data, f.offset)[0]

    def get_double(self, name: str) -> float:
        """Get a little-endian IEEE double field (type B)."""
        f = self.get_field(name)
        if f.length < 8:
            raise FieldTypeError(name, f"{f.field_type.value}({f.length})", "8-byte double")
        return struct.unpack_from("<d", self._data, f.offset)[0]

    def get_currency(self, name: str) -> Decimal:
        """Get a Currency field (type Y): int64 with four implied decimals."""
        f = self.get_field(name)
        if f.length < 8:
            raise FieldTypeError(name, f"{f.field_type.value}({f.length})", "8-byte currency")
        return Decimal(struct.unpack_from("<q", self._data, f.offset)[0]) / _CURRENCY_SCALE

    # =========================================================================
    # Memo Fields
    # =========================================================================

    def get_memo_block(self, name: str) -> int:
        """
        Get the memo block number stored in a Memo field.

        10-byte fields hold the number as decimal text (dBASE); other
        widths hold a little-endian 32-bit integer (FoxPro).

        Raises:
            FieldTypeError: If the field is not a Memo field
        """
        f = self.get_field(name)
        if f.field_type is not FieldType.MEMO:
            raise FieldTypeError(name, f.field_type.value, "Memo")

        if f.length == TEXT_MEMO_POINTER_LENGTH:
            value = self.get_decimal(name)
            if value is None:
                return 0
            if value != value.to_integral_value():
                raise DBFFormatError(f"Memo pointer in field '{name}' is not an integer: {value}")
            return int(value)

        if f.length < 4:
            raise FieldTypeError(name, f"M({f.length})", "4-byte or 10-byte memo pointer")
        return struct.unpack_from("<i", self._data, f.offset)[0]

    def get_memo_record(self, name: str) -> Optional[MemoRecord]:
        """
        Resolve a Memo field through the memo reader.

        Returns:
            The memo record, or None if the field points at block 0

        Raises:
            FieldTypeError: If the field is not a Memo field
            MemoError: If no memo file is attached or the block is unreadable
        """
        block = self.get_memo_block(name)
        if block == 0:
            return None
        if self._memo_reader is None:
            raise MemoError(f"Field '{name}' needs a memo file, none supplied", block=block)
        return self._memo_reader.read(block)

    def get_memo_bytes(self, name: str) -> bytes:
        """Get a Memo field's raw value (b'' for no memo)."""
        memo = self.get_memo_record(name)
        return memo.value if memo else b""

    def get_memo_string(self, name: str, encoding: Optional[str] = None) -> str:
        """Get a Memo field's value as text ('' for no memo)."""
        memo = self.get_memo_record(name)
        return memo.get_value_as_string(self._encoding(encoding)) if memo else ""

    # =========================================================================
    # Generic Access
    # =========================================================================

    def get_value(self, name: str) -> Any:
        """Get a field, decoded according to its type."""
        f = self.get_field(name)
        field_type = f.field_type

        if field_type.is_text():
            return self.get_string(name)
        if field_type is FieldType.DATE:
            return self.get_date(name)
        if field_type.is_numeric_text():
            return self.get_decimal(name)
        if field_type is FieldType.LOGICAL:
            return self.get_boolean(name)
        if field_type in (FieldType.INTEGER, FieldType.AUTOINCREMENT):
            return self.get_integer(name)
        if field_type.is_date_time():
            return self.get_date_time(name)
        if field_type is FieldType.MEMO:
            return self.get_memo_string(name)
        if field_type in (FieldType.DOUBLE, FieldType.DOUBLE7):
            return self.get_double(name)
        if field_type is FieldType.CURRENCY:
            return self.get_currency(name)
        return self.get_bytes(name)

    def __getitem__(self, name: str) -> Any:
        return self.get_value(name)

    def __contains__(self, name: str) -> bool:
        return self.metadata.has_field(name)

    def to_dict(self) -> dict[str, Any]:
        """Get every field, in table order, as a dict of decoded values."""
        return {f.name: self.get_value(f.name) for f in self.metadata.fields}

    def to_text(self) -> str:
        """Get a `NAME=value, ...` line for display."""
        return ", ".join(
            f"{name}={value}" for name, value in self.to_dict().items()
        )

    # =========================================================================
    # Encoders
    # =========================================================================

    def _set_text(self, f: FieldDefinition, raw: bytes, align_right: bool = False) -> None:
        raw = raw[:f.length]
        padded = raw.rjust(f.length, PAD_BYTE) if align_right else raw.ljust(f.length, PAD_BYTE)
        self._data[f.offset:f.end] = padded

    def set_string(self, name: str, value: Optional[str], encoding: Optional[str] = None) -> None:
        """Write text, space padded and truncated to the field length."""
        f = self.get_field(name)
        raw = b"" if value is None else value.encode(self._encoding(encoding), errors="replace")
        self._set_text(f, raw)

    def set_date(self, name: str, value: Optional[date]) -> None:
        """Write a YYYYMMDD date (None = blank)."""
        f = self.get_field(name)
        self._set_text(f, b"" if value is None else format_date(value).encode("ascii"))

    def set_date_time(self, name: str, value: Optional[datetime]) -> None:
        """Write a DateTime in the binary or textual form the field uses."""
        f = self.get_field(name)
        if f.field_type.is_date_time() and f.length == BINARY_DATE_TIME_LENGTH:
            raw = bytes(BINARY_DATE_TIME_LENGTH) if value is None else encode_julian(value)
            self._data[f.offset:f.end] = raw
            return
        self._set_text(f, b"" if value is None else format_date_time(value).encode("ascii"))

    def set_decimal(self, name: str, value: Any) -> None:
        """
        Write a number right-aligned with the field's decimal places.

        Values too wide for the field are written as '*' (numeric overflow).
        """
        f = self.get_field(name)
        if value is None:
            self._set_text(f, b"")
            return
        try:
            number = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Field '{name}': {value!r} is not a number") from e

        text = f"{number:.{f.decimals}f}"
        if len(text) > f.length:
            text = NUMERIC_OVERFLOW * f.length
        self._set_text(f, text.encode("ascii"), align_right=True)

    def set_boolean(self, name: str, value: Optional[bool]) -> None:
        """Write 'T', 'F' or '?' (None)."""
        f = self.get_field(name)
        self._set_text(f, b"?" if value is None else (b"T" if value else b"F"))

    def set_integer(self, name: str, value: int) -> None:
        """Write a little-endian signed 32-bit integer."""
        f = self.get_field(name)
        self._data[f.offset:f.offset + 4] = struct.pack("<i", value)

    def set_memo_block(self, name: str, block: int) -> None:
        """Write a memo block number in the pointer form the field uses."""
        f = self.get_field(name)
        if f.field_type is not FieldType.MEMO:
            raise FieldTypeError(name, f.field_type.value, "Memo")
        if f.length == TEXT_MEMO_POINTER_LENGTH:
            raw = b"" if block == 0 else str(block).encode("ascii")
            self._set_text(f, raw, align_right=True)
        else:
            self._data[f.offset:f.offset + 4] = struct.pack("<i", block)

    def set_value(self, name: str, value: Any) -> None:
        """
        Write a field, encoding the value according to the field type.

        Memo fields take a block number; types without an encoder take
        raw bytes of exactly the field length.
        """
        f = self.get_field(name)
        field_type = f.field_type

        if field_type.is_text():
            self.set_string(name, value)
        elif field_type is FieldType.DATE:
            self.set_date(name, value)
        elif field_type.is_numeric_text():
            self.set_decimal(name, value)
        elif field_type is FieldType.LOGICAL:
            self.set_boolean(name, value)
        elif field_type in (FieldType.INTEGER, FieldType.AUTOINCREMENT):
            self.set_integer(name, 0 if value is None else int(value))
        elif field_type.is_date_time():
            self.set_date_time(name, value)
        elif field_type is FieldType.MEMO:
            self.set_memo_block(name, 0 if value is None else int(value))
        elif field_type in (FieldType.DOUBLE, FieldType.DOUBLE7):
            self._data[f.offset:f.offset + 8] = struct.pack("<d", 0.0 if value is None else value)
        elif field_type is FieldType.CURRENCY:
            scaled = 0 if value is None else int(Decimal(str(value)) * _CURRENCY_SCALE)
            self._data[f.offset:f.offset + 8] = struct.pack("<q", scaled)
        else:
            self.set_bytes(name, bytes(value or bytes(f.length)))
