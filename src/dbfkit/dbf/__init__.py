"""
DBF File Handling
=================

This module reads and writes DBF tables, the file format of dBASE,
FoxBASE, FoxPro and Clipper, still used as an exchange format by
accounting, GIS and government software.

Overview
--------
A DBF file is a 32-byte header, a table of 32-byte field descriptors
ended by 0x0D, and then fixed-width records. Memo fields keep their text
in a companion .FPT/.DBT file and store only a block number.

This module provides:
- **DbfReader**: Sequential record reader
- **DbfWriter**: Record writer
- **Record**: Typed access to one row
- **Metadata**: Header and field table
- **MemoReader**: Block reader for memo files
- **Codecs**: Header, field descriptor, date and code page helpers

Quick Start
-----------
Reading a table:

    >>> from dbfkit.dbf import DbfReader
    >>> with DbfReader.open("CUSTOMER.DBF") as reader:
    ...     for record in reader:
    ...         print(record.get_string("NAME"))

Writing a table:

    >>> from dbfkit.dbf import DbfWriter, Metadata
    >>> metadata = Metadata.from_fields_string("NAME,C,20,0|BORN,D,8,0")
    >>> with DbfWriter.open("PEOPLE.DBF", metadata) as writer:
    ...     writer.write({"NAME": "JOHN", "BORN": date(1970, 5, 1)})

Reference
---------
- Format description: https://www.clicketyclick.dk/databases/xbase/format/dbf.html
"""

# =============================================================================
# Public API Exports
# =============================================================================

# Field definitions
from dbfkit.dbf.fields import (
    FieldType,
    FieldDefinition,
    FIELD_DESCRIPTOR_SIZE,
    assign_offsets,
    decode_field,
    encode_field,
    parse_field_string,
    parse_fields_string,
    fields_to_string,
)

# Header and metadata
from dbfkit.dbf.header import (
    FileType,
    Metadata,
    FILE_HEADER_SIZE,
    HEADER_TERMINATOR,
    decode_header,
    encode_header,
    encode_metadata,
    read_metadata,
)

# Code pages
from dbfkit.dbf.charset import (
    CODE_PAGES,
    default_encoding,
    resolve_encoding,
    code_byte_for,
)

# Dates
from dbfkit.dbf.dates import (
    parse_date,
    format_date,
    parse_date_time,
    format_date_time,
    julian_day,
    decode_julian,
    encode_julian,
)

# Records, reading and writing
from dbfkit.dbf.record import Record
from dbfkit.dbf.memo import MemoFormat, MemoReader, MemoRecord, MemoType
from dbfkit.dbf.reader import DbfReader
from dbfkit.dbf.writer import DbfWriter

__all__ = [
    # Fields
    "FieldType",
    "FieldDefinition",
    "FIELD_DESCRIPTOR_SIZE",
    "assign_offsets",
    "decode_field",
    "encode_field",
    "parse_field_string",
    "parse_fields_string",
    "fields_to_string",
    # Header
    "FileType",
    "Metadata",
    "FILE_HEADER_SIZE",
    "HEADER_TERMINATOR",
    "decode_header",
    "encode_header",
    "encode_metadata",
    "read_metadata",
    # Code pages
    "CODE_PAGES",
    "default_encoding",
    "resolve_encoding",
    "code_byte_for",
    # Dates
    "parse_date",
    "format_date",
    "parse_date_time",
    "format_date_time",
    "julian_day",
    "decode_julian",
    "encode_julian",
    # Records
    "Record",
    "MemoFormat",
    "MemoReader",
    "MemoRecord",
    "MemoType",
    "DbfReader",
    "DbfWriter",
]
