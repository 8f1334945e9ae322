"""
dbfkit - Reader and Writer for dBASE/FoxPro DBF Tables
======================================================

This package decodes and encodes the DBF table format: the header and
field descriptor table, fixed-width records with typed fields, legacy
code page resolution, the textual and binary (Julian day) date-time
encodings, and memo fields stored in companion .FPT and .DBT files.

Main Components
---------------
- **dbf**: Format engine
    DbfReader, DbfWriter, Record, Metadata, MemoReader and the codecs

- **config**: Reader settings
    ReaderConfig, with environment variable overrides

- **cli**: Command-line tool (dbftool)
    Inspect, dump and validate DBF files

Quick Start
-----------
Read a table:
    >>> from dbfkit import DbfReader
    >>> with DbfReader.open("CUSTOMER.DBF", memo_path="CUSTOMER.FPT") as reader:
    ...     print(reader.metadata.field_names)
    ...     for record in reader:
    ...         print(record.to_dict())

Or use the command-line tool:
    $ dbftool info CUSTOMER.DBF
    $ dbftool dump CUSTOMER.DBF --memo CUSTOMER.FPT --limit 10

Version History
---------------
1.0.0 - Initial release with reader, writer, memo reader and dbftool
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from dbfkit.config import ReaderConfig
from dbfkit.errors import (
    DBFError,
    DBFFormatError,
    DateParseError,
    DBFUsageError,
    FieldNotFoundError,
    FieldTypeError,
    FieldDefinitionError,
    MemoError,
)

from dbfkit.dbf import (
    DbfReader,
    DbfWriter,
    Record,
    Metadata,
    FileType,
    FieldType,
    FieldDefinition,
    MemoFormat,
    MemoReader,
    MemoRecord,
    MemoType,
)

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "ReaderConfig",
    # Reading and writing
    "DbfReader",
    "DbfWriter",
    "Record",
    "Metadata",
    "FileType",
    "FieldType",
    "FieldDefinition",
    "MemoFormat",
    "MemoReader",
    "MemoRecord",
    "MemoType",
    # Exception hierarchy
    "DBFError",
    "DBFFormatError",
    "DateParseError",
    "DBFUsageError",
    "FieldNotFoundError",
    "FieldTypeError",
    "FieldDefinitionError",
    "MemoError",
]
