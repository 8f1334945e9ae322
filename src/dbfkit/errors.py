"""
dbfkit Error Hierarchy
======================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from DBFError, allowing callers to catch every
dbfkit-related error with a single except clause if desired.

Exception Hierarchy
-------------------
DBFError (base)
├── DBFFormatError - corrupted or unrecognised file content (fatal)
│   └── DateParseError - text that does not match a fixed date pattern
├── DBFUsageError - the caller asked for something invalid
│   ├── FieldNotFoundError - no field with that name
│   ├── FieldTypeError - accessor does not apply to the field type
│   └── FieldDefinitionError - malformed field definition
└── MemoError - memo file missing, truncated or unreadable

Corruption errors abort the current open/read. Usage errors are fatal to
the call but leave the reader usable. Blank values are never errors; the
record accessors return None for them.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class DBFError(Exception):
    """
    Base exception for all dbfkit errors.

        try:
            with DbfReader.open("CUSTOMER.DBF") as reader:
                rows = [record.to_dict() for record in reader]
        except DBFError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Format Exceptions
# =============================================================================

class DBFFormatError(DBFError):
    """
    Invalid or corrupted DBF content.

    Raised when reading a file that:
    - Has a header shorter than 32 bytes
    - Starts with an unrecognised dialect tag
    - Has a field table that never reaches its 0x0D terminator
    - Has a truncated field descriptor

    Attributes:
        message: The error description
        position: Byte offset in the stream where the problem was found
    """

    def __init__(self, message: str, position: Optional[int] = None):
        self.message = message
        self.position = position
        if position is not None:
            message = f"{message} (at byte {position})"
        super().__init__(message)


class DateParseError(DBFFormatError):
    """
    Text that does not match the fixed YYYYMMDD / YYYYMMDDHHmmss pattern.

    The record accessors catch this and report the value as absent; it is
    only visible to callers of the low-level functions in dbfkit.dbf.dates.
    """

    def __init__(self, text: str, pattern: str):
        self.text = text
        self.pattern = pattern
        super().__init__(f"cannot parse {text!r} as {pattern}")


# =============================================================================
# Usage Exceptions
# =============================================================================

class DBFUsageError(DBFError):
    """Base exception for invalid requests made by the caller."""
    pass


class FieldNotFoundError(DBFUsageError, KeyError):
    """No field with the requested name exists in the metadata."""

    def __init__(self, name: str, available: Optional[list[str]] = None):
        self.name = name
        self.available = available or []
        message = f"no field named '{name}'"
        if self.available:
            message += f" (fields: {', '.join(self.available)})"
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.message


class FieldTypeError(DBFUsageError):
    """
    An accessor was used on a field of the wrong type.

    Example:
        record.get_memo_bytes("NAME")  # NAME is a Character field
    """

    def __init__(self, name: str, field_type: str, expected: str):
        self.name = name
        self.field_type = field_type
        self.expected = expected
        super().__init__(
            f"field '{name}' is of type {field_type}, expected {expected}"
        )


class FieldDefinitionError(DBFUsageError):
    """
    Malformed field definition.

    Raised for descriptive strings that are not `name,type,length,decimals`
    and for names that do not fit in the 11-byte descriptor slot.
    """
    pass


# =============================================================================
# Memo Exceptions
# =============================================================================

class MemoError(DBFError):
    """
    Memo file problem.

    Raised when:
    - A memo field is read but no memo file was supplied
    - A memo block points past the end of the memo file
    - The memo header is truncated
    """

    def __init__(self, message: str, block: Optional[int] = None):
        self.block = block
        if block is not None:
            message = f"{message} (block {block})"
        super().__init__(message)
