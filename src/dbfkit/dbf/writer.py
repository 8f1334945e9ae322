"""
DBF Writer
==========

Writes a DBF table record by record:

    1. Header, field descriptors and the 0x0D terminator
    2. One fixed-width record per write() call
    3. The 0x1A end-of-file marker (on close)

The header carries the record count, which is only known at the end.
On seekable streams the header is rewritten on close with the final
count; on pipes the count from the metadata is written up front.

Memo files are not written; memo fields take a block number.

Usage
-----
    >>> metadata = Metadata.from_fields_string("NAME,C,20,0|PRICE,N,10,2")
    >>> with DbfWriter.open("ITEMS.DBF", metadata) as writer:
    ...     writer.write({"NAME": "Widget", "PRICE": Decimal("9.95")})
"""

from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional, Union
import logging

from dbfkit.errors import DBFError
from dbfkit.dbf.header import Metadata, encode_header, encode_metadata
from dbfkit.dbf.reader import END_OF_FILE_MARKER
from dbfkit.dbf.record import Record

# Logger for this module
logger = logging.getLogger(__name__)


class DbfWriter:
    """
    Writes records to a DBF stream.

    The writer owns the stream and closes it in close().

    Attributes:
        metadata: Table layout being written
        encoding: Codec for text fields (None = metadata encoding)
    """

    def __init__(
        self,
        stream: BinaryIO,
        metadata: Metadata,
        encoding: Optional[str] = None,
    ):
        self.metadata = metadata
        self.encoding = encoding
        self._stream: Optional[BinaryIO] = stream
        self._header_written = False
        self._records_written = 0

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        metadata: Metadata,
        encoding: Optional[str] = None,
    ) -> "DbfWriter":
        """Create (or truncate) a DBF file and return a writer for it."""
        return cls(Path(path).open("wb"), metadata, encoding=encoding)

    @property
    def records_written(self) -> int:
        return self._records_written

    @property
    def closed(self) -> bool:
        return self._stream is None

    # =========================================================================
    # Writing
    # =========================================================================

    def _check_open(self) -> BinaryIO:
        if self._stream is None:
            raise DBFError("DBF writer is closed")
        return self._stream

    def _write_header(self) -> None:
        stream = self._check_open()
        stream.write(encode_metadata(self.metadata))
        self._header_written = True
        logger.debug(
            f"Wrote header: {len(self.metadata.fields)} fields, "
            f"record length {self.metadata.record_length}"
        )

    def new_record(self) -> Record:
        """Create a blank record laid out for this table."""
        return Record.blank(
            self.metadata,
            number=self._records_written + 1,
            encoding=self.encoding,
        )

    def write(self, values: Mapping[str, Any], deleted: bool = False) -> Record:
        """
        Encode and write one record.

        Fields missing from `values` are written blank.

        Args:
            values: Field name to value (see Record.set_value)
            deleted: Write the record with the deletion flag set

        Returns:
            The record as written

        Raises:
            FieldNotFoundError: If a name is not a field of the table
            DBFError: If the writer is closed
        """
        self._check_open()
        record = self.new_record()
        for name, value in values.items():
            record.set_value(name, value)
        record.set_deleted(deleted)
        self.write_record(record)
        return record

    def write_record(self, record: Record) -> None:
        """
        Write a prepared record as-is.

        Raises:
            ValueError: If the record length does not match the table
        """
        stream = self._check_open()
        data = record.data
        if len(data) != self.metadata.record_length:
            raise ValueError(
                f"Record is {len(data)} bytes, table record length is "
                f"{self.metadata.record_length}"
            )
        if not self._header_written:
            self._write_header()
        stream.write(data)
        self._records_written += 1

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """
        Finish the file and close the stream. Safe to call more than once.

        Writes the header if no record was written, appends the 0x1A
        marker and, on seekable streams, updates the header record count.
        """
        if self._stream is None:
            return
        stream = self._stream
        try:
            if not self._header_written:
                self._write_header()
            stream.write(bytes([END_OF_FILE_MARKER]))
            self._update_record_count(stream)
        finally:
            stream.close()
            self._stream = None

    def _update_record_count(self, stream: BinaryIO) -> None:
        count = self._records_written
        if count == self.metadata.record_count:
            return

        if not stream.seekable():
            logger.warning(
                f"Header declares {self.metadata.record_count} records but "
                f"{count} were written; stream is not seekable"
            )
            return

        self.metadata = self.metadata.with_record_count(count)
        end = stream.tell()
        stream.seek(0)
        stream.write(encode_header(self.metadata))
        stream.seek(end)
        logger.debug(f"Updated header record count to {count}")

    def __enter__(self) -> "DbfWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
