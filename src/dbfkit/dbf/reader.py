"""
DBF Reader
==========

Sequential reader for DBF tables. The reader parses the header and field
table when it is created and then hands out one Record per call to
read(), until the data runs out.

The stream only needs to support read(); pipes and sockets work as well
as files. Reading is single-threaded and blocking.

Usage
-----
    >>> with DbfReader.open("CUSTOMER.DBF", memo_path="CUSTOMER.FPT") as reader:
    ...     for record in reader:
    ...         print(record.get_string("NAME"))
"""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
import logging

from dbfkit.config import ReaderConfig
from dbfkit.errors import DBFError, DBFFormatError
from dbfkit.dbf.header import FILE_HEADER_SIZE, Metadata, read_metadata
from dbfkit.dbf.memo import MemoReader
from dbfkit.dbf.record import Record
from dbfkit.dbf.stream import ByteSource

# Logger for this module
logger = logging.getLogger(__name__)


END_OF_FILE_MARKER = 0x1A


class DbfReader:
    """
    Reads records from a DBF stream.

    The reader owns the stream and the memo reader passed to it and closes
    both in close().

    Example:
        >>> reader = DbfReader(open("ORDERS.DBF", "rb"))
        >>> reader.metadata.record_count
        42
        >>> record = reader.read()
        >>> record.get_decimal("TOTAL")
        Decimal('19.90')
        >>> reader.close()
    """

    def __init__(
        self,
        stream: BinaryIO,
        memo: Optional[MemoReader] = None,
        config: Optional[ReaderConfig] = None,
    ):
        """
        Read the metadata and position the stream at the first record.

        Args:
            stream: Binary stream positioned at the start of the DBF data
            memo: Reader for the companion memo file, if any
            config: Reader settings (default: ReaderConfig())

        Raises:
            DBFFormatError: If the header or field table is invalid; the
                stream and memo reader are closed before raising
        """
        self.config = config or ReaderConfig()
        self._source: Optional[ByteSource] = ByteSource(stream)
        self._memo = memo
        self._metadata: Optional[Metadata] = None
        self._records_read = 0

        try:
            self._metadata = read_metadata(
                self._source, strict_lengths=self.config.strict_lengths
            )
            self._skip_to_first_record()
        except DBFError as e:
            logger.error(f"Cannot open DBF stream: {e}")
            self.close()
            raise

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        memo_path: Optional[Union[str, Path]] = None,
        config: Optional[ReaderConfig] = None,
    ) -> "DbfReader":
        """
        Open a DBF file, and optionally its memo file, from disk.

        Args:
            path: Path to the .DBF file
            memo_path: Path to the .FPT/.DBT file (memo fields need it)
            config: Reader settings

        Raises:
            FileNotFoundError: If a file doesn't exist
            DBFFormatError: If the DBF header is invalid
            MemoError: If the memo header is invalid
        """
        stream = Path(path).open("rb")
        try:
            memo = MemoReader.open(memo_path) if memo_path else None
        except (OSError, DBFError):
            stream.close()
            raise
        logger.debug(f"Opened {path}" + (f" with memo {memo_path}" if memo_path else ""))
        return cls(stream, memo=memo, config=config)

    def _skip_to_first_record(self) -> None:
        metadata = self._metadata
        consumed = self._source.position

        if metadata.record_length < 1:
            raise DBFFormatError(
                f"Invalid record length {metadata.record_length}", position=10
            )

        if metadata.header_length < FILE_HEADER_SIZE:
            raise DBFFormatError(
                f"Declared header length {metadata.header_length} cannot hold "
                f"the {FILE_HEADER_SIZE}-byte file header",
                position=8,
            )

        if metadata.header_length < consumed:
            # Records start where the header says, even inside the field table
            logger.debug(
                f"Stepping back {consumed - metadata.header_length} bytes "
                f"to the declared header length"
            )
            self._source.rewind(metadata.header_length)
        else:
            padding = metadata.header_length - consumed
            if padding:
                logger.debug(f"Skipping {padding} bytes of header padding")
                self._source.skip(padding)
        self._source.release_history()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def metadata(self) -> Metadata:
        """
        Table metadata.

        Raises:
            DBFError: If the reader is closed
        """
        if self._metadata is None:
            raise DBFError("DBF reader is closed")
        return self._metadata

    @property
    def memo(self) -> Optional[MemoReader]:
        return self._memo

    @property
    def closed(self) -> bool:
        return self._source is None

    @property
    def records_read(self) -> int:
        """Number of records returned by read() so far."""
        return self._records_read

    # =========================================================================
    # Reading
    # =========================================================================

    def read(self) -> Optional[Record]:
        """
        Read the next record.

        Returns:
            The record, or None when fewer than record_length bytes remain
            (this covers the trailing 0x1A end-of-file marker)

        Raises:
            DBFError: If the reader is closed
        """
        if self._source is None:
            raise DBFError("DBF reader is closed")

        length = self._metadata.record_length
        data = self._source.read_fully(length)
        if len(data) < length:
            if data and data[0] != END_OF_FILE_MARKER:
                logger.debug(f"Discarding {len(data)} trailing bytes")
            return None

        self._records_read += 1
        return Record(
            data,
            self._metadata,
            memo_reader=self._memo,
            number=self._records_read,
            encoding=self.config.encoding,
            tz=self.config.timezone,
        )

    def __iter__(self) -> Iterator[Record]:
        while (record := self.read()) is not None:
            if self.config.skip_deleted and record.is_deleted():
                continue
            yield record

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """
        Close the stream and the memo reader. Safe to call more than once.

        The metadata is discarded and the record counter reset; records
        already returned keep their own reference to the metadata.
        """
        if self._memo is not None:
            self._memo.close()
            self._memo = None
        if self._source is not None:
            self._source.close()
            self._source = None
        self._metadata = None
        self._records_read = 0

    def __enter__(self) -> "DbfReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
