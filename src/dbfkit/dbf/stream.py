"""
Sequential byte source used by the DBF reader.

Wraps any binary file-like object and adds the two things the header
parser needs: reads that only come back short at end-of-stream, and the
ability to push back bytes that were read ahead (the field table's
terminator lookahead). Works on pipes and sockets as well as seekable files.

The bytes consumed are kept until release_history() is called, so the
reader can step back to a declared header length that ends before the
field table does.
"""

from typing import BinaryIO, Optional

_SKIP_CHUNK = 64 * 1024


class ByteSource:
    """
    Forward-only reader with pushback and position tracking.

    Attributes:
        position: Number of bytes consumed from the start of the stream
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._pushback = b""
        self._history: Optional[bytearray] = bytearray()
        self.position = 0

    def read_fully(self, size: int) -> bytes:
        """
        Read exactly `size` bytes unless the stream ends first.

        Returns:
            The bytes read; shorter than `size` only at end-of-stream
        """
        parts = []
        remaining = size

        if self._pushback:
            taken = self._pushback[:remaining]
            self._pushback = self._pushback[len(taken):]
            parts.append(taken)
            remaining -= len(taken)

        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            parts.append(chunk)
            remaining -= len(chunk)

        data = b"".join(parts)
        self.position += len(data)
        if self._history is not None:
            self._history += data
        return data

    def read_byte(self) -> int:
        """Read one byte; -1 at end-of-stream."""
        data = self.read_fully(1)
        return data[0] if data else -1

    def unread(self, data: bytes) -> None:
        """Push bytes back so the next read returns them first."""
        self._pushback = data + self._pushback
        self.position -= len(data)
        if self._history is not None:
            del self._history[self.position:]

    def rewind(self, position: int) -> None:
        """
        Step back to an earlier position.

        Raises:
            ValueError: If the history was released or position is not
                between 0 and the current position
        """
        if self._history is None:
            raise ValueError("Byte history has been released")
        if not 0 <= position <= self.position:
            raise ValueError(f"Cannot rewind to {position} from {self.position}")
        self.unread(bytes(self._history[position:]))

    def release_history(self) -> None:
        """Stop keeping consumed bytes; rewind() is unavailable afterwards."""
        self._history = None

    def skip(self, size: int) -> int:
        """
        Discard up to `size` bytes.

        Returns:
            The number of bytes actually skipped
        """
        skipped = 0
        while skipped < size:
            chunk = self.read_fully(min(_SKIP_CHUNK, size - skipped))
            if not chunk:
                break
            skipped += len(chunk)
        return skipped

    def close(self) -> None:
        self._pushback = b""
        self._history = None
        self._stream.close()
