"""Sequential reader for TLS-style length-prefixed binary structures."""

from enum import Enum


class Endianness(Enum):
    BIG = "big"
    LITTLE = "little"


class DataType(Enum):
    UINT = "uint"
    BYTES = "bytes"


class BinaryReader:
    """Cursor over a byte string. Short reads raise ValueError."""

    def __init__(self, data: bytes, endianness: Endianness = Endianness.BIG):
        self._data = data
        self._endianness = endianness
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def has_bytes(self, count: int) -> bool:
        return self.remaining >= count

    def _take(self, count: int) -> bytes:
        if count < 0:
            raise ValueError(f"Negative read length: {count}")
        if not self.has_bytes(count):
            raise ValueError(
                f"Unexpected end of data: wanted {count} bytes at offset "
                f"{self._offset}, {self.remaining} left"
            )
        chunk = self._data[self._offset:self._offset + count]
        self._offset += count
        return chunk

    def read(self, data_type: DataType, length: int):
        """Read an unsigned integer of `length` bytes, or `length` raw bytes."""
        chunk = self._take(length)
        if data_type == DataType.UINT:
            return int.from_bytes(chunk, self._endianness.value)
        return chunk

    def skip(self, count: int) -> None:
        self._take(count)
