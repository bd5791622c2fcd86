"""
Побитовое чтение и запись, старший бит идёт первым.
Читатель работает поверх байтовой строки и умеет перематываться в начало,
писатель копит биты и сбрасывает целые байты в поток.
"""

import io
from typing import BinaryIO, Optional, Union


EXHAUSTED = -1
FLUSH_THRESHOLD = 64 * 1024


class BitReader:
    def __init__(self, data: Union[bytes, BinaryIO]):
        if hasattr(data, 'read'):
            data = data.read()
        self.data = bytes(data)
        self.total_bits = len(self.data) * 8
        self.pos = 0

    @classmethod
    def from_file(cls, file_path: str) -> 'BitReader':
        with open(file_path, 'rb') as f:
            return cls(f)

    @property
    def bits_read(self) -> int:
        return self.pos

    @property
    def remaining(self) -> int:
        return self.total_bits - self.pos

    def read_bits(self, n: int) -> int:
        """Returns the next n bits as an unsigned int, or EXHAUSTED."""
        if n <= 0:
            raise ValueError(f"Bit count must be positive: {n}")
        if n > self.remaining:
            return EXHAUSTED

        start = self.pos >> 3
        end = (self.pos + n + 7) >> 3
        chunk = int.from_bytes(self.data[start:end], 'big')
        shift = (end - start) * 8 - (self.pos & 7) - n
        self.pos += n

        return (chunk >> shift) & ((1 << n) - 1)

    def reset(self):
        self.pos = 0


class BitWriter:
    def __init__(self, stream: Optional[BinaryIO] = None):
        self.owns_stream = stream is None
        self.stream = io.BytesIO() if stream is None else stream
        self.pending = bytearray()
        self.buffer = 0
        self.bit_count = 0
        self.bits_written = 0
        self.closed = False

    def write_bits(self, n: int, value: int):
        if self.closed:
            raise ValueError("Write to closed BitWriter")
        if n <= 0:
            raise ValueError(f"Bit count must be positive: {n}")

        self.buffer = (self.buffer << n) | (value & ((1 << n) - 1))
        self.bit_count += n
        self.bits_written += n

        while self.bit_count >= 8:
            self.bit_count -= 8
            self.pending.append((self.buffer >> self.bit_count) & 0xFF)
        self.buffer &= (1 << self.bit_count) - 1

        if len(self.pending) >= FLUSH_THRESHOLD:
            self._flush()

    def _flush(self):
        self.stream.write(self.pending)
        self.pending = bytearray()

    def close(self) -> Optional[bytes]:
        if self.closed:
            return self.getvalue()

        if self.bit_count > 0:
            self.pending.append((self.buffer << (8 - self.bit_count)) & 0xFF)
            self.buffer = 0
            self.bit_count = 0

        self._flush()
        self.stream.flush()
        self.closed = True

        return self.getvalue()

    def getvalue(self) -> Optional[bytes]:
        if not self.owns_stream:
            return None
        return self.stream.getvalue()
