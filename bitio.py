"""
Побитовое чтение и запись поверх бинарных файлов.

Биты читаются и пишутся начиная со старшего. Читатель умеет
возвращаться в начало потока, писатель дополняет последний байт нулями.
"""

import io
from typing import BinaryIO, Optional


END_OF_STREAM = -1
MAX_BITS = 32
CHUNK_SIZE = 4096


def _check_count(how_many: int):
    if not 0 <= how_many <= MAX_BITS:
        raise ValueError(f"Can only process 0..{MAX_BITS} bits at a time, got {how_many}")


class BitInputStream:
    def __init__(self, stream: BinaryIO, owns_stream: bool = False):
        self._stream = stream
        self._owns_stream = owns_stream
        self._chunk = b''
        self._pos = 0
        self._buffer = 0
        self._bits_in_buffer = 0
        self.bits_read = 0

    @staticmethod
    def from_bytes(data: bytes) -> 'BitInputStream':
        return BitInputStream(io.BytesIO(data), owns_stream=True)

    @staticmethod
    def open(path: str) -> 'BitInputStream':
        return BitInputStream(open(path, 'rb'), owns_stream=True)

    def _next_byte(self) -> Optional[int]:
        if self._pos >= len(self._chunk):
            self._chunk = self._stream.read(CHUNK_SIZE)
            self._pos = 0
            if not self._chunk:
                return None

        byte = self._chunk[self._pos]
        self._pos += 1
        return byte

    def read_bits(self, how_many: int) -> int:
        """
        Возвращает следующие how_many бит как беззнаковое число
        или END_OF_STREAM, если столько бит в потоке уже нет.
        """
        _check_count(how_many)

        while self._bits_in_buffer < how_many:
            byte = self._next_byte()
            if byte is None:
                return END_OF_STREAM
            self._buffer = (self._buffer << 8) | byte
            self._bits_in_buffer += 8

        self._bits_in_buffer -= how_many
        value = self._buffer >> self._bits_in_buffer
        self._buffer &= (1 << self._bits_in_buffer) - 1
        self.bits_read += how_many
        return value

    def reset(self):
        if not self._stream.seekable():
            raise ValueError("Cannot reset a stream that is not seekable")

        self._stream.seek(0)
        self._chunk = b''
        self._pos = 0
        self._buffer = 0
        self._bits_in_buffer = 0

    def close(self):
        if self._owns_stream:
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, stream: Optional[BinaryIO] = None, owns_stream: bool = False):
        if stream is None:
            stream = io.BytesIO()
        self._stream = stream
        self._owns_stream = owns_stream
        self._pending = bytearray()
        self._buffer = 0
        self._bits_in_buffer = 0
        self._closed = False
        self.bits_written = 0

    @staticmethod
    def open(path: str) -> 'BitOutputStream':
        return BitOutputStream(open(path, 'wb'), owns_stream=True)

    def write_bits(self, how_many: int, value: int):
        _check_count(how_many)
        if self._closed:
            raise ValueError("Write to a closed bit stream")

        self._buffer = (self._buffer << how_many) | (value & ((1 << how_many) - 1))
        self._bits_in_buffer += how_many

        while self._bits_in_buffer >= 8:
            self._bits_in_buffer -= 8
            self._pending.append(self._buffer >> self._bits_in_buffer)
            self._buffer &= (1 << self._bits_in_buffer) - 1

        self.bits_written += how_many

        if len(self._pending) >= CHUNK_SIZE:
            self._flush_pending()

    def _flush_pending(self):
        self._stream.write(bytes(self._pending))
        self._pending.clear()

    def close(self):
        if self._closed:
            return
        self._closed = True

        try:
            if self._bits_in_buffer:
                padding = 8 - self._bits_in_buffer
                self._pending.append(self._buffer << padding)
                self._buffer = 0
                self._bits_in_buffer = 0

            self._flush_pending()
            self._stream.flush()
        finally:
            if self._owns_stream:
                self._stream.close()

    def getvalue(self) -> bytes:
        if not isinstance(self._stream, io.BytesIO):
            raise ValueError("Bit stream is not backed by memory")
        return self._stream.getvalue() + bytes(self._pending)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
