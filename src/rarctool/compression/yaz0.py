"""Yaz0: byte-granularity LZ wrapper.

Layout::

    0x00  "Yaz0"
    0x04  u32 uncompressed size (big-endian)
    0x08  8 reserved bytes (zero)
    0x10  groups of [flag byte][up to 8 tokens]

Flag bits are consumed high to low; 1 is a literal byte, 0 a back-reference
of two bytes (``NDDD``) plus an extra length byte when ``N`` is zero.
"""

from __future__ import annotations

import logging
import struct

from rarctool.compression.lz import (
    check_declared_size,
    compress_tokens,
    expand_tokens,
    pack_code,
)
from rarctool.constants import COMPRESSION_HEADER_SIZE, YAZ0_MAGIC
from rarctool.errors import FormatError, InvalidArgumentError
from rarctool.progress import ProgressCallback, noop_progress

logger = logging.getLogger(__name__)

_HEADER_FMT = ">4sI8x"


class _Yaz0Source:
    """Single-cursor token source: masks, literals and codes are interleaved."""

    mask_bits = 8

    def __init__(self, data: bytes, offset: int) -> None:
        self._data = data
        self._pos = offset

    def _next_byte(self) -> int:
        if self._pos >= len(self._data):
            raise FormatError(f"Yaz0 stream truncated at offset 0x{self._pos:X}")
        value = self._data[self._pos]
        self._pos += 1
        return value

    read_mask = _next_byte
    read_literal = _next_byte
    read_extension = _next_byte

    def read_code(self) -> int:
        high = self._next_byte()
        return (high << 8) | self._next_byte()


class _Yaz0Sink:
    def __init__(self) -> None:
        self.out = bytearray()
        self._group = bytearray()
        self._flags = 0
        self._count = 0

    def _commit(self, is_literal: bool) -> None:
        if is_literal:
            self._flags |= 0x80 >> self._count
        self._count += 1
        if self._count == 8:
            self.flush()

    def literal(self, value: int) -> None:
        self._group.append(value)
        self._commit(True)

    def reference(self, distance: int, length: int) -> None:
        code, extension = pack_code(distance, length)
        self._group += code.to_bytes(2, "big")
        if extension is not None:
            self._group.append(extension)
        self._commit(False)

    def flush(self) -> None:
        if self._count:
            self.out.append(self._flags)
            self.out += self._group
        self._group.clear()
        self._flags = 0
        self._count = 0


def read_header(data: bytes) -> int:
    """Validate the Yaz0 header and return the uncompressed size."""
    if len(data) < COMPRESSION_HEADER_SIZE:
        raise FormatError(f"Yaz0 header too short: {len(data)} bytes")
    magic, size = struct.unpack_from(_HEADER_FMT, data, 0)
    if magic != YAZ0_MAGIC:
        raise FormatError(f"Invalid Yaz0 magic: {magic!r}")
    return size


def decode(data: bytes) -> bytes:
    """Decompress a complete Yaz0 file."""
    size = read_header(data)
    check_declared_size("Yaz0", size, len(data) - COMPRESSION_HEADER_SIZE)
    result = expand_tokens(_Yaz0Source(data, COMPRESSION_HEADER_SIZE), size)
    logger.debug("Yaz0 decoded %d -> %d bytes", len(data), size)
    return result


def encode(data: bytes, *, on_progress: ProgressCallback = noop_progress) -> bytes:
    """Compress *data* into a Yaz0 file.

    Raises:
        InvalidArgumentError: If *data* is ``None`` or empty.
    """
    if not data:
        raise InvalidArgumentError("Cannot Yaz0-encode an empty buffer")
    src = bytes(data)
    sink = _Yaz0Sink()
    compress_tokens(src, sink, phase="yaz0", on_progress=on_progress)
    sink.flush()
    out = struct.pack(_HEADER_FMT, YAZ0_MAGIC, len(src)) + sink.out
    logger.debug("Yaz0 encoded %d -> %d bytes", len(src), len(out))
    return bytes(out)
