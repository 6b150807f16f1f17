"""Yay0: word-granularity LZ wrapper.

Layout::

    0x00  "Yay0"
    0x04  u32 uncompressed size
    0x08  u32 link table offset
    0x0C  u32 chunk table offset
    0x10  u32 mask words (MSB first, 32 tokens each)
    ....  link table: u16 back-reference codes
    ....  chunk table: literal bytes and long-match length bytes

Token semantics are the same as Yaz0; only the three streams are kept apart.
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
from rarctool.constants import COMPRESSION_HEADER_SIZE, YAY0_MAGIC
from rarctool.errors import FormatError, InvalidArgumentError
from rarctool.progress import ProgressCallback, noop_progress

logger = logging.getLogger(__name__)

_HEADER_FMT = ">4sIII"


class _Yay0Source:
    mask_bits = 32

    def __init__(self, data: bytes, link_offset: int, chunk_offset: int) -> None:
        self._data = data
        self._mask_pos = COMPRESSION_HEADER_SIZE
        self._link_pos = link_offset
        self._chunk_pos = chunk_offset

    def _take(self, pos: int, size: int, stream: str) -> bytes:
        if pos + size > len(self._data):
            raise FormatError(f"Yay0 {stream} stream truncated at offset 0x{pos:X}")
        return self._data[pos : pos + size]

    def read_mask(self) -> int:
        raw = self._take(self._mask_pos, 4, "mask")
        self._mask_pos += 4
        return int.from_bytes(raw, "big")

    def read_code(self) -> int:
        raw = self._take(self._link_pos, 2, "link")
        self._link_pos += 2
        return int.from_bytes(raw, "big")

    def read_literal(self) -> int:
        value = self._take(self._chunk_pos, 1, "chunk")[0]
        self._chunk_pos += 1
        return value

    read_extension = read_literal


class _Yay0Sink:
    def __init__(self) -> None:
        self.masks: list[int] = []
        self.links = bytearray()
        self.chunks = bytearray()
        self._mask = 0
        self._count = 0

    def _commit(self, is_literal: bool) -> None:
        if is_literal:
            self._mask |= 0x80000000 >> self._count
        self._count += 1
        if self._count == 32:
            self.flush()

    def literal(self, value: int) -> None:
        self.chunks.append(value)
        self._commit(True)

    def reference(self, distance: int, length: int) -> None:
        code, extension = pack_code(distance, length)
        self.links += code.to_bytes(2, "big")
        if extension is not None:
            self.chunks.append(extension)
        self._commit(False)

    def flush(self) -> None:
        if self._count:
            self.masks.append(self._mask)
        self._mask = 0
        self._count = 0


def read_header(data: bytes) -> tuple[int, int, int]:
    """Validate the Yay0 header and return ``(size, link_offset, chunk_offset)``."""
    if len(data) < COMPRESSION_HEADER_SIZE:
        raise FormatError(f"Yay0 header too short: {len(data)} bytes")
    magic, size, link_offset, chunk_offset = struct.unpack_from(_HEADER_FMT, data, 0)
    if magic != YAY0_MAGIC:
        raise FormatError(f"Invalid Yay0 magic: {magic!r}")
    for name, offset in (("link", link_offset), ("chunk", chunk_offset)):
        if not COMPRESSION_HEADER_SIZE <= offset <= len(data):
            raise FormatError(f"Yay0 {name} table offset 0x{offset:X} outside the file")
    return size, link_offset, chunk_offset


def decode(data: bytes) -> bytes:
    """Decompress a complete Yay0 file."""
    size, link_offset, chunk_offset = read_header(data)
    check_declared_size("Yay0", size, len(data) - COMPRESSION_HEADER_SIZE)
    result = expand_tokens(_Yay0Source(data, link_offset, chunk_offset), size)
    logger.debug("Yay0 decoded %d -> %d bytes", len(data), size)
    return result


def encode(data: bytes, *, on_progress: ProgressCallback = noop_progress) -> bytes:
    """Compress *data* into a Yay0 file.

    Raises:
        InvalidArgumentError: If *data* is ``None`` or empty.
    """
    if not data:
        raise InvalidArgumentError("Cannot Yay0-encode an empty buffer")
    src = bytes(data)
    sink = _Yay0Sink()
    compress_tokens(src, sink, phase="yay0", on_progress=on_progress)
    sink.flush()

    link_offset = COMPRESSION_HEADER_SIZE + 4 * len(sink.masks)
    chunk_offset = link_offset + len(sink.links)
    out = bytearray(struct.pack(_HEADER_FMT, YAY0_MAGIC, len(src), link_offset, chunk_offset))
    for mask in sink.masks:
        out += mask.to_bytes(4, "big")
    out += sink.links
    out += sink.chunks
    logger.debug("Yay0 encoded %d -> %d bytes", len(src), len(out))
    return bytes(out)
