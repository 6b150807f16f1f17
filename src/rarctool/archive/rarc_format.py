"""Binary records shared by the RARC parser and writer.

Layout (big-endian, offsets marked * are stored relative to 0x20)::

    0x00  "RARC"
    0x04  u32 total file size
    0x08  u32 header size (0x20)
    0x0C  u32 data section offset*
    0x10  16 bytes unused
    0x20  u32 node count
    0x24  u32 node table offset*
    0x28  u32 entry count
    0x2C  u32 entry table offset*
    0x30  u32 string table size (unused)
    0x34  u32 string table offset*
    0x38  8 bytes unused
    0x40  node table, entry table, string table, file data (each 32-byte aligned)
"""

from __future__ import annotations

from dataclasses import dataclass

from rarctool.constants import (
    CURRENT_DIR_NAME,
    DIRECTORY_ENTRY_ID,
    ENTRY_FLAG_DIRECTORY,
    PARENT_DIR_NAME,
    RARC_ALIGNMENT,
    DirectoryConvention,
)
from rarctool.errors import InvalidArgumentError

HEADER_FMT = ">4s3I16x6I8x"
NODE_FMT = ">4sIHHI"
ENTRY_FMT = ">HHBxHII4x"

FILE_SIZE_FIELD = 0x04
DATA_OFFSET_FIELD = 0x0C


@dataclass(frozen=True, slots=True)
class RarcHeader:
    magic: bytes
    file_size: int
    data_offset: int  # absolute
    node_count: int
    node_offset: int  # absolute
    entry_count: int
    entry_offset: int  # absolute
    string_table_offset: int  # absolute


@dataclass(frozen=True, slots=True)
class RarcEntry:
    entry_id: int
    name_hash: int
    flags: int
    name: str
    data_offset: int  # file: offset into the data section; directory: node index
    data_size: int

    @property
    def is_special(self) -> bool:
        """True for the synthesized "." and ".." entries."""
        return self.name in (CURRENT_DIR_NAME, PARENT_DIR_NAME)

    def is_directory(self, convention: DirectoryConvention) -> bool:
        by_id = self.entry_id == DIRECTORY_ENTRY_ID
        by_flag = bool(self.flags & ENTRY_FLAG_DIRECTORY)
        if convention is DirectoryConvention.SENTINEL_ID:
            return by_id
        if convention is DirectoryConvention.FLAG_BIT:
            return by_flag
        return by_id or by_flag


@dataclass(frozen=True, slots=True)
class RarcNode:
    tag: bytes
    name: str
    name_hash: int
    first_entry_index: int
    entries: tuple[RarcEntry, ...]


@dataclass(frozen=True, slots=True)
class RarcArchive:
    header: RarcHeader
    nodes: tuple[RarcNode, ...]


def align(value: int, alignment: int = RARC_ALIGNMENT) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


def hash_name(name: str) -> int:
    """Compute the 16-bit name hash stored beside every node and entry.

    The multiplier depends on the length: 1 for an empty name, 2 for a single
    character, 3 otherwise.

    >>> hash_name("")
    0
    >>> hash_name(".")
    46
    >>> hash_name("..")
    184
    """
    if len(name) + 1 < 2:
        multiplier = 1
    elif len(name) + 1 == 2:
        multiplier = 2
    else:
        multiplier = 3
    value = 0
    for char in name:
        value = (value * multiplier + ord(char)) & 0xFFFF
    return value


def node_tag(name: str, encoding: str) -> bytes:
    """Type tag for a non-root directory: first 3 characters upper-cased, space padded."""
    return name[:3].upper().encode(encoding, errors="replace")[:4].ljust(4, b" ")


class StringTable:
    """Append-only NUL-terminated name pool with "." at 0 and ".." at 2.

    A name is only stored once; re-adding it returns the first offset.
    """

    def __init__(self, encoding: str) -> None:
        self.encoding = encoding
        self._buffer = bytearray()
        self._offsets: dict[bytes, int] = {}
        self.add(CURRENT_DIR_NAME)
        self.add(PARENT_DIR_NAME)

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, name: str) -> int:
        try:
            raw = name.encode(self.encoding)
        except UnicodeEncodeError as exc:
            raise InvalidArgumentError(
                f"Name {name!r} cannot be encoded as {self.encoding}"
            ) from exc
        offset = self._offsets.get(raw)
        if offset is None:
            offset = len(self._buffer)
            self._offsets[raw] = offset
            self._buffer += raw + b"\x00"
        return offset

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)
