"""Writer for RARC archives.

The tree is flattened into an arena of node records and a single entry
table.  Node indices are assigned when a directory's link entry is emitted,
before recursing, so parent and self references are plain integers.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

from rarctool.archive.rarc_format import (
    DATA_OFFSET_FIELD,
    ENTRY_FMT,
    FILE_SIZE_FIELD,
    HEADER_FMT,
    NODE_FMT,
    StringTable,
    align,
    hash_name,
    node_tag,
)
from rarctool.config import settings
from rarctool.constants import (
    CURRENT_DIR_NAME,
    DIRECTORY_ENTRY_ID,
    ENTRY_FLAG_DIRECTORY,
    ENTRY_FLAGS_FILE,
    NO_NODE_INDEX,
    PARENT_DIR_NAME,
    RARC_ENTRY_SIZE,
    RARC_HEADER_SIZE,
    RARC_INFO_SIZE,
    RARC_MAGIC,
    RARC_NODE_SIZE,
    ROOT_NODE_TAG,
)
from rarctool.errors import InvalidArgumentError
from rarctool.tree.models import Directory

logger = logging.getLogger(__name__)

_U16_MAX = 0xFFFF


@dataclass(slots=True)
class _NodeRecord:
    directory: Directory
    tag: bytes
    first_entry_index: int = 0
    entry_count: int = 0


@dataclass(slots=True)
class _EntryRecord:
    entry_id: int
    name: str
    flags: int
    value: int  # data offset for files, node index for directories
    size: int


class _ArchiveBuilder:
    def __init__(self, root: Directory, encoding: str) -> None:
        self.encoding = encoding
        self.nodes: list[_NodeRecord] = []
        self.entries: list[_EntryRecord] = []
        self.file_data = bytearray()
        self._next_file_id = 0

        root_index = self._add_node(root, ROOT_NODE_TAG)
        self._emit_directory(root_index, None)

    def _add_node(self, directory: Directory, tag: bytes) -> int:
        self.nodes.append(_NodeRecord(directory=directory, tag=tag))
        return len(self.nodes) - 1

    def _emit_directory(self, index: int, parent_index: int | None) -> None:
        record = self.nodes[index]
        directory = record.directory
        record.first_entry_index = len(self.entries)

        for file in directory.files:
            if self._next_file_id >= DIRECTORY_ENTRY_ID:
                raise InvalidArgumentError("Too many files for a RARC archive")
            self.entries.append(
                _EntryRecord(
                    entry_id=self._next_file_id,
                    name=file.full_name,
                    flags=ENTRY_FLAGS_FILE,
                    value=len(self.file_data),
                    size=len(file.data),
                )
            )
            self.file_data += file.data
            self._next_file_id += 1

        child_indices: list[int] = []
        for subdir in directory.directories:
            child_index = self._add_node(subdir, node_tag(subdir.name, self.encoding))
            child_indices.append(child_index)
            self.entries.append(self._link(subdir.name, child_index))

        self.entries.append(self._link(CURRENT_DIR_NAME, index))
        self.entries.append(
            self._link(PARENT_DIR_NAME, NO_NODE_INDEX if parent_index is None else parent_index)
        )
        record.entry_count = len(self.entries) - record.first_entry_index
        if record.entry_count > _U16_MAX:
            raise InvalidArgumentError(f"Directory {directory.name!r} has too many entries")

        for subdir_index in child_indices:
            self._emit_directory(subdir_index, index)

    @staticmethod
    def _link(name: str, node_index: int) -> _EntryRecord:
        return _EntryRecord(
            entry_id=DIRECTORY_ENTRY_ID,
            name=name,
            flags=ENTRY_FLAG_DIRECTORY,
            value=node_index,
            size=RARC_NODE_SIZE,
        )

    def serialize(self) -> bytes:
        strings = StringTable(self.encoding)
        node_names = [strings.add(node.directory.name) for node in self.nodes]
        entry_names = [strings.add(entry.name) for entry in self.entries]
        if entry_names and max(entry_names) > _U16_MAX:
            raise InvalidArgumentError("String table too large for 16-bit entry name offsets")

        node_table = bytearray()
        for record, name_offset in zip(self.nodes, node_names, strict=True):
            node_table += struct.pack(
                NODE_FMT,
                record.tag,
                name_offset,
                hash_name(record.directory.name),
                record.entry_count,
                record.first_entry_index,
            )

        entry_table = bytearray()
        for entry, name_offset in zip(self.entries, entry_names, strict=True):
            entry_table += struct.pack(
                ENTRY_FMT,
                entry.entry_id,
                hash_name(entry.name),
                entry.flags,
                name_offset,
                entry.value,
                entry.size,
            )

        base = RARC_HEADER_SIZE
        node_offset = base + RARC_INFO_SIZE
        entry_offset = node_offset + align(len(node_table))
        string_offset = entry_offset + align(len(entry_table))

        out = bytearray(
            struct.pack(
                HEADER_FMT,
                RARC_MAGIC,
                0,  # total size, patched below
                RARC_HEADER_SIZE,
                0,  # data offset, patched below
                len(self.nodes),
                node_offset - base,
                len(self.entries),
                entry_offset - base,
                0,
                string_offset - base,
            )
        )
        for section in (node_table, entry_table, strings.to_bytes(), self.file_data):
            out += section
            out += bytes(align(len(out)) - len(out))

        data_offset = string_offset + align(len(strings))
        struct.pack_into(">I", out, FILE_SIZE_FIELD, len(out))
        struct.pack_into(">I", out, DATA_OFFSET_FIELD, data_offset - base)
        return bytes(out)


def encode_rarc(root: Directory, *, encoding: str | None = None) -> bytes:
    """Encode the tree below *root* as a RARC archive.

    Inside each directory, file entries come first and directory links
    second, each group in child order, followed by "." and "..".

    Raises:
        InvalidArgumentError: If *root* is not a :class:`Directory`, or a
            name cannot be represented in the archive.
    """
    if not isinstance(root, Directory):
        raise InvalidArgumentError(f"RARC root must be a Directory, got {type(root).__name__}")
    builder = _ArchiveBuilder(root, encoding or settings.name_encoding)
    result = builder.serialize()
    logger.debug(
        "Encoded RARC %r: %d nodes, %d entries, %d bytes",
        root.name,
        len(builder.nodes),
        len(builder.entries),
        len(result),
    )
    return result
