"""Parser for RARC archives.

``parse_rarc`` reads the header, node table and entry table into immutable
records; ``decode_rarc`` turns those records into a :class:`Directory` tree.
Every offset and count is checked against the buffer, so a corrupt archive
raises :class:`FormatError` instead of producing garbage.
"""

from __future__ import annotations

import logging
import struct

from rarctool.archive.rarc_format import (
    ENTRY_FMT,
    HEADER_FMT,
    NODE_FMT,
    RarcArchive,
    RarcEntry,
    RarcHeader,
    RarcNode,
    hash_name,
)
from rarctool.config import settings
from rarctool.constants import (
    RARC_ENTRY_SIZE,
    RARC_HEADER_SIZE,
    RARC_INFO_SIZE,
    RARC_MAGIC,
    RARC_NODE_SIZE,
    ROOT_NODE_TAG,
    DirectoryConvention,
)
from rarctool.errors import FormatError
from rarctool.tree.models import Directory, File

logger = logging.getLogger(__name__)

# Node records always follow the header and info block.
NODE_TABLE_OFFSET = RARC_HEADER_SIZE + RARC_INFO_SIZE


def parse_rarc_header(data: bytes) -> RarcHeader:
    """Parse the 0x40-byte RARC header and info block."""
    if len(data) < 4 or data[:4] != RARC_MAGIC:
        raise FormatError(f"Invalid RARC magic: {bytes(data[:4])!r}")
    if len(data) < NODE_TABLE_OFFSET:
        raise FormatError(f"Header too short: {len(data)} bytes, need {NODE_TABLE_OFFSET}")
    (
        magic,
        file_size,
        _header_size,
        data_offset,
        node_count,
        node_offset,
        entry_count,
        entry_offset,
        _string_table_size,
        string_table_offset,
    ) = struct.unpack_from(HEADER_FMT, data, 0)

    if file_size != len(data):
        logger.warning(
            "RARC header declares %d bytes but buffer holds %d", file_size, len(data)
        )
    return RarcHeader(
        magic=magic,
        file_size=file_size,
        data_offset=data_offset + RARC_HEADER_SIZE,
        node_count=node_count,
        node_offset=node_offset + RARC_HEADER_SIZE,
        entry_count=entry_count,
        entry_offset=entry_offset + RARC_HEADER_SIZE,
        string_table_offset=string_table_offset + RARC_HEADER_SIZE,
    )


def _read_string(data: bytes, header: RarcHeader, offset: int, encoding: str) -> str:
    start = header.string_table_offset + offset
    if start >= len(data):
        raise FormatError(f"String offset 0x{offset:X} lies outside the archive")
    end = data.find(b"\x00", start)
    if end < 0:
        raise FormatError(f"Unterminated string at string table offset 0x{offset:X}")
    try:
        return data[start:end].decode(encoding)
    except UnicodeDecodeError as exc:
        raise FormatError(f"Name at string table offset 0x{offset:X} is not {encoding}") from exc


def _read_entries(
    data: bytes, header: RarcHeader, first: int, count: int, encoding: str
) -> tuple[RarcEntry, ...]:
    entries: list[RarcEntry] = []
    for i in range(count):
        pos = header.entry_offset + (first + i) * RARC_ENTRY_SIZE
        if pos + RARC_ENTRY_SIZE > len(data):
            raise FormatError(f"Entry {first + i} at 0x{pos:X} lies outside the archive")
        entry_id, name_hash, flags, name_offset, data_offset, data_size = struct.unpack_from(
            ENTRY_FMT, data, pos
        )
        entries.append(
            RarcEntry(
                entry_id=entry_id,
                name_hash=name_hash,
                flags=flags,
                name=_read_string(data, header, name_offset, encoding),
                data_offset=data_offset,
                data_size=data_size,
            )
        )
    return tuple(entries)


def parse_rarc(data: bytes, *, encoding: str | None = None) -> RarcArchive:
    """Parse *data* into header, node and entry records without building a tree."""
    data = bytes(data)
    encoding = encoding or settings.name_encoding
    header = parse_rarc_header(data)

    if header.node_count == 0:
        raise FormatError("Archive has no nodes")
    table_end = NODE_TABLE_OFFSET + header.node_count * RARC_NODE_SIZE
    if table_end > len(data):
        raise FormatError(
            f"Node table truncated: {header.node_count} nodes need {table_end} bytes, "
            f"archive has {len(data)}"
        )

    nodes: list[RarcNode] = []
    for i in range(header.node_count):
        tag, name_offset, name_hash, entry_count, first_entry = struct.unpack_from(
            NODE_FMT, data, NODE_TABLE_OFFSET + i * RARC_NODE_SIZE
        )
        name = _read_string(data, header, name_offset, encoding)
        if hash_name(name) != name_hash:
            logger.warning(
                "Hash for node %r is 0x%04X, header says 0x%04X", name, hash_name(name), name_hash
            )
        nodes.append(
            RarcNode(
                tag=tag,
                name=name,
                name_hash=name_hash,
                first_entry_index=first_entry,
                entries=_read_entries(data, header, first_entry, entry_count, encoding),
            )
        )

    if nodes[0].tag != ROOT_NODE_TAG:
        logger.warning("First node is tagged %r, expected %r", nodes[0].tag, ROOT_NODE_TAG)
    return RarcArchive(header=header, nodes=tuple(nodes))


def decode_rarc(
    data: bytes,
    *,
    convention: DirectoryConvention | None = None,
    encoding: str | None = None,
) -> Directory:
    """Decode a RARC archive into a directory tree rooted at the first node.

    *convention* selects how directory-link entries are recognised
    (sentinel id 0xFFFF, flag bit 0x02, or either); it defaults to
    ``settings.directory_convention``.

    Raises:
        FormatError: On a bad magic, an out-of-range offset or an impossible
            directory link.
    """
    data = bytes(data)
    convention = convention or settings.directory_convention
    archive = parse_rarc(data, encoding=encoding)
    header = archive.header

    # Every node gets its directory up front: links may point forward.
    directories = [Directory(node.name) for node in archive.nodes]
    attached: set[int] = set()

    for index, node in enumerate(archive.nodes):
        current = directories[index]
        for entry in node.entries:
            if entry.is_special:
                continue

            if entry.is_directory(convention):
                target = entry.data_offset
                if target >= len(directories):
                    raise FormatError(
                        f"Entry {entry.name!r} links to node {target}, "
                        f"archive has {len(directories)}"
                    )
                if target == 0 or target == index or target in attached:
                    raise FormatError(f"Entry {entry.name!r} creates a directory cycle")
                attached.add(target)
                # Directory links carry no file id; node_id stays None.
                current.add_child(directories[target])
                continue

            start = header.data_offset + entry.data_offset
            end = start + entry.data_size
            if end > len(data):
                raise FormatError(
                    f"File {entry.name!r} data 0x{start:X}..0x{end:X} lies outside the archive"
                )
            current.add_child(File.from_full_name(entry.name, data[start:end], entry.entry_id))

    logger.debug(
        "Decoded RARC %r: %d nodes, %d entries",
        archive.nodes[0].name,
        len(archive.nodes),
        sum(len(n.entries) for n in archive.nodes),
    )
    return directories[0]
