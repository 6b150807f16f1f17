"""Tests for RARC archive parsing."""

import logging
import struct

import pytest

from rarctool.archive.rarc_format import ENTRY_FMT, HEADER_FMT, NODE_FMT, align, hash_name
from rarctool.archive.rarc_parser import decode_rarc, parse_rarc, parse_rarc_header
from rarctool.archive.rarc_writer import encode_rarc
from rarctool.constants import DirectoryConvention
from rarctool.errors import FormatError
from rarctool.tree.models import Directory, File

# Offsets inside the archive produced by encode_rarc(sample_tree):
# nodes at 0x40, entries at 0x60, strings at 0x100, file data at 0x120.
SUB_LINK_ENTRY = 0x60 + 2 * 0x14
A_BIN_ENTRY = 0x60


def _pad(section: bytes) -> bytes:
    return section + bytes(align(len(section)) - len(section))


def build_rarc_binary(
    nodes: list[tuple],
    entries: list[tuple],
    strings: bytes,
    data: bytes = b"",
    *,
    magic: bytes = b"RARC",
) -> bytes:
    """Build a RARC file from raw node/entry tuples.

    Node tuples are ``(tag, name_offset, hash, entry_count, first_entry)``;
    entry tuples are ``(id, hash, flags, name_offset, value, size)``.
    """
    node_table = b"".join(struct.pack(NODE_FMT, *n) for n in nodes)
    entry_table = b"".join(struct.pack(ENTRY_FMT, *e) for e in entries)
    node_offset = 0x40
    entry_offset = node_offset + align(len(node_table))
    string_offset = entry_offset + align(len(entry_table))
    data_offset = string_offset + align(len(strings))
    header = struct.pack(
        HEADER_FMT,
        magic,
        data_offset + len(data),
        0x20,
        data_offset - 0x20,
        len(nodes),
        node_offset - 0x20,
        len(entries),
        entry_offset - 0x20,
        len(strings),
        string_offset - 0x20,
    )
    return header + _pad(node_table) + _pad(entry_table) + _pad(strings) + data


def build_flag_bit_archive() -> bytes:
    """root/data/x.bin where the link to "data" carries a file-style id and flag 0x02."""
    strings = b".\x00..\x00root\x00data\x00x.bin\x00"
    nodes = [
        (b"ROOT", 5, hash_name("root"), 3, 0),
        (b"DAT ", 10, hash_name("data"), 3, 3),
    ]
    entries = [
        (0x0001, hash_name("data"), 0x02, 10, 1, 0x10),
        (0xFFFF, hash_name("."), 0x02, 0, 0, 0x10),
        (0xFFFF, hash_name(".."), 0x02, 2, 0xFFFFFFFF, 0x10),
        (0x0000, hash_name("x.bin"), 0x11, 15, 0, 4),
        (0xFFFF, hash_name("."), 0x02, 0, 1, 0x10),
        (0xFFFF, hash_name(".."), 0x02, 2, 0, 0x10),
    ]
    return build_rarc_binary(nodes, entries, strings, b"XBIN")


def patch_u32(data: bytes, offset: int, value: int) -> bytes:
    buf = bytearray(data)
    struct.pack_into(">I", buf, offset, value)
    return bytes(buf)


class TestParseHeader:
    def test_offsets_are_rebased(self, sample_tree):
        header = parse_rarc_header(encode_rarc(sample_tree))
        assert header.magic == b"RARC"
        assert header.node_offset == 0x40
        assert header.entry_offset == 0x60
        assert header.string_table_offset == 0x100
        assert header.data_offset == 0x120
        assert header.node_count == 2
        assert header.entry_count == 8

    def test_invalid_magic(self):
        data = build_rarc_binary([(b"ROOT", 5, 0, 0, 0)], [], b".\x00..\x00r\x00", magic=b"NOPE")
        with pytest.raises(FormatError, match="Invalid RARC magic"):
            parse_rarc_header(data)

    def test_empty_input(self):
        with pytest.raises(FormatError, match="Invalid RARC magic"):
            parse_rarc_header(b"")

    def test_too_short(self):
        with pytest.raises(FormatError, match="Header too short"):
            parse_rarc_header(b"RARC" + bytes(20))

    def test_size_mismatch_is_logged(self, sample_tree, caplog):
        data = encode_rarc(sample_tree) + bytes(0x20)
        with caplog.at_level(logging.WARNING):
            parse_rarc_header(data)
        assert "declares" in caplog.text


class TestParseRarc:
    def test_raw_records(self, sample_tree):
        archive = parse_rarc(encode_rarc(sample_tree))
        root, sub = archive.nodes
        assert root.tag == b"ROOT"
        assert root.name == "archive"
        assert [e.name for e in root.entries] == ["a.bin", "c", "sub", ".", ".."]
        assert [e.name for e in sub.entries] == ["b.txt", ".", ".."]
        assert sub.first_entry_index == 5

    def test_no_nodes(self):
        data = build_rarc_binary([], [], b".\x00..\x00")
        with pytest.raises(FormatError, match="no nodes"):
            parse_rarc(data)

    def test_truncated_node_table(self, sample_tree):
        with pytest.raises(FormatError, match="Node table truncated"):
            parse_rarc(encode_rarc(sample_tree)[:0x50])

    def test_entry_table_out_of_range(self):
        strings = b".\x00..\x00root\x00"
        data = build_rarc_binary([(b"ROOT", 5, hash_name("root"), 1, 40)], [], strings)
        with pytest.raises(FormatError, match="Entry 40 at 0x380"):
            parse_rarc(data)

    def test_string_offset_out_of_range(self):
        data = build_rarc_binary([(b"ROOT", 0x400, 0, 0, 0)], [], b".\x00..\x00")
        with pytest.raises(FormatError, match="String offset"):
            parse_rarc(data)

    def test_hash_mismatch_is_logged(self, caplog):
        data = build_rarc_binary([(b"ROOT", 5, 0x1234, 0, 0)], [], b".\x00..\x00root\x00")
        with caplog.at_level(logging.WARNING):
            parse_rarc(data)
        assert "Hash for node 'root'" in caplog.text


class TestDecodeRarc:
    def test_single_empty_root(self):
        strings = b".\x00..\x00root\x00"
        data = build_rarc_binary([(b"ROOT", 5, hash_name("root"), 0, 0)], [], strings)

        root = decode_rarc(data)

        assert root.name == "root"
        assert root.children == []

    def test_sample_archive(self, sample_tree):
        root = decode_rarc(encode_rarc(sample_tree))

        assert [c.name for c in root.children] == ["a", "c", "sub"]
        a_bin, c, sub = root.children
        assert (a_bin.extension, a_bin.data, a_bin.node_id) == (".bin", b"AAA", 0)
        assert (c.extension, c.data, c.node_id) == ("", b"", 1)
        assert isinstance(sub, Directory)
        assert sub.node_id is None
        assert sub.children == [File("b", ".txt", b"hello")]
        assert root.find_by_id(2).full_name == "b.txt"

    def test_sentinel_id_never_matches_a_directory(self, sample_tree):
        root = decode_rarc(encode_rarc(sample_tree))
        assert root.find_by_id(0xFFFF) is None

    def test_flag_bit_convention(self):
        expected = Directory("root", [Directory("data", [File("x", ".bin", b"XBIN")])])
        data = build_flag_bit_archive()

        assert decode_rarc(data, convention=DirectoryConvention.FLAG_BIT) == expected
        assert decode_rarc(data, convention=DirectoryConvention.AUTO) == expected
        assert decode_rarc(data).children[0].node_id is None

    def test_flag_bit_archive_misread_as_sentinel(self):
        # "data" is then a 16-byte file at offset 1 of a 4-byte data section.
        with pytest.raises(FormatError, match="lies outside the archive"):
            decode_rarc(build_flag_bit_archive(), convention=DirectoryConvention.SENTINEL_ID)

    def test_sentinel_convention_ignores_flag_bit(self, sample_tree):
        data = bytearray(encode_rarc(sample_tree))
        data[SUB_LINK_ENTRY + 4] = 0x00  # clear the directory flag, keep id 0xFFFF

        sentinel = decode_rarc(bytes(data), convention=DirectoryConvention.SENTINEL_ID)
        flag_bit = decode_rarc(bytes(data), convention=DirectoryConvention.FLAG_BIT)

        assert isinstance(sentinel.get_child("sub"), Directory)
        assert isinstance(flag_bit.get_child("sub"), File)

    def test_link_to_missing_node(self, sample_tree):
        data = patch_u32(encode_rarc(sample_tree), SUB_LINK_ENTRY + 8, 5)
        with pytest.raises(FormatError, match="links to node 5"):
            decode_rarc(data)

    def test_link_back_to_root(self, sample_tree):
        data = patch_u32(encode_rarc(sample_tree), SUB_LINK_ENTRY + 8, 0)
        with pytest.raises(FormatError, match="cycle"):
            decode_rarc(data)

    def test_node_attached_twice(self):
        tree = Directory("r", [Directory("a"), Directory("b")])
        encoded = encode_rarc(tree)
        # Root entries: a, b, ".", ".."; point "b" at node 1 as well.
        b_link = parse_rarc_header(encoded).entry_offset + 0x14
        data = patch_u32(encoded, b_link + 8, 1)
        with pytest.raises(FormatError, match="cycle"):
            decode_rarc(data)

    def test_file_data_out_of_range(self, sample_tree):
        data = patch_u32(encode_rarc(sample_tree), A_BIN_ENTRY + 12, 0x1000)
        with pytest.raises(FormatError, match="lies outside the archive"):
            decode_rarc(data)

    def test_shift_jis_names(self):
        tree = Directory("ルート", [File("データ", ".bin", b"1")])
        assert decode_rarc(encode_rarc(tree)) == tree

    def test_explicit_encoding(self):
        tree = Directory("root", [File("café", ".txt", b"x")])
        data = encode_rarc(tree, encoding="latin-1")
        assert decode_rarc(data, encoding="latin-1") == tree
