from rarctool.archive.handler import (
    compress,
    decompress,
    detect_compression,
    load_archive,
    read_archive_file,
    save_archive,
    write_archive_file,
)
from rarctool.archive.rarc_parser import decode_rarc, parse_rarc
from rarctool.archive.rarc_writer import encode_rarc

__all__ = [
    "compress",
    "decode_rarc",
    "decompress",
    "detect_compression",
    "encode_rarc",
    "load_archive",
    "parse_rarc",
    "read_archive_file",
    "save_archive",
    "write_archive_file",
]
