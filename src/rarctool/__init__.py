"""RARC archive codec with Yaz0/Yay0 compression."""

from rarctool.archive import (
    decode_rarc,
    encode_rarc,
    load_archive,
    read_archive_file,
    save_archive,
    write_archive_file,
)
from rarctool.constants import Compression, DirectoryConvention
from rarctool.errors import FormatError, InvalidArgumentError, RarcToolError
from rarctool.tree import Directory, File

__all__ = [
    "Compression",
    "Directory",
    "DirectoryConvention",
    "File",
    "FormatError",
    "InvalidArgumentError",
    "RarcToolError",
    "decode_rarc",
    "encode_rarc",
    "load_archive",
    "read_archive_file",
    "save_archive",
    "write_archive_file",
]
