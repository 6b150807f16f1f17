from enum import StrEnum

RARC_MAGIC = b"RARC"
YAZ0_MAGIC = b"Yaz0"
YAY0_MAGIC = b"Yay0"

# The fixed header is followed by an info block of the same size; offsets
# stored in either are relative to the end of the fixed header.
RARC_HEADER_SIZE = 0x20
RARC_INFO_SIZE = 0x20
RARC_NODE_SIZE = 0x10
RARC_ENTRY_SIZE = 0x14
RARC_ALIGNMENT = 0x20

ROOT_NODE_TAG = b"ROOT"
NO_NODE_INDEX = 0xFFFFFFFF
DIRECTORY_ENTRY_ID = 0xFFFF

ENTRY_FLAG_DIRECTORY = 0x02
ENTRY_FLAGS_FILE = 0x11

CURRENT_DIR_NAME = "."
PARENT_DIR_NAME = ".."

COMPRESSION_HEADER_SIZE = 0x10


class DirectoryConvention(StrEnum):
    """How a RARC entry marks itself as a directory link."""

    SENTINEL_ID = "sentinel_id"
    FLAG_BIT = "flag_bit"
    AUTO = "auto"


class Compression(StrEnum):
    NONE = "none"
    YAZ0 = "yaz0"
    YAY0 = "yay0"
