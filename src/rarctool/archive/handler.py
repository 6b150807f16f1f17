"""Load and save archives regardless of the compression wrapper around them.

The leading four bytes decide how a file is unwrapped: ``Yaz0`` and ``Yay0``
are decompressed, anything else is passed through untouched before the RARC
decoder sees it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rarctool.archive.rarc_parser import decode_rarc
from rarctool.archive.rarc_writer import encode_rarc
from rarctool.compression import yay0, yaz0
from rarctool.config import settings
from rarctool.constants import YAY0_MAGIC, YAZ0_MAGIC, Compression, DirectoryConvention
from rarctool.progress import ProgressCallback, noop_progress
from rarctool.tree.models import Directory

logger = logging.getLogger(__name__)

_MAGIC_TO_COMPRESSION = {
    YAZ0_MAGIC: Compression.YAZ0,
    YAY0_MAGIC: Compression.YAY0,
}


def detect_compression(data: bytes) -> Compression:
    """Identify the compression wrapper from the leading magic."""
    return _MAGIC_TO_COMPRESSION.get(bytes(data[:4]), Compression.NONE)


def decompress(data: bytes) -> bytes:
    """Strip a Yaz0/Yay0 wrapper if present; other data is returned unchanged."""
    compression = detect_compression(data)
    if compression is Compression.YAZ0:
        return yaz0.decode(data)
    if compression is Compression.YAY0:
        return yay0.decode(data)
    return bytes(data)


def compress(
    data: bytes,
    compression: Compression,
    *,
    on_progress: ProgressCallback = noop_progress,
) -> bytes:
    """Wrap *data* with the requested compression (``NONE`` returns it unchanged)."""
    compression = Compression(compression)
    if compression is Compression.YAZ0:
        return yaz0.encode(data, on_progress=on_progress)
    if compression is Compression.YAY0:
        return yay0.encode(data, on_progress=on_progress)
    return bytes(data)


def load_archive(
    data: bytes,
    *,
    convention: DirectoryConvention | None = None,
    encoding: str | None = None,
) -> Directory:
    """Decompress (if needed) and decode an archive into a tree."""
    compression = detect_compression(data)
    if compression is not Compression.NONE:
        logger.info("Archive is %s-compressed, decompressing", compression)
    return decode_rarc(decompress(data), convention=convention, encoding=encoding)


def save_archive(
    root: Directory,
    compression: Compression | None = None,
    *,
    encoding: str | None = None,
    on_progress: ProgressCallback = noop_progress,
) -> bytes:
    """Encode *root* as RARC and wrap it; *compression* defaults to the configured one."""
    compression = Compression(compression or settings.default_compression)
    raw = encode_rarc(root, encoding=encoding)
    return compress(raw, compression, on_progress=on_progress)


def read_archive_file(
    path: str | Path,
    *,
    convention: DirectoryConvention | None = None,
    encoding: str | None = None,
) -> Directory:
    """Read an archive from disk. Raises ``FileNotFoundError`` for a missing file."""
    path = Path(path)
    root = load_archive(path.read_bytes(), convention=convention, encoding=encoding)
    logger.info("Loaded %s (root %r)", path, root.name)
    return root


def write_archive_file(
    path: str | Path,
    root: Directory,
    compression: Compression | None = None,
    *,
    encoding: str | None = None,
    on_progress: ProgressCallback = noop_progress,
) -> int:
    """Encode *root* and write it to *path*. Returns the number of bytes written."""
    path = Path(path)
    payload = save_archive(root, compression, encoding=encoding, on_progress=on_progress)
    path.write_bytes(payload)
    logger.info("Wrote %s (%d bytes)", path, len(payload))
    return len(payload)
