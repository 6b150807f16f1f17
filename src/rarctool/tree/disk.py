"""Mirror a :class:`Directory` tree to and from a real folder."""

from __future__ import annotations

import logging
from pathlib import Path

from rarctool.errors import InvalidArgumentError
from rarctool.tree.models import Directory, File

logger = logging.getLogger(__name__)


def import_directory(folder: str | Path) -> Directory:
    """Build a tree from *folder*, named after the folder itself.

    Subdirectories are added before files; each group is sorted by name so
    the resulting layout does not depend on filesystem enumeration order.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise InvalidArgumentError(f"Not an existing directory: {folder}")
    root = Directory(folder.name)
    _import_into(folder, root)
    logger.debug("Imported %s (%d files)", folder, sum(1 for _ in root.iter_files()))
    return root


def _import_into(folder: Path, directory: Directory) -> None:
    entries = sorted(folder.iterdir(), key=lambda p: p.name)
    for sub in entries:
        if sub.is_dir():
            child = Directory(sub.name)
            directory.add_child(child)
            _import_into(sub, child)
    for path in entries:
        if path.is_file():
            directory.add_child(File.from_full_name(path.name, path.read_bytes()))


def export_directory(root: Directory, destination: str | Path) -> Path:
    """Write *root* below *destination* as ``destination/<root.name>/...``.

    Returns the path of the folder created for *root*.
    """
    target = Path(destination) / root.name
    _export_into(root, target)
    logger.debug("Exported %s to %s", root.name, target)
    return target


def _export_into(directory: Directory, target: Path) -> None:
    target.mkdir(parents=True, exist_ok=True)
    for child in directory.children:
        if isinstance(child, Directory):
            _export_into(child, target / child.name)
        else:
            (target / child.full_name).write_bytes(child.data)
