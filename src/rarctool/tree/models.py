"""Format-agnostic in-memory directory tree.

Every codec decodes into and encodes from these two node types.  Child order
is significant: the RARC encoder lays entries out in exactly this order
(files first, then directories, each group in child order).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from rarctool.errors import InvalidArgumentError


def split_file_name(full_name: str) -> tuple[str, str]:
    """Split *full_name* at its final period into ``(name, extension)``.

    The extension keeps its leading period.

    >>> split_file_name("model.bdl")
    ('model', '.bdl')
    >>> split_file_name("archive.tar.gz")
    ('archive.tar', '.gz')
    >>> split_file_name("README")
    ('README', '')
    """
    dot = full_name.rfind(".")
    if dot < 0:
        return full_name, ""
    return full_name[:dot], full_name[dot:]


def _normalize_extension(extension: str) -> str:
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension.casefold()


@dataclass(slots=True)
class File:
    name: str
    extension: str
    data: bytes
    node_id: int | None = field(default=None, compare=False)

    @classmethod
    def from_full_name(cls, full_name: str, data: bytes, node_id: int | None = None) -> File:
        name, extension = split_file_name(full_name)
        return cls(name=name, extension=extension, data=data, node_id=node_id)

    @property
    def full_name(self) -> str:
        return f"{self.name}{self.extension}"

    def __repr__(self) -> str:
        return f"File({self.full_name!r}, {len(self.data)} bytes)"


@dataclass(slots=True)
class Directory:
    name: str
    children: list[File | Directory] = field(default_factory=list)
    node_id: int | None = field(default=None, compare=False)

    def __repr__(self) -> str:
        return f"Directory({self.name!r}, {len(self.children)} children)"

    @property
    def files(self) -> list[File]:
        return [c for c in self.children if isinstance(c, File)]

    @property
    def directories(self) -> list[Directory]:
        return [c for c in self.children if isinstance(c, Directory)]

    def add_child(self, node: File | Directory) -> File | Directory:
        self.children.append(node)
        return node

    def remove_child(self, node: File | Directory) -> bool:
        """Remove *node* (matched by identity). Returns ``False`` if absent."""
        for i, child in enumerate(self.children):
            if child is node:
                del self.children[i]
                return True
        return False

    def get_child(self, name: str) -> File | Directory | None:
        """Return the direct child called *name*; files match on their full name."""
        for child in self.children:
            child_name = child.full_name if isinstance(child, File) else child.name
            if child_name == name:
                return child
        return None

    def get_file_at_path(self, relative_path: str) -> File | None:
        """Resolve a ``/`` or ``\\`` separated path below this directory to a file."""
        *folders, file_name = relative_path.replace("\\", "/").split("/")

        current: Directory = self
        for folder in folders:
            nxt = next((d for d in current.directories if d.name == folder), None)
            if nxt is None:
                return None
            current = nxt
        return next((f for f in current.files if f.full_name == file_name), None)

    def walk(self) -> Iterator[File | Directory]:
        """Yield every descendant depth-first, in child order."""
        for child in self.children:
            yield child
            if isinstance(child, Directory):
                yield from child.walk()

    def iter_files(self) -> Iterator[File]:
        for node in self.walk():
            if isinstance(node, File):
                yield node

    def find_by_extension(self, *extensions: str) -> list[File]:
        """Return all files below this directory whose extension matches any of *extensions*.

        Matching is case-insensitive and a missing leading period is tolerated
        (``"arc"`` and ``".ARC"`` are equivalent).

        Raises:
            InvalidArgumentError: If no extension is given.
        """
        if not extensions:
            raise InvalidArgumentError("At least one extension must be specified")
        wanted = {_normalize_extension(ext) for ext in extensions}
        return [f for f in self.iter_files() if f.extension.casefold() in wanted]

    def find_by_id(self, node_id: int) -> File | Directory | None:
        """Return the first descendant (depth-first) carrying *node_id*, or ``None``."""
        for node in self.walk():
            if node.node_id == node_id:
                return node
        return None
