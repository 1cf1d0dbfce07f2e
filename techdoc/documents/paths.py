"""
Path translation and name validation for the document tree.

A document's logical address is (folder, name, type). Its physical address is
``root/<folder segments>/<name>.<type>``. Folders use ``/`` as the segment
separator regardless of the host OS.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, NamedTuple, Optional, Union

from techdoc.engine.errors import InvalidNameError

# NTFS file name restrictions, a superset of the POSIX ones ("/" and NUL).
INVALID_NAME_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))

RESERVED_NAMES = frozenset({".", ".."})


class LogicalName(NamedTuple):
    name: str
    folder: str
    type: str


def check_name(value: Optional[str]) -> str:
    """Raise InvalidNameError unless *value* is a usable file or folder name."""
    if not value or value in RESERVED_NAMES or any(c in INVALID_NAME_CHARS for c in value):
        raise InvalidNameError(value)
    return value


def check_folder(value: Optional[str]) -> str:
    """
    Validate a folder argument and return it normalized ("a/b", no outer slashes).

    An empty or None folder is the root. Every segment must pass check_name,
    so empty segments ("a//b") and parent references ("..") are rejected.
    """
    if not value:
        return ""
    segments = value.strip("/").split("/")
    for segment in segments:
        if not segment:
            raise InvalidNameError(value)
        try:
            check_name(segment)
        except InvalidNameError:
            raise InvalidNameError(value) from None
    return "/".join(segments)


def normalize_type(value: Optional[str]) -> str:
    """Document types are stored without the leading dot."""
    return (value or "").lstrip(".")


class PathTranslator:
    """Maps logical (folder, name, type) addresses to files under *root* and back."""

    def __init__(self, root: Union[str, Path], reserved: Iterable[Union[str, Path]] = ()):
        self._root = Path(root)
        self._reserved = tuple(Path(p) for p in reserved)

    @property
    def root(self) -> Path:
        return self._root

    def physical_path(self, folder: Optional[str], name: str, type: Optional[str]) -> Path:
        segments = [s for s in (folder or "").split("/") if s]
        ext = normalize_type(type)
        filename = f"{name}.{ext}" if ext else name
        return self._root.joinpath(*segments, filename)

    def logical_from_physical(self, path: Union[str, Path]) -> LogicalName:
        relative = Path(path).relative_to(self._root)
        folder = relative.parent.as_posix()
        return LogicalName(
            name=relative.stem,
            folder="" if folder == "." else folder,
            type=normalize_type(relative.suffix),
        )

    def is_reserved(self, path: Union[str, Path]) -> bool:
        """True for the index file itself and anything inside the trash folder."""
        path = Path(path)
        for reserved in self._reserved:
            if path == reserved or reserved in path.parents:
                return True
        return False
