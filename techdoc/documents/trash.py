"""
Trash path transforms for soft-deleted documents.

A deleted document's file moves from ``<root>/<rel>`` to
``<trash_root>/<rel>@<stamp>``, where ``<stamp>`` is the deletion time in
UTC as ``%Y%m%d%H%M%S%f``. The suffix keeps repeated delete/undelete cycles
of same-named files apart.

Law: ``from_trash_path(to_trash_path(p, t)) == p`` for every live path p.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from techdoc.engine.errors import TrashPathFormatError

STAMP_FORMAT = "%Y%m%d%H%M%S%f"

_SUFFIXED_NAME = re.compile(r"(?P<name>.+)@(?P<stamp>\d+)")


def format_stamp(when: datetime) -> str:
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime(STAMP_FORMAT)


class TrashManager:
    """Pure path arithmetic between the live tree and the trash subtree."""

    def __init__(self, root: Union[str, Path], trash_root: Union[str, Path]):
        self._root = Path(root)
        self._trash_root = Path(trash_root)

    @property
    def trash_root(self) -> Path:
        return self._trash_root

    def is_trash_path(self, path: Union[str, Path]) -> bool:
        return self._trash_root in Path(path).parents

    def to_trash_path(self, live_path: Union[str, Path], when: datetime) -> Path:
        return self._suffixed(live_path, format_stamp(when))

    def from_trash_path(self, trash_path: Union[str, Path]) -> Path:
        path = Path(trash_path)
        match = _SUFFIXED_NAME.fullmatch(path.name)
        if match is None or not self.is_trash_path(path):
            raise TrashPathFormatError(str(trash_path))
        relative = path.with_name(match.group("name")).relative_to(self._trash_root)
        return self._root / relative

    def stamp_of(self, trash_path: Union[str, Path]) -> str:
        match = _SUFFIXED_NAME.fullmatch(Path(trash_path).name)
        if match is None:
            raise TrashPathFormatError(str(trash_path))
        return match.group("stamp")

    def relocate(self, trash_path: Union[str, Path], new_live_path: Union[str, Path]) -> Path:
        """Trash path for *new_live_path* that keeps the stamp of *trash_path*."""
        return self._suffixed(new_live_path, self.stamp_of(trash_path))

    def _suffixed(self, live_path: Union[str, Path], stamp: str) -> Path:
        live_path = Path(live_path)
        if self.is_trash_path(live_path):
            raise ValueError(f"{live_path} is already inside the trash")
        target = self._trash_root / live_path.relative_to(self._root)
        return target.with_name(f"{target.name}@{stamp}")
