"""Stateless symlink operations used by profiles and drift repair.

The platform strategy (atomic rename on POSIX, remove-then-recreate on
Windows) is chosen once at import time; see ``ATOMIC_SWAP``.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from ccp.errors import NotASymlinkError, PathError

if sys.platform == "win32":
    from ccp.symlink._windows import (
        ATOMIC_SWAP,
        create_symlink,
        remove_symlink,
        swap_symlink,
    )
else:
    from ccp.symlink._posix import (
        ATOMIC_SWAP,
        create_symlink,
        remove_symlink,
        swap_symlink,
    )

logger = logging.getLogger(__name__)


@dataclass
class SymlinkInfo:
    """Observed state of a path.

    Attributes:
        path: The inspected path
        exists: True if anything (file, directory or link) is at ``path``
        is_symlink: True if ``path`` itself is a symlink
        target: Link target, resolved against the link's parent when relative
        is_broken: True if the link exists but its target cannot be stat'ed
    """

    path: Path
    exists: bool = False
    is_symlink: bool = False
    target: Path | None = None
    is_broken: bool = False


class SymlinkManager:
    """Create, inspect, validate and swap symlinks."""

    atomic_swap: bool = ATOMIC_SWAP

    def create(self, link_path: Path, target: Path) -> None:
        """Create a symlink at ``link_path`` pointing at ``target``."""
        link_path, target = Path(link_path), Path(target)
        try:
            create_symlink(link_path, target)
        except OSError as exc:
            raise PathError("symlink", link_path, exc) from exc
        logger.debug("Linked %s -> %s", link_path, target)

    def remove(self, link_path: Path) -> None:
        """Remove a symlink, never its target.

        A missing path is a no-op. Raises :class:`NotASymlinkError` when
        something other than a symlink is at ``link_path``.
        """
        link_path = Path(link_path)
        if not os.path.lexists(link_path):
            return
        if not link_path.is_symlink():
            raise NotASymlinkError("remove", link_path)
        try:
            remove_symlink(link_path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PathError("remove", link_path, exc) from exc
        logger.debug("Removed link %s", link_path)

    def info(self, path: Path) -> SymlinkInfo:
        path = Path(path)
        result = SymlinkInfo(path=path)
        if not os.path.lexists(path):
            return result

        result.exists = True
        result.is_symlink = path.is_symlink()
        if not result.is_symlink:
            return result

        try:
            raw_target = Path(os.readlink(path))
        except OSError as exc:
            raise PathError("readlink", path, exc) from exc
        if not raw_target.is_absolute():
            raw_target = path.parent / raw_target
        result.target = raw_target
        # os.path.exists follows the link; False means the target is gone.
        result.is_broken = not os.path.exists(path)
        return result

    def validate(self, path: Path, expected_target: Path) -> bool:
        """Return True if ``path`` is a symlink to ``expected_target``.

        Both sides are compared as absolute, normalised paths; neither is
        resolved through further symlinks.
        """
        info = self.info(path)
        if not info.exists or not info.is_symlink or info.target is None:
            return False
        return os.path.abspath(info.target) == os.path.abspath(expected_target)

    def swap(self, path: Path, new_target: Path) -> None:
        """Point ``path`` at ``new_target``, atomically where supported."""
        path, new_target = Path(path), Path(new_target)
        try:
            swap_symlink(path, new_target)
        except OSError as exc:
            raise PathError("swap", path, exc) from exc
        logger.debug("Swapped %s -> %s (atomic=%s)", path, new_target, self.atomic_swap)

    def is_symlink(self, path: Path) -> bool:
        """Return True if ``path`` is a symlink.

        Raises :class:`PathError` when nothing exists at ``path``.
        """
        path = Path(path)
        if not os.path.lexists(path):
            raise PathError("lstat", path, FileNotFoundError(2, "No such file or directory"))
        return path.is_symlink()

    def read_link(self, path: Path) -> Path:
        try:
            return Path(os.readlink(path))
        except OSError as exc:
            raise PathError("readlink", path, exc) from exc

    def ensure_dir(self, path: Path) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PathError("mkdir", path, exc) from exc
