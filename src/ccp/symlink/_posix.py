"""Symlink primitives for POSIX platforms."""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

ATOMIC_SWAP = True


def create_symlink(link_path: Path, target: Path) -> None:
    """Create ``link_path`` pointing at ``target``, creating parents as needed."""
    link_path.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(target, link_path)


def swap_symlink(path: Path, new_target: Path) -> None:
    """Atomically point ``path`` at ``new_target``.

    A new link is created beside ``path`` and renamed over it; rename(2)
    replaces the old link in a single step, so readers always see either
    the old or the new target.
    """
    tmp_link = path.with_name(path.name + ".tmp")
    with contextlib.suppress(FileNotFoundError):
        os.remove(tmp_link)

    os.symlink(new_target, tmp_link)
    try:
        os.replace(tmp_link, path)
    except OSError:
        with contextlib.suppress(OSError):
            os.remove(tmp_link)
        raise


def remove_symlink(path: Path) -> None:
    os.remove(path)
