"""Symlink primitives for Windows.

Windows cannot rename a symlink over an existing one, so ``swap_symlink``
removes the old link before creating the new one. Between the two calls
the path does not exist; callers must tolerate that short window.
Creating symlinks may require Developer Mode or elevated privileges.
"""

from __future__ import annotations

import os
from pathlib import Path

ATOMIC_SWAP = False


def create_symlink(link_path: Path, target: Path) -> None:
    link_path.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(target, link_path, target_is_directory=os.path.isdir(target))


def remove_symlink(path: Path) -> None:
    # Directory links are removed with rmdir on Windows.
    if os.path.isdir(path):
        os.rmdir(path)
    else:
        os.remove(path)


def swap_symlink(path: Path, new_target: Path) -> None:
    if os.path.lexists(path):
        remove_symlink(path)
    os.symlink(new_target, path, target_is_directory=os.path.isdir(new_target))
