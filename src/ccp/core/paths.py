"""Canonical filesystem locations for the hub, profiles and shared data.

``Paths`` is an explicit value passed to every component constructor;
nothing in ccp reads the environment behind the caller's back.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ccp.core.types import DataItemType, HubItemType
from ccp.runtime.home import get_ccp_home, get_claude_dir

FRAGMENT_EXTENSION = ".yaml"
FRAGMENT_SUFFIXES = (FRAGMENT_EXTENSION, ".yml")
SHARED_DIR_NAME = "shared"


@dataclass(frozen=True)
class Paths:
    """Resolved locations used by ccp operations.

    Attributes:
        ccp_dir: ccp data directory (``~/.ccp``)
        claude_dir: Well-known path symlinked to the active profile (``~/.claude``)
        hub_dir: Hub root (``~/.ccp/hub``)
        profiles_dir: Directory holding one subdirectory per profile
        shared_dir: Root of shared-mode data directories
    """

    ccp_dir: Path
    claude_dir: Path
    hub_dir: Path
    profiles_dir: Path
    shared_dir: Path

    @classmethod
    def from_root(cls, ccp_dir: Path, claude_dir: Path) -> "Paths":
        """Derive the standard layout below ``ccp_dir``."""
        ccp_dir = Path(ccp_dir)
        profiles_dir = ccp_dir / "profiles"
        return cls(
            ccp_dir=ccp_dir,
            claude_dir=Path(claude_dir),
            hub_dir=ccp_dir / "hub",
            profiles_dir=profiles_dir,
            shared_dir=profiles_dir / SHARED_DIR_NAME,
        )

    @classmethod
    def resolve(cls) -> "Paths":
        """Resolve paths from the environment and platform defaults."""
        return cls.from_root(get_ccp_home(), get_claude_dir())

    def profile_dir(self, name: str) -> Path:
        return self.profiles_dir / name

    def hub_item_dir(self, item_type: HubItemType) -> Path:
        return self.hub_dir / item_type.value

    def hub_item_path(self, item_type: HubItemType, name: str) -> Path:
        """Return the canonical path of a hub item.

        Setting fragments are single YAML files: the first existing
        suffix in ``FRAGMENT_SUFFIXES`` wins, and ``<name>.yaml`` is used
        when none exists. Every other type is addressed by its bare name.
        """
        if item_type is HubItemType.SETTING_FRAGMENTS:
            fragment_dir = self.hub_item_dir(item_type)
            for suffix in FRAGMENT_SUFFIXES:
                candidate = fragment_dir / f"{name}{suffix}"
                if candidate.exists():
                    return candidate
            return fragment_dir / f"{name}{FRAGMENT_EXTENSION}"
        return self.hub_item_dir(item_type) / name

    def shared_data_dir(self, data_type: DataItemType) -> Path:
        return self.shared_dir / data_type.value

    def is_initialized(self) -> bool:
        """Return True once the hub directory exists."""
        return self.hub_dir.is_dir()

    def claude_dir_exists_as_dir(self) -> bool:
        """True when the active-profile path is a real directory, not a link."""
        return self.claude_dir.is_dir() and not self.claude_dir.is_symlink()

    def claude_dir_is_symlink(self) -> bool:
        return self.claude_dir.is_symlink()


def to_portable_path(path: Path | str, home: Path | str | None = None) -> str:
    """Rewrite ``path`` relative to the user's home as ``$HOME/...``.

    Paths outside the home directory are returned unchanged so that
    generated settings stay valid when the home directory moves.
    """
    home_dir = os.path.abspath(str(home if home is not None else Path.home()))
    abs_path = os.path.abspath(str(path))
    if abs_path == home_dir:
        return "$HOME"
    prefix = home_dir.rstrip(os.sep) + os.sep
    if abs_path.startswith(prefix):
        relative = abs_path[len(prefix):].replace(os.sep, "/")
        return f"$HOME/{relative}"
    return abs_path
