"""Home directory discovery for ccp data and the active-profile link.

Provides the canonical functions for locating:
- The ccp data directory (hub, profiles, shared data)
- The well-known path that is symlinked to the active profile
"""

from __future__ import annotations

import os
from pathlib import Path


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_ccp_home() -> Path:
    """Return the path to the ccp data directory.

    Resolution order:
    1. CCP_DIR environment variable (all platforms)
    2. ~/.ccp/ on macOS/Linux (Path.home() / ".ccp")
    3. %LOCALAPPDATA%\\ccp\\ on Windows (via platformdirs)

    Returns:
        Path: Absolute path to the ccp data directory.
    """
    if env_home := os.environ.get("CCP_DIR"):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("ccp"))

    return Path.home() / ".ccp"


def get_claude_dir() -> Path:
    """Return the well-known path that exposes the active profile.

    Resolution order:
    1. CLAUDE_CONFIG_DIR environment variable
    2. ~/.claude
    """
    if env_dir := os.environ.get("CLAUDE_CONFIG_DIR"):
        return Path(env_dir)
    return Path.home() / ".claude"
