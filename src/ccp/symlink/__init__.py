"""Symlink management with platform-specific swap semantics."""

from ccp.symlink.manager import SymlinkInfo, SymlinkManager

__all__ = ["SymlinkInfo", "SymlinkManager"]
