"""Runtime location discovery for ccp.

This subpackage resolves where the ccp data directory and the
active-profile link live on the current platform.
"""

from ccp.runtime.home import get_ccp_home, get_claude_dir

__all__ = [
    "get_ccp_home",
    "get_claude_dir",
]
