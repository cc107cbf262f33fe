"""ccp: switchable configuration profiles assembled from a shared hub.

A *hub* holds reusable items (skills, agents, hooks, rules, commands and
setting fragments). A *profile* links a selection of hub items through
symlinks and owns its own data directories; one profile at a time is the
*active* one, exposed through a single well-known symlink.
"""

__version__ = "0.4.0"
