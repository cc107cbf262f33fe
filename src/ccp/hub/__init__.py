"""Read-only access to the hub of reusable items."""

from ccp.hub.catalog import Hub, HubCatalog, HubItem, Scanner
from ccp.hub.fragment import (
    Fragment,
    FragmentReader,
    merge_fragments,
    merge_fragments_from_hub,
)
from ccp.hub.hooks import (
    HOOK_FORMATS,
    HookCommand,
    HookEntry,
    HookFormat,
    HooksJson,
    LegacyHookManifest,
    collect_hook,
    read_hooks_json,
    read_legacy_hook,
    save_hooks_json,
)

__all__ = [
    "HOOK_FORMATS",
    "Fragment",
    "FragmentReader",
    "HookCommand",
    "HookEntry",
    "HookFormat",
    "Hub",
    "HubCatalog",
    "HubItem",
    "HooksJson",
    "LegacyHookManifest",
    "Scanner",
    "collect_hook",
    "merge_fragments",
    "merge_fragments_from_hub",
    "read_hooks_json",
    "read_legacy_hook",
    "save_hooks_json",
]
