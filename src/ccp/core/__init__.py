"""Core types and path resolution shared across ccp."""

from ccp.core.paths import Paths, to_portable_path
from ccp.core.types import (
    DEFAULT_DATA_CONFIG,
    DEFAULT_HOOK_TIMEOUT,
    DataItemType,
    HookType,
    HubItemType,
    ShareMode,
    all_data_item_types,
    all_hub_item_types,
)

__all__ = [
    "DEFAULT_DATA_CONFIG",
    "DEFAULT_HOOK_TIMEOUT",
    "DataItemType",
    "HookType",
    "HubItemType",
    "Paths",
    "ShareMode",
    "all_data_item_types",
    "all_hub_item_types",
    "to_portable_path",
]
