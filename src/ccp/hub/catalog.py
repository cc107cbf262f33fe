"""Hub catalog: read-only listing and lookup of reusable items.

Key concepts:
- HubItem: one skill, agent, hook, rule, command or setting fragment
- Hub: snapshot of all items found under a root, grouped by type
- Scanner: builds snapshots from the hub or from a pre-ccp config directory
- HubCatalog: live view over ``Paths.hub_dir`` used by the profile managers
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from ccp.core.paths import FRAGMENT_SUFFIXES, Paths
from ccp.core.types import HubItemType, all_hub_item_types
from ccp.errors import PathError

logger = logging.getLogger(__name__)

# Source directories recognised when scanning an existing config directory.
SOURCE_DIR_MAP: dict[str, HubItemType] = {
    "skills": HubItemType.SKILLS,
    "agents": HubItemType.AGENTS,
    "hooks": HubItemType.HOOKS,
    "rules": HubItemType.RULES,
    "commands": HubItemType.COMMANDS,
}


@dataclass(frozen=True)
class HubItem:
    name: str
    type: HubItemType
    path: Path
    is_dir: bool


@dataclass
class Hub:
    """Snapshot of hub items keyed by type."""

    path: Path
    items: dict[HubItemType, list[HubItem]] = field(default_factory=dict)

    def get_items(self, item_type: HubItemType) -> list[HubItem]:
        return list(self.items.get(item_type, []))

    def get_item(self, item_type: HubItemType, name: str) -> HubItem | None:
        """Exact (type, name) lookup; no partial matching."""
        for item in self.items.get(item_type, []):
            if item.name == name:
                return item
        return None

    def has_item(self, item_type: HubItemType, name: str) -> bool:
        return self.get_item(item_type, name) is not None

    def all_items(self) -> list[HubItem]:
        """All items flattened in canonical type order."""
        result: list[HubItem] = []
        for item_type in all_hub_item_types():
            result.extend(self.items.get(item_type, []))
        return result

    def item_count(self) -> int:
        return sum(len(items) for items in self.items.values())

    def item_count_by_type(self) -> dict[HubItemType, int]:
        return {item_type: len(items) for item_type, items in self.items.items()}


class Scanner:
    """Builds :class:`Hub` snapshots from directories on disk."""

    def scan(self, hub_path: Path) -> Hub:
        """Scan every item-type subdirectory below ``hub_path``.

        Missing type directories are skipped.
        """
        hub_path = Path(hub_path)
        hub = Hub(path=hub_path)
        for item_type in all_hub_item_types():
            items = self._scan_item_dir(hub_path / item_type.value, item_type)
            if items is not None:
                hub.items[item_type] = items
        return hub

    def scan_source(self, claude_dir: Path) -> Hub:
        """Scan an existing config directory for hub-eligible items.

        Used when importing an unmanaged configuration; setting fragments
        have no source directory and are never discovered here.
        """
        claude_dir = Path(claude_dir)
        hub = Hub(path=claude_dir)
        for dir_name, item_type in SOURCE_DIR_MAP.items():
            items = self._scan_item_dir(claude_dir / dir_name, item_type)
            if items is not None:
                hub.items[item_type] = items
        return hub

    def _scan_item_dir(self, directory: Path, item_type: HubItemType) -> list[HubItem] | None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PathError("scan", directory, exc) from exc

        items: list[HubItem] = []
        for entry in entries:
            if entry.name.startswith("."):
                continue

            is_dir = entry.is_dir()
            name = entry.name
            if item_type is HubItemType.SETTING_FRAGMENTS and not is_dir:
                stem, suffix = os.path.splitext(name)
                if suffix in FRAGMENT_SUFFIXES:
                    name = stem

            items.append(
                HubItem(
                    name=name,
                    type=item_type,
                    path=directory / entry.name,
                    is_dir=is_dir,
                )
            )
        return items


class HubCatalog:
    """Live read-only view over the hub directory.

    Existence checks go to the filesystem on every call so that repairs
    see items added or removed since the last snapshot.
    """

    def __init__(self, paths: Paths, scanner: Scanner | None = None):
        self.paths = paths
        self._scanner = scanner or Scanner()

    def item_path(self, item_type: HubItemType, name: str) -> Path:
        return self.paths.hub_item_path(item_type, name)

    def exists(self, item_type: HubItemType, name: str) -> bool:
        return os.path.exists(self.item_path(item_type, name))

    def list_items(self, item_type: HubItemType) -> list[HubItem]:
        return self.snapshot().get_items(item_type)

    def snapshot(self) -> Hub:
        hub = self._scanner.scan(self.paths.hub_dir)
        logger.debug("Scanned hub %s: %d items", self.paths.hub_dir, hub.item_count())
        return hub
