"""Legacy hook synchronisation into a profile's settings.json.

Profiles created before hooks moved into the hub declare their hooks
directly in the manifest. ``SettingsManager`` rewrites only the ``hooks``
key of settings.json from that list and leaves every other key alone.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ccp.core.paths import Paths
from ccp.core.types import DEFAULT_HOOK_TIMEOUT, HubItemType
from ccp.errors import PathError
from ccp.hub.hooks import HookCommand, HookEntry
from ccp.profile.manifest import Manifest
from ccp.profile.settings_generator import HOOKS_KEY, SETTINGS_FILENAME, write_json_file

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Parsed settings.json: typed hooks plus every other key untouched."""

    hooks: dict[str, list[HookEntry]] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


class SettingsManager:
    def __init__(self, paths: Paths):
        self.paths = paths

    def load_settings(self, profile_dir: Path) -> Settings:
        """Load settings.json; a missing file yields empty settings."""
        path = Path(profile_dir) / SETTINGS_FILENAME
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Settings()
        except (OSError, json.JSONDecodeError) as exc:
            raise PathError("load settings", path, exc) from exc
        if not isinstance(raw, dict):
            raise PathError("load settings", path, ValueError("settings must be a JSON object"))

        settings = Settings(raw=raw)
        hooks_data = raw.get(HOOKS_KEY)
        if isinstance(hooks_data, dict):
            for event, entries in hooks_data.items():
                if not isinstance(entries, list):
                    continue
                for entry in entries:
                    if isinstance(entry, dict):
                        settings.hooks.setdefault(event, []).append(_parse_entry(entry))
        return settings

    def save_settings(self, profile_dir: Path, settings: Settings) -> None:
        output = dict(settings.raw)
        if settings.hooks:
            output[HOOKS_KEY] = {
                event: [entry.to_settings_dict() for entry in entries]
                for event, entries in settings.hooks.items()
            }
        else:
            output.pop(HOOKS_KEY, None)
        write_json_file(Path(profile_dir) / SETTINGS_FILENAME, output)

    def sync_hooks_from_manifest(self, profile_dir: Path, manifest: Manifest) -> None:
        """Replace the hooks in settings.json with the manifest's legacy hook list.

        A hook without a command runs ``bash <profile>/hooks/<name>``; a
        zero timeout becomes the default.
        """
        profile_dir = Path(profile_dir)
        settings = self.load_settings(profile_dir)
        settings.hooks = {}

        for config in manifest.hooks:
            command = config.command
            if not command:
                command = f"bash {profile_dir / HubItemType.HOOKS.value / config.name}"
            entry = HookEntry(
                matcher=config.matcher,
                hooks=[
                    HookCommand(
                        command=command,
                        timeout=config.timeout or DEFAULT_HOOK_TIMEOUT,
                    )
                ],
            )
            settings.hooks.setdefault(config.type, []).append(entry)

        self.save_settings(profile_dir, settings)
        logger.debug("Synced %d legacy hooks into %s", len(manifest.hooks), profile_dir)


def _parse_entry(data: dict[str, Any]) -> HookEntry:
    commands = []
    for item in data.get("hooks") or []:
        if not isinstance(item, dict):
            continue
        timeout = item.get("timeout")
        commands.append(
            HookCommand(
                type=str(item.get("type") or "command"),
                command=str(item.get("command") or ""),
                timeout=int(timeout) if isinstance(timeout, (int, float)) and timeout > 0 else None,
            )
        )
    matcher = data.get("matcher")
    return HookEntry(matcher=matcher if isinstance(matcher, str) else "", hooks=commands)
