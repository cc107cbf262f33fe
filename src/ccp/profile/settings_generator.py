"""Derive a profile's settings.json from its linked hooks and fragments.

settings.json is a generated artifact. Regeneration rebuilds every
non-hook key from the linked setting fragments, so a key written by hand
(or by a fragment that has since been unlinked) does not survive.
"""

from __future__ import annotations

import json
import logging
from datetime import date, time
from pathlib import Path
from typing import Any

from ccp.core.fileio import atomic_write_text
from ccp.core.paths import Paths
from ccp.core.types import HubItemType
from ccp.hub.fragment import merge_fragments_from_hub
from ccp.hub.hooks import HookEntry, collect_hook
from ccp.errors import PathError
from ccp.profile.manifest import Manifest

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
HOOKS_KEY = "hooks"

SettingsHooks = dict[str, list[HookEntry]]


def generate_settings_hooks(paths: Paths, profile_dir: Path, manifest: Manifest) -> SettingsHooks:
    """Build the hooks section for every hook linked in ``manifest``.

    Hooks without a readable descriptor in either the profile or the hub
    are skipped. Entries are appended per event in manifest order.
    """
    profile_hooks_dir = Path(profile_dir) / HubItemType.HOOKS.value
    hooks: SettingsHooks = {}

    for name in manifest.hub.hooks:
        collected = collect_hook(
            profile_hooks_dir / name,
            paths.hub_item_path(HubItemType.HOOKS, name),
        )
        if collected is None:
            logger.debug("Hook %s has no descriptor; skipping", name)
            continue
        for event, entries in collected.items():
            hooks.setdefault(event, []).extend(entries)

    return hooks


def hooks_to_settings(hooks: SettingsHooks) -> dict[str, list[dict[str, Any]]]:
    return {
        event: [entry.to_settings_dict() for entry in entries]
        for event, entries in hooks.items()
    }


class HookProcessor:
    """Produces the hooks section for one profile."""

    def __init__(self, paths: Paths, profile_dir: Path):
        self.paths = paths
        self.profile_dir = Path(profile_dir)

    def process_all(self, manifest: Manifest) -> SettingsHooks:
        return generate_settings_hooks(self.paths, self.profile_dir, manifest)


class FragmentProcessor:
    """Merges the linked setting fragments, later ones overriding earlier."""

    def __init__(self, hub_dir: Path):
        self.hub_dir = Path(hub_dir)

    def process_all(self, manifest: Manifest) -> dict[str, Any]:
        if not manifest.hub.setting_fragments:
            return {}
        return merge_fragments_from_hub(
            self.hub_dir,
            manifest.hub.setting_fragments,
            skip_missing=True,
        )


class SettingsBuilder:
    """Composes fragment keys and generated hooks into one document."""

    def __init__(self, hook_processor: HookProcessor, fragment_processor: FragmentProcessor):
        self.hook_processor = hook_processor
        self.fragment_processor = fragment_processor

    def build(self, manifest: Manifest) -> dict[str, Any]:
        """Return the settings document for ``manifest``.

        The ``hooks`` key is present only when at least one hook produced
        an entry.
        """
        settings: dict[str, Any] = {}
        settings.update(self.fragment_processor.process_all(manifest))

        hooks = self.hook_processor.process_all(manifest)
        if hooks:
            settings[HOOKS_KEY] = hooks_to_settings(hooks)
        return settings


def builder_from_paths(paths: Paths, profile_dir: Path) -> SettingsBuilder:
    return SettingsBuilder(
        HookProcessor(paths, profile_dir),
        FragmentProcessor(paths.hub_dir),
    )


def _read_previous_hooks(settings_path: Path) -> Any | None:
    try:
        existing = json.loads(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", settings_path, exc)
        return None
    if isinstance(existing, dict):
        return existing.get(HOOKS_KEY)
    return None


def regenerate_settings(paths: Paths, profile_dir: Path, manifest: Manifest) -> Path:
    """Rewrite ``settings.json`` for a profile.

    Starts from an empty document. A previous ``hooks`` value is carried
    over unless freshly generated hooks replace it; every other key comes
    from the linked fragments. The file is fully overwritten.

    Returns:
        Path of the written settings file.
    """
    profile_dir = Path(profile_dir)
    settings_path = profile_dir / SETTINGS_FILENAME

    settings: dict[str, Any] = {}
    previous_hooks = _read_previous_hooks(settings_path)
    if previous_hooks is not None:
        settings[HOOKS_KEY] = previous_hooks

    settings.update(builder_from_paths(paths, profile_dir).build(manifest))

    write_json_file(settings_path, settings)
    logger.debug("Regenerated %s (%d keys)", settings_path, len(settings))
    return settings_path


def _json_default(value: Any) -> Any:
    # YAML fragments may carry timestamps; settings.json stores them as ISO strings.
    if isinstance(value, (date, time)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_json_file(path: Path, data: Any) -> None:
    """Atomically write ``data`` as two-space indented JSON with a trailing newline.

    Raises:
        PathError: If ``data`` cannot be encoded or the file cannot be written
    """
    path = Path(path)
    try:
        content = json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as exc:
        raise PathError("write settings", path, exc) from exc
    atomic_write_text(path, content + "\n", op="write settings")
