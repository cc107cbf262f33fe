"""Hook item file formats.

Two per-item formats are understood:

- ``hooks.json`` (canonical): event type -> list of {matcher, hooks[]},
  the same shape as the ``hooks`` section of settings.json.
- ``hook.yaml`` (legacy): a single hook described by name, type, command,
  interpreter, matcher, timeout or an inline command.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ccp.core.fileio import atomic_write_text
from ccp.core.paths import to_portable_path
from ccp.core.types import DEFAULT_HOOK_TIMEOUT
from ccp.errors import PathError

logger = logging.getLogger(__name__)

HOOKS_JSON_FILENAME = "hooks.json"
LEGACY_HOOK_FILENAME = "hook.yaml"
PLUGIN_ROOT_PLACEHOLDER = "${CLAUDE_PLUGIN_ROOT}"


class HookCommand(BaseModel):
    type: str = "command"
    command: str = ""
    timeout: int | None = None


class HookEntry(BaseModel):
    """One matcher group inside an event list."""

    matcher: str = ""
    hooks: list[HookCommand] = Field(default_factory=list)

    def to_settings_dict(self) -> dict[str, Any]:
        """Serialise for settings.json; an empty matcher is omitted."""
        data: dict[str, Any] = {}
        if self.matcher:
            data["matcher"] = self.matcher
        data["hooks"] = [
            cmd.model_dump(exclude_none=True) for cmd in self.hooks
        ]
        return data


class HooksJson(BaseModel):
    """Canonical per-item hook declaration."""

    hooks: dict[str, list[HookEntry]] = Field(default_factory=dict)


class LegacyHookManifest(BaseModel):
    """Legacy single-hook descriptor stored as ``hook.yaml``."""

    name: str = ""
    type: str = ""
    command: str = ""
    interpreter: str = ""
    matcher: str = ""
    timeout: int = 0
    inline: str = ""


def read_hooks_json(hook_dir: Path) -> HooksJson | None:
    """Read ``hooks.json`` from ``hook_dir``.

    Returns None when the file does not exist; raises :class:`PathError`
    when it exists but cannot be parsed.
    """
    path = Path(hook_dir) / HOOKS_JSON_FILENAME
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise PathError("read hooks", path, exc) from exc

    try:
        return HooksJson.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise PathError("parse hooks", path, exc) from exc


def save_hooks_json(hook_dir: Path, hooks_json: HooksJson) -> None:
    path = Path(hook_dir) / HOOKS_JSON_FILENAME
    payload = {
        "hooks": {
            event: [entry.to_settings_dict() for entry in entries]
            for event, entries in hooks_json.hooks.items()
        }
    }
    atomic_write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n", op="write hooks")


def read_legacy_hook(hook_dir: Path) -> LegacyHookManifest | None:
    """Read ``hook.yaml`` from ``hook_dir``; None when absent."""
    path = Path(hook_dir) / LEGACY_HOOK_FILENAME
    if not path.is_file():
        return None

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle) or {}
    except (OSError, YAMLError) as exc:
        raise PathError("read hook", path, exc) from exc

    if not isinstance(data, dict):
        raise PathError("parse hook", path, ValueError("hook descriptor must be a mapping"))
    try:
        return LegacyHookManifest.model_validate(data)
    except ValidationError as exc:
        raise PathError("parse hook", path, exc) from exc


# ---------------------------------------------------------------------------
# Format registry
# ---------------------------------------------------------------------------


def resolve_plugin_root_path(command: str, hook_dir: Path) -> str:
    """Replace the plugin-root placeholder with the portable ``hook_dir``."""
    if PLUGIN_ROOT_PLACEHOLDER not in command:
        return command
    return command.replace(PLUGIN_ROOT_PLACEHOLDER, to_portable_path(hook_dir))


def build_legacy_command(descriptor: LegacyHookManifest, installed_dir: Path) -> str:
    """Build the settings command line for a legacy descriptor.

    Inline and absolute commands are used as-is; relative commands are
    joined to the installed hook directory and made portable. The
    interpreter, if any, is prepended unless the command is inline.
    """
    if descriptor.inline:
        return descriptor.inline
    if os.path.isabs(descriptor.command):
        command = descriptor.command
    else:
        command = to_portable_path(Path(installed_dir) / descriptor.command)
    if descriptor.interpreter:
        command = f"{descriptor.interpreter} {command}"
    return command


def collect_hooks_json(source_dir: Path, installed_dir: Path) -> dict[str, list[HookEntry]]:
    """Convert a canonical ``hooks.json`` into settings entries.

    Every command becomes its own entry under the original matcher.
    """
    hooks_json = read_hooks_json(source_dir)
    result: dict[str, list[HookEntry]] = {}
    if hooks_json is None:
        return result

    for event, entries in hooks_json.hooks.items():
        for entry in entries:
            for cmd in entry.hooks:
                result.setdefault(event, []).append(
                    HookEntry(
                        matcher=entry.matcher,
                        hooks=[
                            HookCommand(
                                type=cmd.type or "command",
                                command=resolve_plugin_root_path(cmd.command, installed_dir),
                                timeout=cmd.timeout or DEFAULT_HOOK_TIMEOUT,
                            )
                        ],
                    )
                )
    return result


def collect_legacy_hook(source_dir: Path, installed_dir: Path) -> dict[str, list[HookEntry]]:
    descriptor = read_legacy_hook(source_dir)
    if descriptor is None:
        return {}
    if not descriptor.type:
        logger.warning("Hook descriptor in %s has no event type; skipping", source_dir)
        return {}

    entry = HookEntry(
        matcher=descriptor.matcher,
        hooks=[
            HookCommand(
                command=build_legacy_command(descriptor, installed_dir),
                timeout=descriptor.timeout or DEFAULT_HOOK_TIMEOUT,
            )
        ],
    )
    return {descriptor.type: [entry]}


@dataclass(frozen=True)
class HookFormat:
    """A per-item hook file format.

    Attributes:
        identifier: Registry key, the file name the format is stored in
        can_handle: Predicate on a hook directory
        collect: ``(source_dir, installed_dir) -> {event: [HookEntry]}``
    """

    identifier: str
    can_handle: Callable[[Path], bool]
    collect: Callable[[Path, Path], dict[str, list[HookEntry]]]


def _has_file(filename: str) -> Callable[[Path], bool]:
    return lambda hook_dir: (Path(hook_dir) / filename).is_file()


# Checked in order; the first format that can handle a directory wins.
HOOK_FORMATS: dict[str, HookFormat] = {
    HOOKS_JSON_FILENAME: HookFormat(
        identifier=HOOKS_JSON_FILENAME,
        can_handle=_has_file(HOOKS_JSON_FILENAME),
        collect=collect_hooks_json,
    ),
    LEGACY_HOOK_FILENAME: HookFormat(
        identifier=LEGACY_HOOK_FILENAME,
        can_handle=_has_file(LEGACY_HOOK_FILENAME),
        collect=collect_legacy_hook,
    ),
}


def collect_hook(installed_dir: Path, hub_dir: Path) -> dict[str, list[HookEntry]] | None:
    """Collect settings entries for one hook item.

    For each registered format, the installed directory is tried before
    the hub directory. A file that fails to parse is logged and the next
    format is tried. Returns None when no format handles the hook.
    """
    installed_dir, hub_dir = Path(installed_dir), Path(hub_dir)
    for hook_format in HOOK_FORMATS.values():
        for candidate in (installed_dir, hub_dir):
            if not hook_format.can_handle(candidate):
                continue
            try:
                return hook_format.collect(candidate, installed_dir)
            except PathError as exc:
                logger.warning("Ignoring unreadable %s for %s: %s", hook_format.identifier, installed_dir.name, exc)
                break
    return None
