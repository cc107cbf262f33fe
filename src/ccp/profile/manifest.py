"""Profile manifest: the declarative description of a profile.

The manifest records which hub items a profile links, how each data
directory is shared, and (for old profiles) per-profile hook configs.

On-disk formats:
- version 2 (current): ``profile.toml``, written on every save
- version 0/1 (legacy): ``profile.yaml``, read-only; loading one marks the
  manifest as needing migration without touching the file
"""

from __future__ import annotations

import logging
import tomllib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ccp.core.fileio import atomic_write_text
from ccp.core.types import (
    DEFAULT_DATA_CONFIG,
    DataItemType,
    HubItemType,
    ShareMode,
    all_hub_item_types,
)
from ccp.errors import InvalidManifestError, PathError

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 2
LEGACY_MANIFEST_VERSION = 1

MANIFEST_FILENAME = "profile.toml"
LEGACY_MANIFEST_FILENAME = "profile.yaml"


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _unique_names(value: Any) -> list[str]:
    """Coerce to a list of names, dropping repeats but keeping first-seen order."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    seen: list[str] = []
    for name in value:
        name = str(name)
        if name not in seen:
            seen.append(name)
    return seen


class HubLinks(BaseModel):
    """Ordered, duplicate-free hub item names per item type."""

    model_config = ConfigDict(populate_by_name=True)

    skills: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    hooks: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    setting_fragments: list[str] = Field(default_factory=list, alias="setting-fragments")

    @field_validator("*", mode="before")
    @classmethod
    def dedupe_names(cls, value: Any) -> list[str]:
        return _unique_names(value)


class DataConfig(BaseModel):
    """Share mode per data directory."""

    model_config = ConfigDict(populate_by_name=True)

    tasks: ShareMode = DEFAULT_DATA_CONFIG[DataItemType.TASKS]
    todos: ShareMode = DEFAULT_DATA_CONFIG[DataItemType.TODOS]
    paste_cache: ShareMode = Field(DEFAULT_DATA_CONFIG[DataItemType.PASTE_CACHE], alias="paste-cache")
    history: ShareMode = DEFAULT_DATA_CONFIG[DataItemType.HISTORY]
    file_history: ShareMode = Field(DEFAULT_DATA_CONFIG[DataItemType.FILE_HISTORY], alias="file-history")
    session_env: ShareMode = Field(DEFAULT_DATA_CONFIG[DataItemType.SESSION_ENV], alias="session-env")
    projects: ShareMode = DEFAULT_DATA_CONFIG[DataItemType.PROJECTS]
    plans: ShareMode = DEFAULT_DATA_CONFIG[DataItemType.PLANS]

    @field_validator("*", mode="before")
    @classmethod
    def default_when_blank(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return DEFAULT_DATA_CONFIG[DataItemType(info.field_name.replace("_", "-"))]
        return value


class HookConfig(BaseModel):
    """Legacy per-profile hook configuration."""

    name: str
    type: str
    command: str = ""
    timeout: int = 0
    matcher: str = ""


class Manifest(BaseModel):
    """Declarative profile description.

    Attributes:
        version: On-disk format version (2 current, 1 legacy)
        name: Profile name, kept equal to the profile directory name
        description: Free-form description
        created: Creation timestamp (UTC)
        updated: Last save timestamp (UTC)
        hub: Linked hub item names per type
        data: Share mode per data directory
        hooks: Legacy per-profile hook configs
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=False)

    version: int = MANIFEST_VERSION
    name: str = ""
    description: str = ""
    created: datetime = Field(default_factory=_now)
    updated: datetime = Field(default_factory=_now)
    hub: HubLinks = Field(default_factory=HubLinks)
    data: DataConfig = Field(default_factory=DataConfig)
    hooks: list[HookConfig] = Field(default_factory=list)

    @classmethod
    def new(cls, name: str, description: str = "") -> "Manifest":
        """Create a current-format manifest with default data sharing."""
        now = _now()
        return cls(name=name, description=description, created=now, updated=now)

    def needs_migration(self) -> bool:
        return self.version < MANIFEST_VERSION

    # -- hub links --------------------------------------------------------

    def get_hub_items(self, item_type: HubItemType) -> list[str]:
        return list(getattr(self.hub, item_type.field_name))

    def set_hub_items(self, item_type: HubItemType, names: list[str]) -> None:
        setattr(self.hub, item_type.field_name, _unique_names(names))

    def add_hub_item(self, item_type: HubItemType, name: str) -> None:
        """Append ``name``; already-present names are left as they are."""
        items: list[str] = getattr(self.hub, item_type.field_name)
        if name not in items:
            items.append(name)

    def remove_hub_item(self, item_type: HubItemType, name: str) -> bool:
        """Remove the first ``name``; return False if it was not linked."""
        items: list[str] = getattr(self.hub, item_type.field_name)
        if name in items:
            items.remove(name)
            return True
        return False

    def all_linked_items(self) -> list[tuple[HubItemType, str]]:
        """Flatten hub links into (type, name) pairs in canonical type order."""
        return [
            (item_type, name)
            for item_type in all_hub_item_types()
            for name in getattr(self.hub, item_type.field_name)
        ]

    def has_settings_sources(self) -> bool:
        """True if any hooks or setting fragments are linked."""
        return bool(self.hub.hooks or self.hub.setting_fragments)

    # -- data sharing -----------------------------------------------------

    def get_data_share_mode(self, data_type: DataItemType) -> ShareMode:
        return getattr(self.data, data_type.field_name)

    def set_data_share_mode(self, data_type: DataItemType, mode: ShareMode) -> None:
        setattr(self.data, data_type.field_name, ShareMode(mode))

    # -- legacy hook configs ----------------------------------------------

    def get_hook_config(self, name: str) -> HookConfig | None:
        for hook in self.hooks:
            if hook.name == name:
                return hook
        return None

    def set_hook_config(self, config: HookConfig) -> None:
        """Replace the config with the same name or append a new one."""
        for index, hook in enumerate(self.hooks):
            if hook.name == config.name:
                self.hooks[index] = config
                return
        self.hooks.append(config)

    def remove_hook_config(self, name: str) -> bool:
        for index, hook in enumerate(self.hooks):
            if hook.name == name:
                del self.hooks[index]
                return True
        return False

    # -- persistence ------------------------------------------------------

    def to_toml_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["created"] = self.created
        data["updated"] = self.updated
        if not self.description:
            del data["description"]
        if not self.hooks:
            del data["hooks"]
        return data

    def save(self, path: Path) -> None:
        """Write the manifest in the current format.

        Stamps ``updated`` and ``version``; this is the only place the
        on-disk format advances.
        """
        path = Path(path)
        self.updated = _now()
        self.version = MANIFEST_VERSION
        atomic_write_text(path, toml.dumps(self.to_toml_dict()), op="write manifest")
        logger.debug("Saved manifest for %s to %s", self.name, path)

    def save_to_dir(self, profile_dir: Path) -> Path:
        path = Path(profile_dir) / MANIFEST_FILENAME
        self.save(path)
        return path


def manifest_path(profile_dir: Path) -> Path:
    """Return the manifest path for a profile directory.

    Prefers ``profile.toml``; falls back to a legacy ``profile.yaml`` when
    only that exists. When neither exists the current filename is returned.
    """
    profile_dir = Path(profile_dir)
    current = profile_dir / MANIFEST_FILENAME
    if current.exists():
        return current
    legacy = profile_dir / LEGACY_MANIFEST_FILENAME
    if legacy.exists():
        return legacy
    return current


def load_manifest(path: Path) -> Manifest:
    """Load a manifest, falling back to the legacy YAML format.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        PathError: If the file cannot be read
        InvalidManifestError: If the content is neither format
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise PathError("read manifest", path, exc) from exc

    toml_error: Exception | None = None
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        toml_error = exc
    else:
        version = data.get("version", 0)
        if isinstance(version, int) and version >= MANIFEST_VERSION:
            try:
                return Manifest.model_validate(data)
            except ValidationError as exc:
                raise InvalidManifestError(path, str(exc)) from exc

    yaml = YAML(typ="safe")
    try:
        legacy = yaml.load(raw)
    except YAMLError as exc:
        raise InvalidManifestError(
            path, f"not a current manifest ({toml_error}) nor a legacy one ({exc})"
        ) from exc

    if not isinstance(legacy, dict):
        raise InvalidManifestError(path, "manifest must be a mapping")

    # Legacy files carry no version key; anything found is ignored.
    legacy = {key: value for key, value in legacy.items() if key != "version"}
    try:
        manifest = Manifest.model_validate(legacy)
    except ValidationError as exc:
        raise InvalidManifestError(path, str(exc)) from exc
    manifest.version = LEGACY_MANIFEST_VERSION
    logger.debug("Loaded legacy manifest %s (needs migration)", path)
    return manifest
