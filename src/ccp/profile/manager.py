"""Profile lifecycle: create, delete, link, unlink and switch profiles.

A profile is a directory under ``Paths.profiles_dir``:

    <profile>/
        profile.toml           manifest
        settings.json          generated from linked hooks and fragments
        skills/<name>   ->     hub/skills/<name>
        ...                    one directory per hub item type
        tasks           ->     profiles/shared/tasks    (shared data)
        history/                                       (isolated data)

Multi-step operations are not transactional. A failure part way through
leaves whatever was already built; ``DriftDetector`` finds and repairs
the resulting divergence.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from ccp.core.paths import SHARED_DIR_NAME, Paths
from ccp.core.types import (
    HubItemType,
    ShareMode,
    all_data_item_types,
    all_hub_item_types,
)
from ccp.errors import (
    CcpError,
    HubItemNotFoundError,
    InvalidProfileNameError,
    PathError,
    ProfileExistsError,
    ProfileNotFoundError,
)
from ccp.hub.catalog import HubCatalog
from ccp.profile.manifest import Manifest, load_manifest, manifest_path
from ccp.profile.settings import SettingsManager
from ccp.profile.settings_generator import SETTINGS_FILENAME, regenerate_settings
from ccp.symlink import SymlinkManager

logger = logging.getLogger(__name__)

DEFAULT_DIR_MODE = 0o755

# Linking or unlinking these types changes the generated settings.json.
SETTINGS_ITEM_TYPES = (HubItemType.HOOKS, HubItemType.SETTING_FRAGMENTS)


@dataclass
class Profile:
    name: str
    path: Path
    manifest: Manifest

    def item_path(self, item_type: HubItemType, name: str) -> Path:
        return self.path / item_type.value / name


@dataclass
class SyncResult:
    """What :meth:`ProfileManager.sync` changed."""

    linked: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    settings_path: Path | None = None


def _dir_mode(path: Path, default: int) -> int:
    """Permission bits of ``path`` (following links), or ``default``."""
    try:
        return os.stat(path).st_mode & 0o777
    except OSError:
        return default


def check_profile_name(name: str) -> None:
    """Reject names that would resolve outside a single profile directory.

    Raises:
        InvalidProfileNameError: For an empty, reserved, hidden or nested name
    """
    if not name:
        raise InvalidProfileNameError(name, "empty name")
    if name == SHARED_DIR_NAME:
        raise InvalidProfileNameError(name, "reserved for shared data")
    if name.startswith("."):
        raise InvalidProfileNameError(name, "must not start with '.'")
    if "/" in name or "\\" in name:
        raise InvalidProfileNameError(name, "must not contain a path separator")


def _is_profile_name(name: str) -> bool:
    try:
        check_profile_name(name)
    except InvalidProfileNameError:
        return False
    return True


def _make_dir(path: Path, mode: int) -> None:
    try:
        os.makedirs(path, mode=mode, exist_ok=True)
    except OSError as exc:
        raise PathError("mkdir", path, exc) from exc


class ProfileManager:
    """Creates and maintains profiles from their manifests."""

    def __init__(
        self,
        paths: Paths,
        symlinks: SymlinkManager | None = None,
        catalog: HubCatalog | None = None,
    ):
        self.paths = paths
        self.symlinks = symlinks or SymlinkManager()
        self.catalog = catalog or HubCatalog(paths)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def profile_dir(self, name: str) -> Path:
        """Directory for profile ``name``, after checking the name."""
        check_profile_name(name)
        return self.paths.profile_dir(name)

    def exists(self, name: str) -> bool:
        try:
            return self.profile_dir(name).is_dir()
        except InvalidProfileNameError:
            return False

    def get(self, name: str) -> Profile:
        """Load a profile.

        A profile directory without a manifest gets a fresh default one
        (not written to disk).

        Raises:
            InvalidProfileNameError: If ``name`` cannot name a profile
            ProfileNotFoundError: If the profile directory does not exist
            InvalidManifestError: If the manifest cannot be parsed
        """
        profile_dir = self.profile_dir(name)
        if not profile_dir.is_dir():
            raise ProfileNotFoundError(name)

        try:
            manifest = load_manifest(manifest_path(profile_dir))
        except FileNotFoundError:
            manifest = Manifest.new(name)
        return Profile(name=name, path=profile_dir, manifest=manifest)

    def list(self) -> list[Profile]:
        """All profiles sorted by name; unreadable ones are logged and skipped."""
        try:
            with os.scandir(self.paths.profiles_dir) as it:
                names = sorted(
                    entry.name
                    for entry in it
                    if entry.is_dir() and _is_profile_name(entry.name)
                )
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise PathError("scan", self.paths.profiles_dir, exc) from exc

        profiles: list[Profile] = []
        for name in names:
            try:
                profiles.append(self.get(name))
            except CcpError as exc:
                logger.warning("Skipping profile %s: %s", name, exc)
        return profiles

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, name: str, manifest: Manifest | None = None) -> Profile:
        """Build a profile directory from ``manifest``.

        Directory and symlink failures abort creation. A failure to
        generate settings.json is logged and the profile is still returned.

        Raises:
            InvalidProfileNameError: If ``name`` cannot name a profile
            ProfileExistsError: If the profile directory already exists
            PathError: If a directory or symlink cannot be created
        """
        manifest = manifest if manifest is not None else Manifest.new(name)
        profile_dir = self.profile_dir(name)
        if os.path.lexists(profile_dir):
            raise ProfileExistsError(name, profile_dir)

        # Mirror permissions of the existing config tree where present.
        default_mode = _dir_mode(self.paths.claude_dir, DEFAULT_DIR_MODE)
        _make_dir(profile_dir, default_mode)

        for item_type in all_hub_item_types():
            mode = _dir_mode(self.paths.claude_dir / item_type.value, default_mode)
            _make_dir(profile_dir / item_type.value, mode)

        for data_type in all_data_item_types():
            data_dir = profile_dir / data_type.value
            mode = _dir_mode(self.paths.claude_dir / data_type.value, default_mode)
            if manifest.get_data_share_mode(data_type) is ShareMode.SHARED:
                shared_dir = self.paths.shared_data_dir(data_type)
                _make_dir(shared_dir, mode)
                self.symlinks.create(data_dir, shared_dir)
            else:
                _make_dir(data_dir, mode)

        for item_type, item_name in manifest.all_linked_items():
            self.symlinks.create(
                profile_dir / item_type.value / item_name,
                self.catalog.item_path(item_type, item_name),
            )

        manifest.name = name
        manifest.save_to_dir(profile_dir)

        profile = Profile(name=name, path=profile_dir, manifest=manifest)
        try:
            self.refresh_settings(profile)
        except CcpError as exc:
            logger.warning("Failed to generate settings.json for %s: %s", name, exc)

        logger.info("Created profile %s at %s", name, profile_dir)
        return profile

    def delete(self, name: str) -> None:
        """Remove a profile directory recursively.

        Shared data slots are symlinks, so only the links go; the shared
        root is untouched.

        Raises:
            InvalidProfileNameError: If ``name`` is empty, hidden, nested or
                the shared data root
            ProfileNotFoundError: If the profile directory does not exist
        """
        profile_dir = self.profile_dir(name)
        if not profile_dir.is_dir():
            raise ProfileNotFoundError(name)
        try:
            shutil.rmtree(profile_dir)
        except OSError as exc:
            raise PathError("remove", profile_dir, exc) from exc
        logger.info("Deleted profile %s", name)

    def save_manifest(self, profile: Profile) -> Path:
        return profile.manifest.save_to_dir(profile.path)

    # ------------------------------------------------------------------
    # Hub links
    # ------------------------------------------------------------------

    def link_hub_item(self, profile_name: str, item_type: HubItemType, item_name: str) -> Profile:
        """Link a hub item into a profile and record it in the manifest.

        Raises:
            ProfileNotFoundError: If the profile does not exist
            HubItemNotFoundError: If the hub has no such item
        """
        profile = self.get(profile_name)
        if not self.catalog.exists(item_type, item_name):
            raise HubItemNotFoundError(item_type.value, item_name)

        link_path = profile.item_path(item_type, item_name)
        hub_path = self.catalog.item_path(item_type, item_name)
        if not self.symlinks.validate(link_path, hub_path):
            self.symlinks.create(link_path, hub_path)

        profile.manifest.add_hub_item(item_type, item_name)
        self.save_manifest(profile)
        if item_type in SETTINGS_ITEM_TYPES:
            self._refresh_after_change(profile)
        return profile

    def unlink_hub_item(self, profile_name: str, item_type: HubItemType, item_name: str) -> Profile:
        """Remove a hub item link; an already-missing link is not an error."""
        profile = self.get(profile_name)
        self.symlinks.remove(profile.item_path(item_type, item_name))

        profile.manifest.remove_hub_item(item_type, item_name)
        self.save_manifest(profile)
        if item_type in SETTINGS_ITEM_TYPES:
            self._refresh_after_change(profile)
        return profile

    def sync(self, profile_name: str) -> SyncResult:
        """Bring a profile's links and settings.json in line with its manifest.

        Symlinks not listed in the manifest are removed (plain files and
        directories are left alone), missing or wrong links are recreated,
        and items absent from the hub are skipped with a warning.
        """
        profile = self.get(profile_name)
        result = SyncResult()

        for item_type in all_hub_item_types():
            item_dir = profile.path / item_type.value
            _make_dir(item_dir, DEFAULT_DIR_MODE)
            declared = profile.manifest.get_hub_items(item_type)

            try:
                with os.scandir(item_dir) as it:
                    stale = sorted(e.name for e in it if e.is_symlink() and e.name not in declared)
            except OSError as exc:
                raise PathError("scan", item_dir, exc) from exc
            for name in stale:
                self.symlinks.remove(item_dir / name)
                result.removed.append(f"{item_type}/{name}")

            for name in declared:
                hub_path = self.catalog.item_path(item_type, name)
                if not self.catalog.exists(item_type, name):
                    logger.warning("Hub item not found: %s/%s", item_type, name)
                    result.skipped.append(f"{item_type}/{name}")
                    continue
                link_path = item_dir / name
                if self.symlinks.validate(link_path, hub_path):
                    continue
                if link_path.is_symlink():
                    self.symlinks.remove(link_path)
                try:
                    self.symlinks.create(link_path, hub_path)
                except PathError as exc:
                    logger.warning("Failed to link %s/%s: %s", item_type, name, exc)
                    result.skipped.append(f"{item_type}/{name}")
                    continue
                result.linked.append(f"{item_type}/{name}")

        result.settings_path = self.refresh_settings(profile)
        return result

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def refresh_settings(self, profile: Profile) -> Path | None:
        """Regenerate settings.json from whatever the manifest declares.

        Hub hooks and fragments take precedence; a manifest with only
        legacy hook configs has those synced instead. Returns the settings
        path, or None when the manifest has nothing to contribute.
        """
        if profile.manifest.has_settings_sources():
            return regenerate_settings(self.paths, profile.path, profile.manifest)
        if profile.manifest.hooks:
            SettingsManager(self.paths).sync_hooks_from_manifest(profile.path, profile.manifest)
            return profile.path / SETTINGS_FILENAME
        return None

    def _refresh_after_change(self, profile: Profile) -> None:
        try:
            regenerate_settings(self.paths, profile.path, profile.manifest)
        except CcpError as exc:
            logger.warning("Failed to regenerate settings.json for %s: %s", profile.name, exc)

    # ------------------------------------------------------------------
    # Active profile
    # ------------------------------------------------------------------

    def get_active(self) -> Profile | None:
        """Return the profile the active-profile path links to.

        None when that path is absent or is a real directory.
        """
        claude_dir = self.paths.claude_dir
        if not os.path.lexists(claude_dir) or not self.symlinks.is_symlink(claude_dir):
            return None
        target = self.symlinks.read_link(claude_dir)
        return self.get(target.name)

    def set_active(self, name: str) -> None:
        """Point the active-profile path at ``name``.

        Raises:
            ProfileNotFoundError: If the profile does not exist
        """
        profile_dir = self.profile_dir(name)
        if not profile_dir.is_dir():
            raise ProfileNotFoundError(name)
        self.symlinks.swap(self.paths.claude_dir, profile_dir)
        logger.info("Active profile is now %s", name)
