"""Profiles: manifests, lifecycle, drift repair and settings generation."""

from ccp.profile.drift import (
    DriftDetector,
    DriftItem,
    DriftReport,
    DriftType,
    FixOptions,
    FixResult,
)
from ccp.profile.manager import Profile, ProfileManager, SyncResult, check_profile_name
from ccp.profile.manifest import (
    MANIFEST_VERSION,
    DataConfig,
    HookConfig,
    HubLinks,
    Manifest,
    load_manifest,
    manifest_path,
)
from ccp.profile.settings import Settings, SettingsManager
from ccp.profile.settings_generator import (
    FragmentProcessor,
    HookProcessor,
    SettingsBuilder,
    builder_from_paths,
    generate_settings_hooks,
    regenerate_settings,
)

__all__ = [
    "MANIFEST_VERSION",
    "DataConfig",
    "DriftDetector",
    "DriftItem",
    "DriftReport",
    "DriftType",
    "FixOptions",
    "FixResult",
    "FragmentProcessor",
    "HookConfig",
    "HookProcessor",
    "HubLinks",
    "Manifest",
    "Profile",
    "ProfileManager",
    "Settings",
    "SettingsBuilder",
    "SettingsManager",
    "SyncResult",
    "builder_from_paths",
    "check_profile_name",
    "generate_settings_hooks",
    "load_manifest",
    "manifest_path",
    "regenerate_settings",
]
