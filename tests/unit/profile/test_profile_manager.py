"""Tests for ccp.profile.manager: profile lifecycle and active switching."""

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from ccp.core.paths import Paths
from ccp.core.types import DataItemType, HubItemType, ShareMode
from ccp.errors import (
    HubItemNotFoundError,
    InvalidProfileNameError,
    PathError,
    ProfileExistsError,
    ProfileNotFoundError,
)
from ccp.profile.manager import ProfileManager
from ccp.profile.manifest import HookConfig, Manifest


@pytest.fixture()
def manager(paths: Paths, hub: Path) -> ProfileManager:
    return ProfileManager(paths)


def _manifest(**links: list[str]) -> Manifest:
    manifest = Manifest.new("ignored")
    for field_name, names in links.items():
        for name in names:
            manifest.add_hub_item(HubItemType(field_name.replace("_", "-")), name)
    return manifest


# ---------------------------------------------------------------------------
# Create / delete
# ---------------------------------------------------------------------------


class TestCreate:
    """Building a profile tree from a manifest."""

    def test_skeleton_and_links(self, manager: ProfileManager, paths: Paths) -> None:
        profile = manager.create("work", _manifest(skills=["alpha"], agents=["reviewer.md"]))

        for item_type in HubItemType:
            assert (profile.path / item_type.value).is_dir()
        link = profile.path / "skills" / "alpha"
        assert link.is_symlink()
        assert os.path.abspath(os.readlink(link)) == str(paths.hub_dir / "skills" / "alpha")
        assert (profile.path / "agents" / "reviewer.md").is_symlink()

    def test_manifest_name_forced(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest())
        assert profile.manifest.name == "work"
        assert manager.get("work").manifest.name == "work"
        assert (profile.path / "profile.toml").is_file()

    def test_isolated_history_shared_tasks(self, manager: ProfileManager, paths: Paths) -> None:
        manifest = _manifest()
        manifest.set_data_share_mode(DataItemType.HISTORY, ShareMode.ISOLATED)
        manifest.set_data_share_mode(DataItemType.TASKS, ShareMode.SHARED)
        profile = manager.create("work", manifest)

        history = profile.path / "history"
        tasks = profile.path / "tasks"
        assert history.is_dir() and not history.is_symlink()
        assert tasks.is_symlink()
        assert os.path.abspath(os.readlink(tasks)) == str(paths.shared_dir / "tasks")
        assert (paths.shared_dir / "tasks").is_dir()

    def test_existing_profile_rejected(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        with pytest.raises(ProfileExistsError):
            manager.create("work", _manifest())

    def test_settings_generated_for_fragments(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest(setting_fragments=["model-old", "model-new"]))
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings == {"model": "new"}

    def test_no_settings_without_sources(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest(skills=["alpha"]))
        assert not (profile.path / "settings.json").exists()

    def test_legacy_hooks_synced(self, manager: ProfileManager) -> None:
        manifest = _manifest()
        manifest.set_hook_config(HookConfig(name="notify", type="Stop"))
        profile = manager.create("work", manifest)
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        command = settings["hooks"]["Stop"][0]["hooks"][0]
        assert command["command"] == f"bash {profile.path / 'hooks' / 'notify'}"
        assert command["timeout"] == 60

    def test_settings_failure_is_not_fatal(
        self, manager: ProfileManager, paths: Paths, caplog: pytest.LogCaptureFixture
    ) -> None:
        (paths.hub_dir / "setting-fragments" / "broken.yaml").write_text("- not\n- a mapping\n", encoding="utf-8")
        profile = manager.create("work", _manifest(setting_fragments=["broken"]))
        assert profile.path.is_dir()
        assert "settings.json" in caplog.text

    def test_timestamp_fragment_does_not_break_create(self, manager: ProfileManager, paths: Paths) -> None:
        (paths.hub_dir / "setting-fragments" / "cutoff.yaml").write_text(
            "key: cutoff\nvalue: 2024-01-01\n", encoding="utf-8"
        )
        profile = manager.create("work", _manifest(setting_fragments=["cutoff"]))
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings == {"cutoff": "2024-01-01"}

    def test_yml_fragment_linked(self, manager: ProfileManager, paths: Paths) -> None:
        fragment = paths.hub_dir / "setting-fragments" / "editor.yml"
        fragment.write_text("key: editor\nvalue: vim\n", encoding="utf-8")
        profile = manager.create("work", _manifest(setting_fragments=["editor"]))
        link = profile.path / "setting-fragments" / "editor"
        assert os.path.abspath(os.readlink(link)) == str(fragment)

    def test_directory_failure_is_fatal(self, manager: ProfileManager, paths: Paths) -> None:
        paths.shared_dir.mkdir(parents=True)
        (paths.shared_dir / "tasks").write_text("", encoding="utf-8")
        with pytest.raises(PathError):
            manager.create("work", _manifest())

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_mirrors_reference_permissions(self, manager: ProfileManager, paths: Paths) -> None:
        paths.claude_dir.mkdir()
        os.chmod(paths.claude_dir, 0o700)
        (paths.claude_dir / "skills").mkdir()
        os.chmod(paths.claude_dir / "skills", 0o750)

        profile = manager.create("work", _manifest())
        umask = os.umask(0)
        os.umask(umask)
        assert stat.S_IMODE(os.stat(profile.path).st_mode) == 0o700 & ~umask
        assert stat.S_IMODE(os.stat(profile.path / "skills").st_mode) == 0o750 & ~umask


class TestDelete:
    def test_delete_preserves_shared_data(self, manager: ProfileManager, paths: Paths) -> None:
        profile = manager.create("work", _manifest(skills=["alpha"]))
        (paths.shared_dir / "tasks" / "task.json").write_text("{}", encoding="utf-8")

        manager.delete("work")

        assert not profile.path.exists()
        assert (paths.shared_dir / "tasks" / "task.json").is_file()
        assert (paths.hub_dir / "skills" / "alpha" / "SKILL.md").is_file()

    def test_delete_missing(self, manager: ProfileManager) -> None:
        with pytest.raises(ProfileNotFoundError):
            manager.delete("ghost")


class TestProfileNames:
    """Names that would escape a single profile directory are refused."""

    @pytest.mark.parametrize("name", ["", "shared", ".hidden", "..", "../x", "a/b", "a\\b"])
    def test_create_rejects(self, manager: ProfileManager, paths: Paths, name: str) -> None:
        with pytest.raises(InvalidProfileNameError):
            manager.create(name, _manifest())
        assert sorted(os.listdir(paths.profiles_dir)) == []

    def test_delete_never_touches_shared_root(self, manager: ProfileManager, paths: Paths) -> None:
        manager.create("work", _manifest(skills=["alpha"]))
        task = paths.shared_dir / "tasks" / "t1.json"
        task.write_text("{}", encoding="utf-8")

        for name in ("shared", "..", "../hub", ""):
            with pytest.raises(InvalidProfileNameError):
                manager.delete(name)

        assert task.is_file()
        assert (paths.hub_dir / "skills" / "alpha").is_dir()
        assert manager.exists("work")

    def test_lookups_reject(self, manager: ProfileManager) -> None:
        with pytest.raises(InvalidProfileNameError):
            manager.get("shared")
        with pytest.raises(InvalidProfileNameError):
            manager.set_active("..")
        assert not manager.exists("shared")
        assert not manager.exists("..")

    def test_list_skips_hidden_directories(self, manager: ProfileManager, paths: Paths) -> None:
        manager.create("work", _manifest())
        (paths.profiles_dir / ".trash").mkdir()
        assert [p.name for p in manager.list()] == ["work"]


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestLookup:
    def test_get_missing(self, manager: ProfileManager) -> None:
        with pytest.raises(ProfileNotFoundError):
            manager.get("ghost")

    def test_get_without_manifest_uses_default(self, manager: ProfileManager, paths: Paths) -> None:
        paths.profile_dir("bare").mkdir()
        profile = manager.get("bare")
        assert profile.manifest.name == "bare"
        assert profile.manifest.all_linked_items() == []

    def test_list_skips_shared_and_files(self, manager: ProfileManager, paths: Paths) -> None:
        manager.create("b", _manifest())
        manager.create("a", _manifest())
        (paths.profiles_dir / "notes.txt").write_text("", encoding="utf-8")
        assert [p.name for p in manager.list()] == ["a", "b"]

    def test_exists(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        assert manager.exists("work")
        assert not manager.exists("ghost")


# ---------------------------------------------------------------------------
# Link / unlink
# ---------------------------------------------------------------------------


class TestLinking:
    """Linking hub items updates both the tree and the manifest."""

    def test_link_hub_item(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        manager.link_hub_item("work", HubItemType.SKILLS, "beta")

        profile = manager.get("work")
        assert profile.manifest.hub.skills == ["beta"]
        assert (profile.path / "skills" / "beta").is_symlink()

    def test_link_twice_is_harmless(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        manager.link_hub_item("work", HubItemType.SKILLS, "beta")
        manager.link_hub_item("work", HubItemType.SKILLS, "beta")
        assert manager.get("work").manifest.hub.skills == ["beta"]

    def test_link_unknown_item(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        with pytest.raises(HubItemNotFoundError):
            manager.link_hub_item("work", HubItemType.SKILLS, "nope")
        assert not (manager.get("work").path / "skills" / "nope").exists()

    def test_unlink_hub_item(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest(skills=["alpha"]))
        manager.unlink_hub_item("work", HubItemType.SKILLS, "alpha")

        profile = manager.get("work")
        assert profile.manifest.hub.skills == []
        assert not os.path.lexists(profile.path / "skills" / "alpha")

    def test_unlink_tolerates_missing_link(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest(skills=["alpha"]))
        os.remove(profile.path / "skills" / "alpha")
        manager.unlink_hub_item("work", HubItemType.SKILLS, "alpha")
        assert manager.get("work").manifest.hub.skills == []

    def test_linking_fragment_refreshes_settings(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest())
        manager.link_hub_item("work", HubItemType.SETTING_FRAGMENTS, "theme")
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings == {"theme": "dark"}

        manager.unlink_hub_item("work", HubItemType.SETTING_FRAGMENTS, "theme")
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings == {}


    def test_linking_timestamp_fragment(self, manager: ProfileManager, paths: Paths) -> None:
        (paths.hub_dir / "setting-fragments" / "cutoff.yaml").write_text(
            "key: cutoff\nvalue: 2024-01-01T12:00:00Z\n", encoding="utf-8"
        )
        profile = manager.create("work", _manifest())
        manager.link_hub_item("work", HubItemType.SETTING_FRAGMENTS, "cutoff")
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings["cutoff"].startswith("2024-01-01T12:00:00")

    def test_link_yml_fragment(self, manager: ProfileManager, paths: Paths) -> None:
        (paths.hub_dir / "setting-fragments" / "editor.yml").write_text(
            "key: editor\nvalue: vim\n", encoding="utf-8"
        )
        profile = manager.create("work", _manifest())
        manager.link_hub_item("work", HubItemType.SETTING_FRAGMENTS, "editor")
        settings = json.loads((profile.path / "settings.json").read_text(encoding="utf-8"))
        assert settings == {"editor": "vim"}


class TestSync:
    """Reconciling links and settings from the manifest."""

    def test_sync_repairs_and_prunes(self, manager: ProfileManager, paths: Paths) -> None:
        profile = manager.create("work", _manifest(skills=["alpha", "beta"]))
        os.remove(profile.path / "skills" / "alpha")
        os.symlink(paths.hub_dir / "skills" / "alpha", profile.path / "skills" / "stray")
        (profile.path / "skills" / "local-notes").mkdir()

        result = manager.sync("work")

        assert result.linked == ["skills/alpha"]
        assert result.removed == ["skills/stray"]
        assert (profile.path / "skills" / "alpha").is_symlink()
        assert (profile.path / "skills" / "local-notes").is_dir()

    def test_sync_skips_missing_hub_items(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest(skills=["alpha"]))
        profile = manager.get("work")
        profile.manifest.add_hub_item(HubItemType.SKILLS, "gone")
        manager.save_manifest(profile)

        result = manager.sync("work")
        assert result.skipped == ["skills/gone"]

    def test_sync_regenerates_settings(self, manager: ProfileManager) -> None:
        profile = manager.create("work", _manifest(setting_fragments=["theme"]))
        (profile.path / "settings.json").write_text('{"stale": true}', encoding="utf-8")

        result = manager.sync("work")

        assert result.settings_path == profile.path / "settings.json"
        assert json.loads(result.settings_path.read_text(encoding="utf-8")) == {"theme": "dark"}

    def test_unreadable_type_dir_raises_path_error(
        self, manager: ProfileManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        manager.create("work", _manifest(skills=["alpha"]))

        def deny(path: object) -> None:
            raise PermissionError("denied")

        monkeypatch.setattr(os, "scandir", deny)
        with pytest.raises(PathError) as exc_info:
            manager.sync("work")
        assert exc_info.value.op == "scan"


# ---------------------------------------------------------------------------
# Active profile
# ---------------------------------------------------------------------------


class TestActiveProfile:
    def test_no_active_profile(self, manager: ProfileManager) -> None:
        assert manager.get_active() is None

    def test_real_directory_is_not_active(self, manager: ProfileManager, paths: Paths) -> None:
        paths.claude_dir.mkdir()
        assert manager.get_active() is None

    def test_set_then_get(self, manager: ProfileManager) -> None:
        manager.create("work", _manifest())
        manager.create("home", _manifest())

        manager.set_active("work")
        assert manager.get_active().name == "work"

        manager.set_active("home")
        assert manager.get_active().name == "home"

    def test_set_active_unknown(self, manager: ProfileManager) -> None:
        with pytest.raises(ProfileNotFoundError):
            manager.set_active("ghost")
