from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from ccp.core.paths import Paths


def _can_symlink(directory: Path) -> bool:
    probe = directory / ".symlink-probe"
    try:
        os.symlink(directory, probe)
    except (OSError, NotImplementedError):
        return False
    os.remove(probe)
    return True


@pytest.fixture()
def symlinks_supported(tmp_path: Path) -> None:
    if not _can_symlink(tmp_path):
        pytest.skip("platform cannot create symlinks")


@pytest.fixture()
def paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, symlinks_supported: None) -> Paths:
    """A ccp layout rooted in a temporary home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    resolved = Paths.from_root(tmp_path / ".ccp", tmp_path / ".claude")
    resolved.hub_dir.mkdir(parents=True)
    resolved.profiles_dir.mkdir(parents=True)
    return resolved


def write_fragment(hub_dir: Path, name: str, key: str, value: object) -> Path:
    fragment_dir = hub_dir / "setting-fragments"
    fragment_dir.mkdir(parents=True, exist_ok=True)
    path = fragment_dir / f"{name}.yaml"
    path.write_text(
        f"name: {name}\ndescription: {name} fragment\nkey: {key}\nvalue: {json.dumps(value)}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def hub(paths: Paths) -> Path:
    """A hub with one or two items of every type."""
    hub_dir = paths.hub_dir

    for name in ("alpha", "beta"):
        skill = hub_dir / "skills" / name
        skill.mkdir(parents=True)
        (skill / "SKILL.md").write_text(f"# {name}\n", encoding="utf-8")

    (hub_dir / "agents").mkdir()
    (hub_dir / "agents" / "reviewer.md").write_text("reviewer\n", encoding="utf-8")
    (hub_dir / "rules").mkdir()
    (hub_dir / "rules" / "style.md").write_text("style\n", encoding="utf-8")
    (hub_dir / "commands").mkdir()
    (hub_dir / "commands" / "deploy.md").write_text("deploy\n", encoding="utf-8")

    notify = hub_dir / "hooks" / "notify"
    (notify / "scripts").mkdir(parents=True)
    (notify / "scripts" / "run.sh").write_text("#!/bin/sh\n", encoding="utf-8")
    (notify / "hooks.json").write_text(
        json.dumps(
            {
                "hooks": {
                    "SessionStart": [
                        {
                            "hooks": [
                                {
                                    "type": "command",
                                    "command": "${CLAUDE_PLUGIN_ROOT}/scripts/run.sh",
                                }
                            ]
                        }
                    ]
                }
            }
        ),
        encoding="utf-8",
    )

    legacy = hub_dir / "hooks" / "guard"
    legacy.mkdir(parents=True)
    (legacy / "guard.py").write_text("print('ok')\n", encoding="utf-8")
    (legacy / "hook.yaml").write_text(
        "name: guard\n"
        "type: PreToolUse\n"
        "command: guard.py\n"
        "interpreter: python3\n"
        "matcher: Bash\n"
        "timeout: 30\n",
        encoding="utf-8",
    )

    write_fragment(hub_dir, "model-old", "model", "old")
    write_fragment(hub_dir, "model-new", "model", "new")
    write_fragment(hub_dir, "theme", "theme", "dark")
    return hub_dir
