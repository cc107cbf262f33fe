"""Tests for ccp.runtime.home: cross-platform location lookup."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from ccp.runtime.home import get_ccp_home, get_claude_dir


class TestGetCcpHome:
    """Resolution of the ccp data directory."""

    def test_env_var_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CCP_DIR", str(tmp_path / "ccp"))
        assert get_ccp_home() == tmp_path / "ccp"

    def test_unix_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CCP_DIR", raising=False)
        monkeypatch.setattr("ccp.runtime.home._is_windows", lambda: False)
        assert get_ccp_home() == Path.home() / ".ccp"

    def test_windows_default_uses_platformdirs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """On Windows the default comes from platformdirs.user_data_dir."""
        monkeypatch.delenv("CCP_DIR", raising=False)
        monkeypatch.setattr("ccp.runtime.home._is_windows", lambda: True)
        with patch("platformdirs.user_data_dir", return_value="C:/Users/test/AppData/Local/ccp") as mock_dir:
            result = get_ccp_home()
        mock_dir.assert_called_once_with("ccp")
        assert result == Path("C:/Users/test/AppData/Local/ccp")


class TestGetClaudeDir:
    def test_env_var_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(tmp_path / "cfg"))
        assert get_claude_dir() == tmp_path / "cfg"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CLAUDE_CONFIG_DIR", raising=False)
        assert get_claude_dir() == Path.home() / ".claude"
