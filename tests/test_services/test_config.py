"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from eventpages.config import Settings


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.debug is False
        assert s.port == 3001
        assert s.remote_base_url is None
        assert not s.remote_enabled
        assert s.remote_timeout_seconds == 1.0
        assert s.singleton_node_types == ["PricingPlans"]
        assert s.legacy_node_types == ["HeadingBlock"]

    def test_custom_settings(self, tmp_path: Path) -> None:
        s = Settings(
            _env_file=None,
            remote_base_url="http://localhost:3001/api",
            pages_dir=tmp_path / "pages",
        )
        assert s.remote_enabled
        assert s.pages_dir == tmp_path / "pages"

    def test_env_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REMOTE_BASE_URL", "http://example.com/api")
        monkeypatch.setenv("REMOTE_TIMEOUT_SECONDS", "2.5")
        s = Settings(_env_file=None)
        assert s.remote_base_url == "http://example.com/api"
        assert s.remote_timeout_seconds == 2.5


class TestValidateRuntime:
    def test_defaults_valid(self) -> None:
        Settings(_env_file=None).validate_runtime()

    def test_rejects_non_http_remote(self) -> None:
        with pytest.raises(ValueError, match="REMOTE_BASE_URL"):
            Settings(_env_file=None, remote_base_url="ftp://example.com").validate_runtime()

    def test_rejects_save_timeout_shorter_than_fetch(self) -> None:
        s = Settings(_env_file=None, remote_timeout_seconds=5, save_timeout_seconds=1)
        with pytest.raises(ValueError, match="SAVE_TIMEOUT_SECONDS"):
            s.validate_runtime()


class TestCliEntry:
    def test_cli_entry_uses_app_settings(self) -> None:
        """cli_entry() should use the global app's settings, not create a new Settings()."""
        from eventpages.main import app, cli_entry

        original_settings = getattr(app.state, "settings", None)
        app.state.settings = Settings(_env_file=None, host="127.0.0.1", port=9999, debug=True)

        try:
            with patch("uvicorn.run") as mock_run:
                cli_entry()

            mock_run.assert_called_once_with(
                "eventpages.main:app",
                host="127.0.0.1",
                port=9999,
                reload=True,
            )
        finally:
            app.state.settings = original_settings
