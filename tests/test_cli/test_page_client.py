"""Tests for the page command line client."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from cli.page_client import build_parser, main, run, settings_from_args
from tests.conftest import REMOTE_BASE_URL, make_document, make_settings, node, page_server_transport

if TYPE_CHECKING:
    from pathlib import Path

    from eventpages.config import Settings


async def _run(settings: Settings, *argv: str, **kwargs: object) -> int:
    args = build_parser().parse_args(list(argv))
    return await run(args, settings, **kwargs)  # type: ignore[arg-type]


class TestParser:
    def test_offline_overrides_server(self) -> None:
        args = build_parser().parse_args(["--server", REMOTE_BASE_URL, "--offline", "list"])
        assert settings_from_args(args).remote_base_url is None

    def test_server_option(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(
            ["--server", REMOTE_BASE_URL, "--download-dir", str(tmp_path), "list"]
        )
        settings = settings_from_args(args)
        assert settings.remote_base_url == REMOTE_BASE_URL
        assert settings.download_dir == tmp_path

    def test_unknown_template_kind_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["template", "mystery"])

    def test_invalid_server_url_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--server", "ftp://example.com", "list"])
        assert exc_info.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().out


class TestCommands:
    async def test_create_then_list(
        self, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(settings, "create") == 0
        assert await _run(settings, "create") == 0
        assert await _run(settings, "list") == 0
        out = capsys.readouterr().out
        assert "Created Page 1" in out
        assert "Created Page 2" in out
        assert "page-2.json" in out

    async def test_list_empty(self, settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert await _run(settings, "list") == 0
        assert "No pages." in capsys.readouterr().out

    async def test_show_prints_template(
        self, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(settings, "show", "welcome") == 0
        document = json.loads(capsys.readouterr().out)
        assert document["root"]["props"]["pageTitle"] == "welcome"

    async def test_template(self, settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert await _run(settings, "template", "sponsor") == 0
        assert "Created Sponsors" in capsys.readouterr().out

    async def test_offline_save_downloads(
        self, settings: Settings, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "doc.json"
        source.write_text(make_document(node("Text", "t")).model_dump_json(), encoding="utf-8")
        assert await _run(settings, "create") == 0
        capsys.readouterr()

        assert await _run(settings, "save", "page-1.json", str(source)) == 0
        out = capsys.readouterr().out
        assert out.startswith("downloaded: page-1.json")
        assert (settings.download_dir / "page-1.json").exists()

    async def test_save_unreadable_file(
        self, settings: Settings, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(settings, "save", "p", str(tmp_path / "missing.json")) == 1
        assert "cannot read" in capsys.readouterr().out

    async def test_rename_unknown_page(
        self, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(settings, "rename", "missing", "New") == 1
        assert "Unknown page id" in capsys.readouterr().out

    async def test_context(self, settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert await _run(settings, "context", "--event-name", "PyCon") == 0
        assert await _run(settings, "context", "--location", "Berlin") == 0
        out = capsys.readouterr().out
        assert out.count('"event_name": "PyCon"') == 2
        assert '"location": "Berlin"' in out

    async def test_show_with_server(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        server_settings = make_settings(tmp_path / "server")
        app, transport = page_server_transport(server_settings)
        app.state.page_store.write_page(
            "welcome.json", make_document(node("Text", "t", text="from server"), title="Welcome")
        )
        settings = make_settings(tmp_path / "client", remote_base_url=REMOTE_BASE_URL)

        assert await _run(settings, "show", "welcome.json", transport=transport) == 0
        document = json.loads(capsys.readouterr().out)
        assert document["content"][0]["props"]["text"] == "from server"
