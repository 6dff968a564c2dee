"""Tests for the rshell command-line entry point."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from rshell.cli import main, parse_args


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config is None
        assert args.verbose is False
        assert args.host is None
        assert args.port is None
        assert args.keepalive is False

    def test_overrides(self) -> None:
        args = parse_args(["-c", "my.yaml", "-v", "--host", "h", "--port", "9000", "--keepalive"])
        assert args.config == Path("my.yaml")
        assert args.verbose is True
        assert args.port == 9000
        assert args.keepalive is True


class TestMain:
    def test_main_applies_overrides(self, tmp_path: Path) -> None:
        config = tmp_path / "shconfig"
        config.write_text("HSIZE 75\nVSIZE 40\nRHOST 127.0.0.1\nRPORT 9000\n")
        run_shell = AsyncMock(return_value=0)

        with patch("rshell.cli._run_shell", run_shell), \
                patch("rshell.utils.logging.setup_logging") as setup_logging:
            assert main(["-c", str(config), "--port", "9001", "-v"]) == 0

        settings = run_shell.await_args.args[0]
        assert settings.remote.host == "127.0.0.1"
        assert settings.remote.port == 9001
        assert settings.logging.level == "DEBUG"
        assert run_shell.await_args.kwargs == {"keepalive": False}
        setup_logging.assert_called_once_with(settings.logging)

    def test_out_of_range_port_keeps_configured_value(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = tmp_path / "shconfig"
        config.write_text("HSIZE 75\nVSIZE 40\nRHOST 127.0.0.1\nRPORT 9000\n")
        run_shell = AsyncMock(return_value=0)

        with patch("rshell.cli._run_shell", run_shell), \
                patch("rshell.utils.logging.setup_logging"), \
                caplog.at_level(logging.WARNING, logger="rshell"):
            assert main(["-c", str(config), "--host", "example.org", "--port", "99999"]) == 0

        settings = run_shell.await_args.args[0]
        assert settings.remote.host == "127.0.0.1"
        assert settings.remote.port == 9000
        assert "Invalid --host/--port override" in caplog.text

    def test_zero_port_is_not_silently_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = tmp_path / "shconfig"
        config.write_text("HSIZE 75\nVSIZE 40\nRPORT 9000\n")
        run_shell = AsyncMock(return_value=0)

        with patch("rshell.cli._run_shell", run_shell), \
                patch("rshell.utils.logging.setup_logging"), \
                caplog.at_level(logging.WARNING, logger="rshell"):
            main(["-c", str(config), "--port", "0"])

        assert run_shell.await_args.args[0].remote.port == 9000
        assert "Invalid --host/--port override" in caplog.text
