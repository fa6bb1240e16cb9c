# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for knox/dotenv_loader.py."""

from pathlib import Path
from unittest.mock import MagicMock, call, patch

from knox.dotenv_loader import load_dotenv_once, reset_dotenv_state


class TestLoadDotenvOnce:
    """Tests for load_dotenv_once."""

    def setup_method(self) -> None:
        """Reset state before each test."""
        reset_dotenv_state()

    def teardown_method(self) -> None:
        reset_dotenv_state()

    def test_idempotent(self, tmp_path: Path) -> None:
        """Second call is a no-op."""
        mock_ld = MagicMock()
        xdg_env = tmp_path / ".env"
        xdg_env.touch()
        with (
            patch("dotenv.load_dotenv", mock_ld),
            patch("knox.config.get_dotenv_path", return_value=xdg_env),
            patch(
                "knox.dotenv_loader.Path.cwd",
                return_value=tmp_path / "elsewhere",
            ),
        ):
            load_dotenv_once()
            load_dotenv_once()
        assert mock_ld.call_count == 1

    def test_loads_cwd_env(self, tmp_path: Path) -> None:
        """Loads from CWD when the XDG .env doesn't exist."""
        xdg_env = tmp_path / "config" / ".env"
        cwd_env = tmp_path / "cwd" / ".env"
        cwd_env.parent.mkdir(parents=True)
        cwd_env.touch()
        mock_ld = MagicMock()
        with (
            patch("dotenv.load_dotenv", mock_ld),
            patch("knox.config.get_dotenv_path", return_value=xdg_env),
            patch(
                "knox.dotenv_loader.Path.cwd",
                return_value=cwd_env.parent,
            ),
        ):
            load_dotenv_once()
        mock_ld.assert_called_once_with(cwd_env)

    def test_loads_both_in_order(self, tmp_path: Path) -> None:
        """XDG file first, then CWD file."""
        xdg_env = tmp_path / "config" / ".env"
        xdg_env.parent.mkdir()
        xdg_env.touch()
        cwd_env = tmp_path / "cwd" / ".env"
        cwd_env.parent.mkdir()
        cwd_env.touch()
        mock_ld = MagicMock()
        with (
            patch("dotenv.load_dotenv", mock_ld),
            patch("knox.config.get_dotenv_path", return_value=xdg_env),
            patch(
                "knox.dotenv_loader.Path.cwd",
                return_value=cwd_env.parent,
            ),
        ):
            load_dotenv_once()
        assert mock_ld.call_args_list == [call(xdg_env), call(cwd_env)]

    def test_no_files(self, tmp_path: Path) -> None:
        """Nothing is loaded when neither file exists."""
        mock_ld = MagicMock()
        with (
            patch("dotenv.load_dotenv", mock_ld),
            patch(
                "knox.config.get_dotenv_path",
                return_value=tmp_path / "missing" / ".env",
            ),
            patch("knox.dotenv_loader.Path.cwd", return_value=tmp_path),
        ):
            load_dotenv_once()
        mock_ld.assert_not_called()
