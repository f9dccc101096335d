"""
Unit tests for configuration and command line parsing.
"""

import dataclasses
from pathlib import Path

import pytest

from staticserve.__main__ import build_parser, main, parse_config
from staticserve.config import ServerConfig


ENV_VARS = ["HTTP_HOST", "HTTP_PORT", "HTTP_ROOT_DIR", "HTTP_WORKERS", "HTTP_TIMEOUT", "HTTP_LOG_LEVEL"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.port == 8000
        assert config.root_dir == "."
        assert config.rate_limit == 100
        assert config.block_seconds == 300
        assert config.cache_max_age == 3600

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ServerConfig().port = 1

    def test_root_path_is_absolute(self, tmp_path: Path):
        config = ServerConfig(root_dir=str(tmp_path))
        assert config.root_path == tmp_path.resolve()
        assert config.root_path.is_absolute()

    def test_from_env(self, clean_env, tmp_path: Path):
        clean_env.setenv("HTTP_PORT", "9001")
        clean_env.setenv("HTTP_ROOT_DIR", str(tmp_path))
        clean_env.setenv("HTTP_WORKERS", "8")
        clean_env.setenv("HTTP_LOG_LEVEL", "debug")

        config = ServerConfig.from_env()

        assert config.port == 9001
        assert config.root_dir == str(tmp_path)
        assert config.max_workers == 8
        assert config.log_level == "DEBUG"

    def test_from_env_bad_number(self, clean_env):
        clean_env.setenv("HTTP_PORT", "eighty")
        with pytest.raises(ValueError):
            ServerConfig.from_env()

    def test_validate_accepts_defaults(self, tmp_path: Path):
        ServerConfig(root_dir=str(tmp_path)).validate()

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 65536},
        {"min_workers": 0},
        {"max_workers": 0},
        {"queue_size": 0},
        {"timeout": 0},
    ])
    def test_validate_rejects(self, tmp_path: Path, changes):
        config = ServerConfig(root_dir=str(tmp_path), **changes)
        with pytest.raises(ValueError):
            config.validate()

    def test_validate_rejects_missing_root(self, tmp_path: Path):
        with pytest.raises(ValueError, match="Root directory"):
            ServerConfig(root_dir=str(tmp_path / "missing")).validate()

    def test_validate_rejects_file_root(self, tmp_path: Path):
        file_root = tmp_path / "a.txt"
        file_root.write_text("x")

        with pytest.raises(ValueError):
            ServerConfig(root_dir=str(file_root)).validate()


class TestParseConfig:
    """Tests for command line handling."""

    def test_defaults(self, clean_env):
        config = parse_config([])

        assert config.port == 8000
        assert config.root_dir == "."

    def test_port_and_dir(self, clean_env, tmp_path: Path):
        config = parse_config(["--port", "9090", "--dir", str(tmp_path)])

        assert config.port == 9090
        assert config.root_dir == str(tmp_path)

    def test_unknown_arguments_ignored(self, clean_env):
        config = parse_config(["--verbose", "--port", "9091", "extra"])
        assert config.port == 9091

    @pytest.mark.parametrize("argv", [["--port"], ["--dir"], ["--port", "--dir"]])
    def test_flag_without_value_ignored(self, clean_env, argv):
        config = parse_config(argv)

        assert config.port == 8000
        assert config.root_dir == "."

    def test_only_port_and_dir_are_flags(self, clean_env):
        """Test that --port and --dir are the only flags defined."""
        actions = {a.dest for a in build_parser()._actions} - {"help"}
        assert actions == {"port", "root_dir"}

        assert parse_config(["--version"]).port == 8000

    def test_flags_override_env(self, clean_env):
        clean_env.setenv("HTTP_PORT", "7000")

        assert parse_config([]).port == 7000
        assert parse_config(["--port", "7001"]).port == 7001

    def test_invalid_root_exits_1(self, clean_env, tmp_path: Path, capsys):
        """Test that a missing root prints a diagnostic and exits 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "0", "--dir", str(tmp_path / "missing")])

        assert exc_info.value.code == 1
        assert "Root directory" in capsys.readouterr().err
