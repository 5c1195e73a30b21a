"""
Configuration tests for buildpack-fetcher.
Tests defaults, config files, environment overrides and validation.
"""

import json

import pytest

from buildpack_fetcher import cli_config
from buildpack_fetcher.cli_config import (
    FetcherConfig,
    build_config,
    config_from_dict,
    create_sample_config,
    find_config_file,
    get_config,
    load_config_file,
    validate_config_values,
)


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        config = FetcherConfig()

        assert config.network.timeout_seconds is None
        assert config.network.follow_redirects is True
        assert config.cache.dependencies_dir_name == "dependencies"
        assert config.logging.log_level == "INFO"
        assert validate_config_values(config) == []

    def test_sample_config_matches_defaults(self):
        assert config_from_dict(json.loads(create_sample_config())) == FetcherConfig()


class TestEnvironmentOverrides:
    """Test BUILDPACK_FETCHER_* environment variables."""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("BUILDPACK_FETCHER_TIMEOUT", "30")
        monkeypatch.setenv("BUILDPACK_FETCHER_USER_AGENT", "ci-fetcher/2")
        monkeypatch.setenv("BUILDPACK_FETCHER_DEPENDENCIES_DIR", "vendor")
        monkeypatch.setenv("BUILDPACK_FETCHER_LOG_LEVEL", "debug")
        monkeypatch.setenv("BUILDPACK_FETCHER_FOLLOW_REDIRECTS", "false")

        config = build_config()

        assert config.network.timeout_seconds == 30.0
        assert config.network.user_agent == "ci-fetcher/2"
        assert config.network.follow_redirects is False
        assert config.cache.dependencies_dir_name == "vendor"
        assert config.logging.log_level == "DEBUG"

    def test_environment_beats_file(self, monkeypatch):
        monkeypatch.setenv("BUILDPACK_FETCHER_DEPENDENCIES_DIR", "from-env")

        config = build_config({"cache": {"dependencies_dir_name": "from-file"}})

        assert config.cache.dependencies_dir_name == "from-env"

    def test_invalid_integer_is_ignored(self, monkeypatch):
        monkeypatch.setenv("BUILDPACK_FETCHER_CHUNK_SIZE", "lots")

        assert build_config().network.chunk_size == 64 * 1024


class TestValidation:
    """Test configuration validation."""

    @pytest.mark.parametrize(
        "section, values, message",
        [
            ("network", {"timeout_seconds": 0}, "network.timeout_seconds"),
            ("network", {"chunk_size": -1}, "network.chunk_size"),
            ("network", {"user_agent": ""}, "network.user_agent"),
            ("cache", {"dependencies_dir_name": "../outside"}, "cache.dependencies_dir_name"),
            ("logging", {"log_level": "LOUD"}, "logging.log_level"),
        ],
    )
    def test_invalid_values(self, section, values, message):
        errors = validate_config_values(config_from_dict({section: values}))

        assert len(errors) == 1
        assert errors[0].startswith(message)

    def test_invalid_values_fall_back_to_defaults(self):
        config = build_config({"network": {"chunk_size": -1, "timeout_seconds": 10}})

        assert config.network.chunk_size == 64 * 1024
        assert config.network.timeout_seconds == 10


class TestConfigFiles:
    """Test locating and loading config files."""

    def test_load_json(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"cache": {"dependencies_dir_name": "vendor"}}))

        assert load_config_file(path) == {"cache": {"dependencies_dir_name": "vendor"}}

    def test_load_yaml(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("network:\n  timeout_seconds: 12.5\n")

        assert load_config_file(path) == {"network": {"timeout_seconds": 12.5}}

    @pytest.mark.parametrize(
        "name, content",
        [("config.toml", "x = 1"), ("config.json", "{not json"), ("config.yaml", "- a\n- b\n")],
    )
    def test_unusable_files(self, temp_dir, name, content):
        path = temp_dir / name
        path.write_text(content)

        assert load_config_file(path) is None

    def test_missing_file(self, temp_dir):
        assert load_config_file(temp_dir / "nope.json") is None

    def test_find_and_load_from_working_directory(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(cli_config.Path, "home", lambda: temp_dir / "home")
        (temp_dir / ".buildpack-fetcher.yml").write_text("logging:\n  log_level: ERROR\n")

        assert find_config_file().name == ".buildpack-fetcher.yml"

        cli_config.reset_config()
        assert get_config().logging.log_level == "ERROR"
        assert get_config() is get_config()

    def test_no_config_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(cli_config.Path, "home", lambda: temp_dir / "home")

        assert find_config_file() is None
