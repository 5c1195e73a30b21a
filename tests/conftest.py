"""
Shared fixtures for buildpack-fetcher tests.
"""

import hashlib
import os
import shutil
import tempfile
from pathlib import Path

import pytest
import yaml

from buildpack_fetcher import cli_config
from buildpack_fetcher.cli_config import FetcherConfig
from buildpack_fetcher.error_handling import get_error_handler

ARTIFACT_BYTES = b"ruby-2.0.0 release tarball\n" * 64
ARTIFACT_MD5 = hashlib.md5(ARTIFACT_BYTES).hexdigest()
RUBY_URI = "https://example.com/ruby-2.0.0.tgz"

# Bind the library log handler to the real stderr before CliRunner swaps it
get_error_handler()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Use default settings regardless of config files or environment."""
    for key in list(os.environ):
        if key.startswith("BUILDPACK_FETCHER_"):
            monkeypatch.delenv(key, raising=False)
    cli_config.reset_config()
    monkeypatch.setattr(cli_config, "_global_config", FetcherConfig())
    yield
    cli_config.reset_config()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def artifact_bytes():
    return ARTIFACT_BYTES


@pytest.fixture
def artifact_md5():
    return ARTIFACT_MD5


@pytest.fixture
def write_manifest(temp_dir):
    """Factory writing a manifest.yml into its own directory under temp_dir."""

    def _write(data, name="buildpack"):
        root = temp_dir / name
        root.mkdir(parents=True, exist_ok=True)
        path = root / "manifest.yml"
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def ruby_manifest_data():
    """The ruby manifest used throughout the fetch scenarios."""
    return {
        "language": "ruby",
        "default_versions": [{"name": "ruby", "version": "2.0.0"}],
        "dependencies": [
            {
                "name": "ruby",
                "version": "2.0.0",
                "uri": RUBY_URI,
                "md5": ARTIFACT_MD5,
                "cf_stacks": ["cflinuxfs3"],
            },
            {
                "name": "ruby",
                "version": "2.1.0",
                "uri": "https://example.com/ruby-2.1.0.tgz",
                "md5": "0" * 32,
                "cf_stacks": ["cflinuxfs4"],
            },
        ],
    }


@pytest.fixture
def ruby_manifest(write_manifest, ruby_manifest_data):
    return write_manifest(ruby_manifest_data)


@pytest.fixture
def cached_ruby_manifest(ruby_manifest):
    """Ruby manifest with the 2.0.0 artifact in the sibling dependencies/ cache."""
    cache_dir = ruby_manifest.parent / "dependencies"
    cache_dir.mkdir()
    (cache_dir / "https___example.com_ruby-2.0.0.tgz").write_bytes(ARTIFACT_BYTES)
    return ruby_manifest
