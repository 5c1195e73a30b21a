"""
CLI interface tests for buildpack-fetcher.
Tests the command-line interface and main entry points.
"""

import json

from click.testing import CliRunner

from buildpack_fetcher.main import cli


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test CLI help message."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "buildpack-fetcher" in result.output.lower()

    def test_cli_without_command_shows_help(self):
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 0
        assert "fetch" in result.output

    def test_cli_version(self):
        """Test CLI version display."""
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_info_command(self):
        """Test the info command."""
        result = CliRunner().invoke(cli, ["info"])

        assert result.exit_code == 0
        assert "Buildpack-Fetcher" in result.output


class TestFetchCommand:
    """Test the fetch command."""

    def test_fetch_default_from_cache(self, cached_ruby_manifest, temp_dir, artifact_bytes):
        output = temp_dir / "ruby.tgz"
        result = CliRunner().invoke(cli, ["fetch", str(cached_ruby_manifest), "ruby", str(output)])

        assert result.exit_code == 0
        assert "Downloaded [https://example.com/ruby-2.0.0.tgz]" in result.output
        assert output.read_bytes() == artifact_bytes

    def test_fetch_explicit_version_quiet(self, cached_ruby_manifest, temp_dir):
        output = temp_dir / "ruby.tgz"
        result = CliRunner().invoke(
            cli,
            ["fetch", str(cached_ruby_manifest), "ruby", str(output), "--version", "2.0.0", "-q"],
        )

        assert result.exit_code == 0
        assert "Downloaded" not in result.output
        assert output.exists()

    def test_fetch_unknown_version_fails(self, cached_ruby_manifest, temp_dir):
        output = temp_dir / "ruby.tgz"
        result = CliRunner().invoke(
            cli, ["fetch", str(cached_ruby_manifest), "ruby", str(output), "--version", "9.9.9"]
        )

        assert result.exit_code == 1
        assert "not found" in result.output
        assert not output.exists()

    def test_fetch_checksum_mismatch_fails(self, cached_ruby_manifest, temp_dir):
        cache_dir = cached_ruby_manifest.parent / "dependencies"
        (cache_dir / "https___example.com_ruby-2.0.0.tgz").write_bytes(b"corrupted")
        output = temp_dir / "ruby.tgz"

        result = CliRunner().invoke(cli, ["fetch", str(cached_ruby_manifest), "ruby", str(output)])

        assert result.exit_code == 1
        assert "md5 mismatch" in result.output
        assert not output.exists()

    def test_fetch_missing_manifest(self, temp_dir):
        result = CliRunner().invoke(
            cli, ["fetch", str(temp_dir / "missing.yml"), "ruby", str(temp_dir / "out")]
        )

        assert result.exit_code == 2


class TestManifestCommands:
    """Test the read-only manifest commands."""

    def test_default_version(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["default-version", str(ruby_manifest), "ruby"])

        assert result.exit_code == 0
        assert result.output.strip() == "2.0.0"

    def test_default_version_missing(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["default-version", str(ruby_manifest), "bundler"])

        assert result.exit_code == 1
        assert "no default version for bundler" in result.output

    def test_versions(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["versions", str(ruby_manifest), "ruby"])

        assert result.exit_code == 0
        assert result.output.split() == ["2.0.0", "2.1.0"]

    def test_versions_unknown_dependency(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["versions", str(ruby_manifest), "node"])

        assert result.exit_code == 1

    def test_show(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["show", str(ruby_manifest)])

        assert result.exit_code == 0
        assert "ruby" in result.output
        assert "2.1.0" in result.output
        assert "absent" in result.output

    def test_show_stack_filter(self, ruby_manifest):
        result = CliRunner().invoke(cli, ["show", str(ruby_manifest), "--stack", "cflinuxfs4"])

        assert result.exit_code == 0
        assert "2.1.0" in result.output
        assert "2.0.0" not in result.output

    def test_show_invalid_manifest(self, write_manifest):
        path = write_manifest("language: [unclosed\n")
        result = CliRunner().invoke(cli, ["show", str(path)])

        assert result.exit_code == 1


class TestConfigCommands:
    """Test configuration management commands."""

    def test_config_init(self, temp_dir):
        path = temp_dir / "config.json"
        result = CliRunner().invoke(cli, ["config", "init", "--path", str(path)])

        assert result.exit_code == 0
        data = json.loads(path.read_text())
        assert data["network"]["chunk_size"] == 65536
        assert data["cache"]["dependencies_dir_name"] == "dependencies"

    def test_config_init_does_not_overwrite(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("{}")

        result = CliRunner().invoke(cli, ["config", "init", "--path", str(path)])

        assert result.exit_code == 0
        assert path.read_text() == "{}"

    def test_config_show(self):
        result = CliRunner().invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "buildpack-fetcher/1.0.0" in result.output

    def test_config_validate_valid(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("network:\n  timeout_seconds: 30\nlogging:\n  log_level: DEBUG\n")

        result = CliRunner().invoke(cli, ["config", "validate", str(path)])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_config_validate_invalid(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"network": {"chunk_size": 0}}))

        result = CliRunner().invoke(cli, ["config", "validate", str(path)])

        assert result.exit_code == 1
        assert "network.chunk_size" in result.output
