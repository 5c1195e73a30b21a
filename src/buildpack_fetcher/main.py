import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .cli_config import (
    FetcherConfig,
    create_sample_config,
    get_config,
    config_from_dict,
    load_config_file,
    validate_config_values,
)
from .dependency import Dependency
from .dependency_resolver import DependencyResolver
from .error_handling import BuildpackError, setup_error_handling
from .manifest import Manifest
from .structured_logging import configure_logging

console = Console()
error_console = Console(stderr=True)


def _apply_logging(config: FetcherConfig) -> None:
    configure_logging(config.logging.log_level)
    setup_error_handling(
        log_level=getattr(logging, config.logging.log_level.upper(), logging.WARNING),
        masking=config.logging.enable_sensitive_data_masking,
    )


def _report_error(error: BuildpackError) -> None:
    error_console.print(f"❌ Error: {error}", style="red", markup=False)
    if error.hint:
        error_console.print(error.hint, style="dim", markup=False)


def _load_manifest(manifest_path: str, config: FetcherConfig) -> Manifest:
    return Manifest.load(manifest_path, config.cache.dependencies_dir_name)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    Buildpack-Fetcher: resolve manifest dependencies to verified artifacts.

    Reads a buildpack manifest.yml, picks the requested dependency, copies it
    from the local dependencies/ cache or downloads it, and checks its MD5.
    """
    if version:
        console.print(f"Buildpack-Fetcher version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
    else:
        _apply_logging(get_config())


@cli.command()
@click.argument(
    "manifest_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.argument("name")
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.option(
    "--version",
    "dependency_version",
    help="Exact dependency version (default: the manifest's default version)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
def fetch(
    manifest_path: str,
    name: str,
    output_path: str,
    dependency_version: Optional[str],
    quiet: bool,
) -> None:
    """
    Fetch a dependency into OUTPUT_PATH and verify its checksum.

    Examples:

      buildpack-fetcher fetch manifest.yml ruby /tmp/ruby.tgz

      buildpack-fetcher fetch manifest.yml ruby /tmp/ruby.tgz --version 2.0.0
    """
    config = get_config()
    try:
        manifest = _load_manifest(manifest_path, config)
        with DependencyResolver(manifest, config=config) as resolver:
            if dependency_version is None:
                result = resolver.fetch_default(name, output_path)
            else:
                result = resolver.fetch(
                    Dependency(name=name, version=dependency_version), output_path
                )
    except BuildpackError as e:
        _report_error(e)
        sys.exit(1)

    if not quiet:
        console.print(
            f"Downloaded [{result.filtered_uri}]\n         to [{result.output_path}]",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


@cli.command("default-version")
@click.argument(
    "manifest_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.argument("name")
def default_version(manifest_path: str, name: str) -> None:
    """Print the default version pinned for NAME."""
    try:
        manifest = _load_manifest(manifest_path, get_config())
        version = manifest.default_version(name)
    except BuildpackError as e:
        _report_error(e)
        sys.exit(1)

    click.echo(version)


@cli.command()
@click.argument(
    "manifest_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.argument("name")
def versions(manifest_path: str, name: str) -> None:
    """List every version of NAME in the manifest."""
    try:
        manifest = _load_manifest(manifest_path, get_config())
    except BuildpackError as e:
        _report_error(e)
        sys.exit(1)

    found = manifest.all_dependency_versions(name)
    if not found:
        error_console.print(f"⚠️  No versions of {name} in manifest", style="yellow")
        sys.exit(1)
    for version in found:
        click.echo(version)


@cli.command()
@click.argument(
    "manifest_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.option("--stack", help="Only show dependencies supporting this stack")
def show(manifest_path: str, stack: Optional[str]) -> None:
    """Show the dependencies declared in a manifest."""
    try:
        manifest = _load_manifest(manifest_path, get_config())
    except BuildpackError as e:
        _report_error(e)
        sys.exit(1)

    entries = manifest.entries_for_stack(stack) if stack else manifest.entries
    defaults = {dep.name: dep.version for dep in manifest.default_versions}

    table = Table(title=f"{manifest.language or 'unknown'} manifest")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Default", justify="center")
    table.add_column("Stacks", style="dim")
    table.add_column("URI", overflow="fold")

    for entry in entries:
        table.add_row(
            entry.name,
            entry.version,
            "✓" if defaults.get(entry.name) == entry.version else "",
            ", ".join(entry.cf_stacks),
            entry.uri,
        )

    console.print(table)
    cache_state = "present" if manifest.is_cached() else "absent"
    console.print(f"Local cache ({manifest.dependencies_dir}): {cache_state}", style="dim")

    for dep in manifest.duplicate_entries():
        error_console.print(f"⚠️  {dep.name} {dep.version} is declared more than once", style="yellow")


@cli.command()
def info():
    """Show how dependencies are resolved and configured."""
    info_text = """
[bold blue]📋 Manifest Fields:[/bold blue]

• [green]language[/green] - Buildpack language
• [green]default_versions[/green] - One {name, version} pin per dependency
• [green]dependencies[/green] - {name, version, uri, md5, cf_stacks} entries

[bold blue]📦 Sources:[/bold blue]

• [yellow]Cached[/yellow] - dependencies/ beside manifest.yml exists; no network access
• [yellow]Remote[/yellow] - HTTP GET of the entry uri

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]BUILDPACK_FETCHER_TIMEOUT[/cyan] - Network timeout in seconds
• [cyan]BUILDPACK_FETCHER_USER_AGENT[/cyan] - HTTP User-Agent
• [cyan]BUILDPACK_FETCHER_DEPENDENCIES_DIR[/cyan] - Cache directory name
• [cyan]BUILDPACK_FETCHER_LOG_LEVEL[/cyan] - Log level

[bold blue]💡 Usage Examples:[/bold blue]

  buildpack-fetcher fetch manifest.yml ruby /tmp/ruby.tgz
  buildpack-fetcher default-version manifest.yml ruby
  buildpack-fetcher show manifest.yml --stack cflinuxfs3
"""
    console.print(
        Panel(
            info_text,
            title="[bold]Buildpack-Fetcher Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".buildpack-fetcher.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        error_console.print(f"❌ Failed to create config file: {e}", style="red")
        sys.exit(1)

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🌐 Network Settings:[/bold cyan]")
    console.print(f"  User Agent: {current.network.user_agent}")
    timeout = current.network.timeout_seconds
    console.print(f"  Timeout: {f'{timeout}s' if timeout else 'none'}")
    console.print(f"  Follow Redirects: {current.network.follow_redirects}")
    console.print(f"  Chunk Size: {current.network.chunk_size} bytes")

    console.print("\n[bold cyan]📦 Cache Settings:[/bold cyan]")
    console.print(f"  Dependencies Directory: {current.cache.dependencies_dir_name}")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current.logging.log_level}")
    console.print(
        f"  Sensitive Data Masking: {current.logging.enable_sensitive_data_masking}"
    )


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        error_console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    errors = validate_config_values(config_from_dict(config_data))
    if errors:
        error_console.print(f"❌ Configuration file {config_file} is invalid:", style="red")
        for error in errors:
            error_console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
