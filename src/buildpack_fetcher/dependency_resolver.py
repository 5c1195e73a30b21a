"""
Dependency resolution: turns a (name, version) request into a verified
artifact on disk.

A fetch reads from ``<manifest dir>/dependencies/`` when that directory exists
and from the entry's URI otherwise, then checks the MD5 declared in the
manifest. Nothing is retried.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .checksum import verify_md5
from .cli_config import FetcherConfig, get_config
from .dependency import Dependency
from .error_handling import BuildpackError, IntegrityError, get_error_handler
from .manifest import Manifest
from .structured_logging import (
    clear_fetch_context,
    log_checksum_mismatch,
    log_cleanup_failure,
    log_fetch_complete,
    log_fetch_start,
    log_source_selected,
)
from .transport import ArtifactTransport
from .uri_utils import cache_key, filter_uri

PathLike = Union[str, Path]


class FetchSource(Enum):
    """Where a fetched artifact came from."""

    CACHED = "cached"
    REMOTE = "remote"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a verified fetch."""

    dependency: Dependency
    output_path: Path
    filtered_uri: str
    source: FetchSource
    md5: str


class DependencyResolver:
    """Fetches manifest dependencies into output paths."""

    def __init__(
        self,
        manifest: Manifest,
        transport: Optional[ArtifactTransport] = None,
        config: Optional[FetcherConfig] = None,
    ):
        """
        Initialize resolver.

        Args:
            manifest: Parsed manifest to resolve against
            transport: Transport to move bytes with; one is created if omitted
            config: Configuration, defaults to the global configuration
        """
        self.manifest = manifest
        self.config = config or get_config()
        self.transport = transport or ArtifactTransport(network_config=self.config.network)
        self.error_handler = get_error_handler()

    def __enter__(self) -> "DependencyResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.transport.close()

    def cached_artifact_path(self, filtered_uri: str) -> Path:
        return self.manifest.dependencies_dir / cache_key(filtered_uri)

    def fetch(self, dependency: Dependency, output_path: PathLike) -> FetchResult:
        """
        Retrieve ``dependency`` into ``output_path`` and verify its digest.

        On a checksum mismatch ``output_path`` is removed. A transport failure
        may leave a partial file behind.

        Raises:
            DependencyNotFoundError: If the manifest has no such entry
            ConfigurationError: If the manifest declares the entry twice
            InvalidURIError: If the entry URI cannot be parsed
            FileSystemError: On local read/write failures
            NetworkError: On download failures
            IntegrityError: On checksum mismatch
        """
        output_path = Path(output_path)
        log_fetch_start(dependency.name, dependency.version, str(output_path))

        try:
            entry = self.manifest.find_entry(dependency)
            filtered_uri = filter_uri(entry.uri)

            if self.manifest.is_cached():
                source = FetchSource.CACHED
                cached_path = self.cached_artifact_path(filtered_uri)
                log_source_selected(source.value, str(cached_path))
                self.transport.copy_file(cached_path, output_path)
            else:
                source = FetchSource.REMOTE
                log_source_selected(source.value, filtered_uri)
                self.transport.download_file(entry.uri, output_path)

            try:
                actual_md5 = verify_md5(
                    output_path, entry.md5, self.config.network.chunk_size
                )
            except IntegrityError as e:
                log_checksum_mismatch(e.expected, e.actual, str(output_path))
                self._remove_output(output_path, e)
                raise
        except BuildpackError as e:
            self.error_handler.report(e, "dependency_resolver", "fetch")
            clear_fetch_context()
            raise

        log_fetch_complete(filtered_uri, str(output_path), source.value)
        return FetchResult(
            dependency=dependency,
            output_path=output_path,
            filtered_uri=filtered_uri,
            source=source,
            md5=actual_md5,
        )

    def fetch_default(self, name: str, output_path: PathLike) -> FetchResult:
        """Fetch the default version of ``name``."""
        version = self.manifest.default_version(name)
        return self.fetch(Dependency(name=name, version=version), output_path)

    def _remove_output(self, output_path: Path, error: BuildpackError) -> None:
        """Delete a rejected artifact; a failure here is attached to ``error``."""
        try:
            os.remove(output_path)
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            log_cleanup_failure(str(output_path), cleanup_error)
            error.add_secondary_error(cleanup_error)


def fetch_dependency(
    manifest_path: PathLike,
    name: str,
    version: Optional[str],
    output_path: PathLike,
    config: Optional[FetcherConfig] = None,
) -> FetchResult:
    """
    One-shot helper: load a manifest and fetch a single dependency.

    Args:
        manifest_path: Path to manifest.yml
        name: Dependency name
        version: Exact version, or None for the manifest's default version
        output_path: Destination file

    Returns:
        FetchResult for the verified artifact
    """
    config = config or get_config()
    manifest = Manifest.load(manifest_path, config.cache.dependencies_dir_name)
    with DependencyResolver(manifest, config=config) as resolver:
        if version is None:
            return resolver.fetch_default(name, output_path)
        return resolver.fetch(Dependency(name=name, version=version), output_path)
