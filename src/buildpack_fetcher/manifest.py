"""
In-memory buildpack manifest: dependency catalog, default versions and the
location of the sibling artifact cache.

A manifest file looks like::

    language: ruby
    default_versions:
      - name: ruby
        version: 2.0.0
    dependencies:
      - name: ruby
        version: 2.0.0
        uri: https://example.com/ruby-2.0.0.tgz
        md5: 0123456789abcdef0123456789abcdef
        cf_stacks: [cflinuxfs3]
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import yaml

from .dependency import Dependency
from .error_handling import (
    DEFAULT_VERSIONS_HINT,
    DEPENDENCIES_HINT,
    ConfigurationError,
    DependencyNotFoundError,
    FileSystemError,
    ManifestParseError,
    get_error_handler,
)
from .structured_logging import log_manifest_loaded

DEPENDENCIES_DIR_NAME = "dependencies"


@dataclass(frozen=True)
class ManifestEntry:
    """One catalog record binding a dependency to its source and digest."""

    dependency: Dependency
    uri: str
    md5: str
    cf_stacks: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.dependency.name

    @property
    def version(self) -> str:
        return self.dependency.version

    def supports_stack(self, stack: str) -> bool:
        return stack in self.cf_stacks


class Manifest:
    """
    Parsed manifest. Read-only once constructed.

    Entries are indexed by ``Dependency`` so lookups are O(1) and a dependency
    declared twice is reported instead of silently resolved.
    """

    def __init__(
        self,
        language: str,
        default_versions: Sequence[Dependency],
        entries: Sequence[ManifestEntry],
        root_dir: Union[str, Path],
        dependencies_dir_name: str = DEPENDENCIES_DIR_NAME,
    ):
        self.language = language
        self.default_versions: Tuple[Dependency, ...] = tuple(default_versions)
        self.entries: Tuple[ManifestEntry, ...] = tuple(entries)
        self.root_dir = Path(os.path.abspath(root_dir))
        self.dependencies_dir_name = dependencies_dir_name

        self._index: Dict[Dependency, List[ManifestEntry]] = {}
        for entry in self.entries:
            self._index.setdefault(entry.dependency, []).append(entry)

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        dependencies_dir_name: str = DEPENDENCIES_DIR_NAME,
    ) -> "Manifest":
        """
        Read and parse the manifest at ``path``.

        Args:
            path: Manifest file location
            dependencies_dir_name: Name of the cache directory beside the manifest

        Returns:
            Manifest: The parsed manifest, rooted at the file's directory

        Raises:
            FileSystemError: If the file cannot be read
            ManifestParseError: If the content is not a valid manifest
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except UnicodeDecodeError as e:
            error = ManifestParseError(
                f"manifest {path} is not valid UTF-8: {e}", details={"path": str(path)}
            )
            _warn_unloadable(error)
            raise error from e
        except OSError as e:
            raise FileSystemError(
                f"cannot read manifest {path}: {e}", details={"path": str(path)}
            ) from e

        try:
            # BaseLoader keeps every scalar as written: version 2.10 stays "2.10"
            data = yaml.load(text, Loader=yaml.BaseLoader)
        except yaml.YAMLError as e:
            error = ManifestParseError(
                f"cannot parse manifest {path}: {e}", details={"path": str(path)}
            )
            _warn_unloadable(error)
            raise error from e

        try:
            manifest = cls.from_dict(
                data,
                root_dir=Path(os.path.abspath(path)).parent,
                dependencies_dir_name=dependencies_dir_name,
            )
        except ManifestParseError as e:
            e.details.setdefault("path", str(path))
            _warn_unloadable(e)
            raise

        log_manifest_loaded(
            str(path),
            manifest.language,
            len(manifest.entries),
            len(manifest.duplicate_entries()),
        )
        return manifest

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        root_dir: Union[str, Path],
        dependencies_dir_name: str = DEPENDENCIES_DIR_NAME,
    ) -> "Manifest":
        """Build a manifest from an already-parsed document."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ManifestParseError("manifest must be a mapping at the top level")

        language = data.get("language", "")
        if not isinstance(language, str):
            raise ManifestParseError("manifest 'language' must be a string")

        default_versions = [
            _parse_dependency(raw, f"default_versions[{i}]")
            for i, raw in enumerate(_sequence(data, "default_versions"))
        ]
        entries = [
            _parse_entry(raw, f"dependencies[{i}]")
            for i, raw in enumerate(_sequence(data, "dependencies"))
        ]

        return cls(language, default_versions, entries, root_dir, dependencies_dir_name)

    def default_version(self, name: str) -> str:
        """
        Return the version pinned for ``name`` in ``default_versions``.

        Raises:
            ConfigurationError: If ``name`` is pinned zero or several times
        """
        versions = [dep.version for dep in self.default_versions if dep.name == name]

        if not versions:
            raise ConfigurationError(
                f"no default version for {name}",
                hint=DEFAULT_VERSIONS_HINT,
                details={"dependency_name": name},
            )
        if len(versions) > 1:
            raise ConfigurationError(
                f"found {len(versions)} default versions for {name}",
                hint=DEFAULT_VERSIONS_HINT,
                details={"dependency_name": name, "count": len(versions)},
            )
        return versions[0]

    def find_entry(self, dependency: Dependency) -> ManifestEntry:
        """
        Return the catalog entry for exactly this name and version.

        Raises:
            DependencyNotFoundError: If no entry matches
            ConfigurationError: If the dependency is declared more than once
        """
        matches = self._index.get(dependency)
        if not matches:
            raise DependencyNotFoundError(
                f"dependency {dependency.name} {dependency.version} not found",
                hint=DEPENDENCIES_HINT,
                details={"dependency_name": dependency.name, "version": dependency.version},
            )
        if len(matches) > 1:
            raise ConfigurationError(
                f"found {len(matches)} manifest entries for "
                f"{dependency.name} {dependency.version}",
                hint=DEPENDENCIES_HINT,
                details={
                    "dependency_name": dependency.name,
                    "version": dependency.version,
                    "count": len(matches),
                },
            )
        return matches[0]

    def all_dependency_versions(self, name: str) -> List[str]:
        """Every catalogued version of ``name``, in manifest order."""
        versions: List[str] = []
        for entry in self.entries:
            if entry.name == name and entry.version not in versions:
                versions.append(entry.version)
        return versions

    def duplicate_entries(self) -> List[Dependency]:
        """Dependencies declared more than once in the catalog."""
        return [dep for dep, matches in self._index.items() if len(matches) > 1]

    def entries_for_stack(self, stack: str) -> List[ManifestEntry]:
        return [entry for entry in self.entries if entry.supports_stack(stack)]

    @property
    def dependencies_dir(self) -> Path:
        return self.root_dir / self.dependencies_dir_name

    def is_cached(self) -> bool:
        """Whether a local artifact cache directory sits beside the manifest."""
        return self.dependencies_dir.exists()

    def __repr__(self) -> str:
        return (
            f"Manifest(language={self.language!r}, entries={len(self.entries)}, "
            f"root_dir={str(self.root_dir)!r})"
        )


def load_manifest(
    path: Union[str, Path], dependencies_dir_name: str = DEPENDENCIES_DIR_NAME
) -> Manifest:
    """Convenience wrapper around ``Manifest.load``."""
    return Manifest.load(path, dependencies_dir_name)


def _warn_unloadable(error: ManifestParseError) -> None:
    get_error_handler().warning(
        error.category,
        error.message,
        "manifest",
        "load",
        exception=error.__cause__ or error,
        details=error.details,
    )


def _sequence(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None or value == "":
        return []
    if not isinstance(value, list):
        raise ManifestParseError(f"manifest '{key}' must be a list")
    return value


def _string_field(raw: Dict[str, Any], key: str, where: str, required: bool) -> str:
    value = raw.get(key)
    if value is None:
        if required:
            raise ManifestParseError(f"{where}: missing '{key}'")
        return ""
    if not isinstance(value, str):
        raise ManifestParseError(f"{where}: '{key}' must be a string")
    return value


def _parse_dependency(raw: Any, where: str) -> Dependency:
    if not isinstance(raw, dict):
        raise ManifestParseError(f"{where}: expected a mapping with name and version")
    return Dependency(
        name=_string_field(raw, "name", where, required=True),
        version=_string_field(raw, "version", where, required=True),
    )


def _parse_entry(raw: Any, where: str) -> ManifestEntry:
    dependency = _parse_dependency(raw, where)

    stacks = raw.get("cf_stacks")
    if stacks is None or stacks == "":
        stacks = []
    if not isinstance(stacks, list) or not all(isinstance(s, str) for s in stacks):
        raise ManifestParseError(f"{where}: 'cf_stacks' must be a list of strings")

    return ManifestEntry(
        dependency=dependency,
        # Stripped once so the cache key and the request agree
        uri=_string_field(raw, "uri", where, required=False).strip(),
        md5=_string_field(raw, "md5", where, required=False),
        cf_stacks=tuple(stacks),
    )
