"""
buildpack-fetcher: resolve buildpack manifest dependencies to verified artifacts.
"""

from .checksum import compute_md5, verify_md5
from .dependency import Dependency
from .dependency_resolver import (
    DependencyResolver,
    FetchResult,
    FetchSource,
    fetch_dependency,
)
from .error_handling import (
    BuildpackError,
    ConfigurationError,
    DependencyNotFoundError,
    ErrorCategory,
    FileSystemError,
    IntegrityError,
    InvalidURIError,
    ManifestParseError,
    NetworkError,
)
from .manifest import Manifest, ManifestEntry, load_manifest
from .transport import ArtifactTransport
from .uri_utils import cache_key, filter_uri

__version__ = "1.0.0"

__all__ = [
    "ArtifactTransport",
    "BuildpackError",
    "ConfigurationError",
    "Dependency",
    "DependencyNotFoundError",
    "DependencyResolver",
    "ErrorCategory",
    "FetchResult",
    "FetchSource",
    "FileSystemError",
    "IntegrityError",
    "InvalidURIError",
    "Manifest",
    "ManifestEntry",
    "ManifestParseError",
    "NetworkError",
    "cache_key",
    "compute_md5",
    "fetch_dependency",
    "filter_uri",
    "load_manifest",
    "verify_md5",
]
