"""
MD5 digest computation and verification for fetched artifacts.
"""

import hashlib
from pathlib import Path
from typing import Union

from .error_handling import FileSystemError, IntegrityError

DEFAULT_CHUNK_SIZE = 1024 * 1024


def compute_md5(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Compute the lowercase hex MD5 digest of a file, reading it in chunks.

    Raises:
        FileSystemError: If the file cannot be read
    """
    hasher = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                hasher.update(chunk)
    except OSError as e:
        raise FileSystemError(
            f"cannot read {path} for checksum: {e}", details={"path": str(path)}
        ) from e
    return hasher.hexdigest()


def verify_md5(
    path: Union[str, Path], expected_md5: str, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> str:
    """
    Check a file against the digest declared in the manifest.

    The comparison is exact: the manifest value must be lowercase hex.

    Returns:
        str: The actual digest

    Raises:
        IntegrityError: If the digests differ
    """
    actual_md5 = compute_md5(path, chunk_size)
    if actual_md5 != expected_md5:
        raise IntegrityError(
            expected_md5, actual_md5, details={"path": str(path)}
        )
    return actual_md5
