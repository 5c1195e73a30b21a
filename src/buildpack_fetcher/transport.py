"""
Artifact transport: moves bytes from the local cache or the network to a
destination file.

The HTTP client is created on first use, or injected, and closed when the
transport is closed or its context exits.
"""

from pathlib import Path
from typing import Iterator, Optional, Union

import httpx
from httpx import HTTPStatusError, RequestError

from .cli_config import NetworkConfig, get_config
from .error_handling import FileSystemError, InvalidURIError, NetworkError
from .structured_logging import log_download_start
from .uri_utils import redact_uri

PathLike = Union[str, Path]


class ArtifactTransport:
    """Copies cached artifacts and downloads remote ones."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        network_config: Optional[NetworkConfig] = None,
    ):
        self.network_config = network_config or get_config().network
        self.client = client
        self._owns_client = client is None

    def __enter__(self) -> "ArtifactTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self.client is not None and self._owns_client:
            self.client.close()
            self.client = None

    def _get_client(self) -> httpx.Client:
        if self.client is None:
            self.client = httpx.Client(
                timeout=httpx.Timeout(self.network_config.timeout_seconds),
                follow_redirects=self.network_config.follow_redirects,
                headers={"User-Agent": self.network_config.user_agent},
            )
            self._owns_client = True
        return self.client

    def copy_file(self, source: PathLike, dest: PathLike) -> None:
        """
        Copy a cached artifact byte-for-byte to ``dest``.

        Raises:
            FileSystemError: If the source cannot be read or dest written
        """
        try:
            with open(source, "rb") as src:
                write_to_file(iter(lambda: src.read(self.network_config.chunk_size), b""), dest)
        except FileSystemError:
            raise
        except OSError as e:
            raise FileSystemError(
                f"cannot read cached artifact {source}: {e}",
                details={"source": str(source), "destination": str(dest)},
            ) from e

    def download_file(self, url: str, dest: PathLike) -> None:
        """
        Stream ``url`` to ``dest``.

        The response status is checked before ``dest`` is opened, so an HTTP
        error page is never written to disk.

        Raises:
            NetworkError: On a non-2xx status or any transport failure
            FileSystemError: If dest cannot be written
        """
        safe_url = redact_uri(url)
        log_download_start(safe_url, str(dest))

        try:
            with self._get_client().stream("GET", url) as response:
                response.raise_for_status()
                write_to_file(
                    response.iter_bytes(chunk_size=self.network_config.chunk_size), dest
                )
        except HTTPStatusError as e:
            status = e.response.status_code
            raise NetworkError(
                f"could not download {safe_url}: HTTP {status}",
                url=safe_url,
                status_code=status,
                details={"url": safe_url, "status_code": status},
            ) from e
        except RequestError as e:
            raise NetworkError(
                f"could not download {safe_url}: {e}",
                url=safe_url,
                details={"url": safe_url},
            ) from e
        except httpx.InvalidURL as e:
            raise InvalidURIError(f"invalid dependency uri {safe_url}: {e}") from e


def write_to_file(chunks: Iterator[bytes], dest: PathLike) -> None:
    """
    Write ``chunks`` to ``dest``, creating missing parent directories.

    Raises:
        FileSystemError: If the destination cannot be created or written
    """
    dest = Path(dest)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as out:
            for chunk in chunks:
                out.write(chunk)
    except OSError as e:
        raise FileSystemError(
            f"cannot write {dest}: {e}", details={"destination": str(dest)}
        ) from e

