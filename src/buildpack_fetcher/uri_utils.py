"""
URI helpers for deriving stable cache filenames from dependency URIs.
"""

from urllib.parse import urlsplit, urlunsplit

from .error_handling import InvalidURIError

CACHE_KEY_REPLACEMENTS = str.maketrans({"/": "_", ":": "_", "?": "_", "&": "_"})


def filter_uri(uri: str) -> str:
    """
    Reduce a dependency URI to its stable resource identity.

    Credentials, the query string and the fragment are dropped; scheme, host,
    port and path are kept. Host-less URIs such as ``file:///opt/ruby.tgz``
    are accepted.

    Args:
        uri: URI as written in the manifest

    Returns:
        str: The filtered URI

    Raises:
        InvalidURIError: If the URI cannot be parsed
    """
    if not isinstance(uri, str) or not uri.strip():
        raise InvalidURIError(f"invalid dependency uri: {uri!r}")

    try:
        parts = urlsplit(uri)
        # Raises ValueError for a non-numeric or out-of-range port
        _ = parts.port
    except ValueError as e:
        raise InvalidURIError(f"invalid dependency uri: {e}") from e

    if not parts.scheme and not parts.path:
        raise InvalidURIError(f"invalid dependency uri: {uri!r} has no scheme or path")

    # Keep host and port as written, minus any user:password@ prefix
    netloc = parts.netloc.rsplit("@", 1)[-1]

    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def cache_key(filtered_uri: str) -> str:
    """Turn a filtered URI into a flat filename inside the cache directory."""
    return filtered_uri.translate(CACHE_KEY_REPLACEMENTS)


def redact_uri(uri: str) -> str:
    """Return the URI with its password and query string masked, for logs and errors."""
    try:
        parts = urlsplit(uri)
        netloc = parts.netloc
        if parts.password is not None:
            netloc = f"{parts.username}:[REDACTED]@{netloc.rsplit('@', 1)[1]}"
        query = "[REDACTED]" if parts.query else ""
        return urlunsplit((parts.scheme, netloc, parts.path, query, ""))
    except ValueError:
        return "[REDACTED_URL]"
