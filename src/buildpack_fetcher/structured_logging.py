"""
Structured logging configuration for buildpack-fetcher.

Emits one JSON document per event so build tooling can follow manifest loads
and dependency fetches.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class FetchLogger:
    """Structured logger for manifest and fetch events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"buildpack_fetcher.{name}")
        self._setup_logger()
        self.fetch_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)
            self.logger.propagate = False

    def set_fetch_context(
        self,
        dependency_name: Optional[str] = None,
        dependency_version: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> None:
        """Set fetch context attached to every subsequent event."""
        self.fetch_context = {}
        if dependency_name:
            self.fetch_context["dependency_name"] = dependency_name
        if dependency_version:
            self.fetch_context["dependency_version"] = dependency_version
        if output_path:
            self.fetch_context["output_path"] = output_path

    def clear_fetch_context(self) -> None:
        self.fetch_context.clear()

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.fetch_context, **kwargs}
        self.logger.log(level, event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log(logging.WARNING, event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log(logging.ERROR, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log(logging.DEBUG, event_type, **kwargs)


_manifest_logger = FetchLogger("manifest")
_fetch_logger = FetchLogger("fetch")
_transport_logger = FetchLogger("transport")


def get_manifest_logger() -> FetchLogger:
    """Get manifest loading logger."""
    return _manifest_logger


def get_fetch_logger() -> FetchLogger:
    """Get dependency fetch logger."""
    return _fetch_logger


def get_transport_logger() -> FetchLogger:
    """Get artifact transport logger."""
    return _transport_logger


def log_manifest_loaded(
    manifest_path: str, language: str, entry_count: int, duplicate_count: int = 0
) -> None:
    """Log a successfully parsed manifest."""
    logger = get_manifest_logger()
    logger.info(
        "manifest_loaded",
        manifest_path=manifest_path,
        language=language,
        entry_count=entry_count,
    )
    if duplicate_count:
        logger.warning(
            "duplicate_manifest_entries",
            manifest_path=manifest_path,
            duplicate_count=duplicate_count,
        )


def log_fetch_start(name: str, version: str, output_path: str) -> None:
    """Log fetch start event and set the fetch context."""
    logger = get_fetch_logger()
    logger.set_fetch_context(name, version, output_path)
    logger.info("fetch_started")


def log_source_selected(source: str, location: str) -> None:
    logger = get_fetch_logger()
    logger.debug("source_selected", source=source, location=location)


def log_fetch_complete(filtered_uri: str, output_path: str, source: str) -> None:
    """Log the completion signal for a verified fetch."""
    logger = get_fetch_logger()
    logger.info(
        "dependency_fetched",
        filtered_uri=filtered_uri,
        destination=output_path,
        source=source,
    )
    logger.clear_fetch_context()


def log_checksum_mismatch(expected: str, actual: str, output_path: str) -> None:
    get_fetch_logger().error(
        "checksum_mismatch", expected_md5=expected, actual_md5=actual, path=output_path
    )


def log_cleanup_failure(output_path: str, error: BaseException) -> None:
    get_fetch_logger().warning(
        "cleanup_failed", path=output_path, error=str(error)
    )


def log_download_start(url: str, destination: str) -> None:
    get_transport_logger().debug("download_started", url=url, destination=destination)


def clear_fetch_context() -> None:
    """Clear fetch context on every logger."""
    for logger in [_manifest_logger, _fetch_logger, _transport_logger]:
        logger.clear_fetch_context()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    for logger in [_manifest_logger, _fetch_logger, _transport_logger]:
        logger.logger.setLevel(level)


configure_logging()
