"""
Error types and centralized error reporting for buildpack-fetcher.

Every failure raised by the library is a ``BuildpackError`` subclass carrying a
machine-readable category and, where an operator can act on it, a hint that
points at the manifest documentation. Failures are reported through the
process-wide ``ErrorHandler`` before they are raised.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

MANIFEST_DOCS_URL = "https://docs.cloudfoundry.org/buildpacks/custom.html"

DEFAULT_VERSIONS_HINT = (
    "The buildpack manifest is misconfigured for 'default_versions'. "
    "Contact your Cloud Foundry operator/admin. For more information, see "
    f"{MANIFEST_DOCS_URL}#specifying-default-versions"
)

DEPENDENCIES_HINT = (
    "The requested dependency is not listed in the buildpack manifest. "
    "Check the 'dependencies' section of manifest.yml. For more information, see "
    f"{MANIFEST_DOCS_URL}"
)


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Machine-readable error kinds."""

    FILESYSTEM = "FILESYSTEM"
    PARSING = "PARSING"
    CONFIGURATION = "CONFIGURATION"
    NOT_FOUND = "NOT_FOUND"
    URI = "URI"
    NETWORK = "NETWORK"
    INTEGRITY = "INTEGRITY"


class BuildpackError(Exception):
    """Base class for every error raised by buildpack-fetcher."""

    category: ErrorCategory = ErrorCategory.FILESYSTEM

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}
        self.secondary_errors: List[BaseException] = []

    def add_secondary_error(self, error: BaseException) -> None:
        """Attach a failure that happened while handling this one."""
        self.secondary_errors.append(error)

    def __str__(self) -> str:
        return self.message


class FileSystemError(BuildpackError):
    """Reading or writing a local file failed."""

    category = ErrorCategory.FILESYSTEM


class ManifestParseError(BuildpackError):
    """Manifest content is not a structurally valid manifest."""

    category = ErrorCategory.PARSING


class ConfigurationError(BuildpackError):
    """Manifest configuration is missing or ambiguous."""

    category = ErrorCategory.CONFIGURATION


class DependencyNotFoundError(BuildpackError):
    """Requested dependency is absent from the manifest catalog."""

    category = ErrorCategory.NOT_FOUND


class InvalidURIError(BuildpackError):
    """A dependency URI could not be parsed."""

    category = ErrorCategory.URI


class NetworkError(BuildpackError):
    """Remote retrieval failed."""

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code


class IntegrityError(BuildpackError):
    """Artifact digest does not match the manifest."""

    category = ErrorCategory.INTEGRITY

    def __init__(self, expected: str, actual: str, **kwargs):
        super().__init__(f"md5 mismatch: expected: {expected} got: {actual}", **kwargs)
        self.expected = expected
        self.actual = actual


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    traceback_info: Optional[str] = None
    hint: Optional[str] = None


class SecureLogger:
    """Logger that strips credentials from messages before emitting them."""

    SENSITIVE_PATTERNS = [
        (re.compile(r"(https?://[^@\s/]+:)[^@\s/]+@", re.IGNORECASE), r"\1[REDACTED]@"),
        (re.compile(r'token["\s]*[:=]["\s]*([^\s"&:]+)', re.IGNORECASE), "token=[REDACTED]"),
        (re.compile(r'password["\s]*[:=]["\s]*([^\s"&:]+)', re.IGNORECASE), "password=[REDACTED]"),
        (re.compile(r"Authorization:\s*\w+\s+([^\s]+)", re.IGNORECASE), "Authorization: [REDACTED]"),
    ]
    SENSITIVE_KEYS = {"token", "password", "secret", "credential", "auth"}

    def __init__(self, name: str, level: int = logging.WARNING, masking: bool = True):
        """
        Initialize secure logger.

        Args:
            name: Logger name
            level: Logging level
            masking: Whether to redact credentials
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.masking = masking

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def sanitize_message(self, message: str) -> str:
        """Remove credentials and tokens from a message."""
        if not self.masking:
            return message
        sanitized = message
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            sanitized = pattern.sub(replacement, sanitized)
        return sanitized

    def _sanitize_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in data.items():
            if self.masking and any(s in key.lower() for s in self.SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_dict(value)
            elif isinstance(value, str):
                sanitized[key] = self.sanitize_message(value)
            else:
                sanitized[key] = value
        return sanitized

    def log_error_context(self, context: ErrorContext) -> None:
        """Log error context with the matching level."""
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": self._sanitize_dict(context.details),
        }
        if context.exception:
            log_data["exception"] = type(context.exception).__name__
        if context.hint:
            log_data["hint"] = context.hint

        log_message = f"{self.sanitize_message(context.message)} | {log_data}"
        self.logger.log(getattr(logging, context.level.value), log_message)


ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Provides credential-safe logging and callbacks for library components.
    """

    def __init__(
        self,
        logger_name: str = "buildpack_fetcher",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
        masking: bool = True,
    ):
        self.logger = SecureLogger(logger_name, log_level, masking)
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """
        Register error callback.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.error_callbacks.setdefault(category, []).append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=traceback.format_exc() if exception else None,
            hint=hint,
        )

        self.logger.log_error_context(context)

        if self.enable_callbacks:
            callbacks = self.error_callbacks.get(category, []) + self.global_callbacks
            for callback in callbacks:
                try:
                    callback(context)
                except Exception as cb_error:
                    # Callback failures must not replace the reported error
                    self.logger.logger.error(f"Error in callback: {cb_error}")

        return context

    def report(
        self,
        error: BuildpackError,
        module: str,
        function: str,
    ) -> ErrorContext:
        """Report a ``BuildpackError`` using its own category, details and hint."""
        return self.handle_error(
            ErrorLevel.ERROR,
            error.category,
            error.message,
            module,
            function,
            exception=error.__cause__ or error,
            details=error.details,
            hint=error.hint,
        )

    def warning(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "buildpack_fetcher",
    masking: bool = True,
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Args:
        log_level: Logging level
        enable_callbacks: Whether to enable callbacks
        logger_name: Logger name
        masking: Whether to redact credentials in log output

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, enable_callbacks, masking)
    return _global_error_handler
