"""
Custom exception hierarchy for buildkeeper.

This module defines structured exception types used across buildkeeper.
All exceptions inherit from :class:`BuildKeeperError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.

None of these errors are retried inside the version or dependency core;
they propagate to the calling orchestration layer.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional


class BuildKeeperError(Exception):
    """Base exception for all buildkeeper errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class VersionError(BuildKeeperError):
    """Base class for version parsing and synthesis failures."""


class MalformedVersion(VersionError):
    """Raised when text is not a ``MAJOR.MINOR.PATCH[-LABEL][+META]`` version.

    Args:
        message: Error description.
        text: The offending input.
    """

    __slots__ = ("text",)

    def __init__(self, message: str, *, text: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        if text is not None:
            details["text"] = _truncate(text)
        super().__init__(message, details)
        self.text = text


class VersionTagMismatch(VersionError):
    """Raised when a tag-triggered master build does not match its tag.

    Args:
        message: Error description.
        configured: Version declared in the build configuration.
        tag: Latest SemVer tag found in git, if any.
    """

    __slots__ = ("configured", "tag")

    def __init__(
        self,
        message: str,
        *,
        configured: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "configured", configured)
        details["tag"] = tag if tag is not None else "<none>"
        super().__init__(message, details)
        self.configured = configured
        self.tag = tag


class EmptyVersionResult(VersionError):
    """Raised when version synthesis serializes to an empty string."""


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class DependencyError(BuildKeeperError):
    """Base class for dependency declaration and resolution failures.

    Args:
        message: Error description.
        package_name: Package involved, if known.
        dependency: Raw dependency string, if known.
    """

    __slots__ = ("package_name", "dependency")

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        dependency: Optional[str] = None,
        **extra: Any,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_name)
        _add_if(details, "dependency", dependency)
        for key, value in extra.items():
            _add_if(details, key, value)
        super().__init__(message, details)
        self.package_name = package_name
        self.dependency = dependency


class NoMatchingVersion(DependencyError):
    """Raised when no candidate version satisfies a dependency."""


class UnsupportedConstraintKind(DependencyError):
    """Raised for a version operator other than ``~=`` or ``=``."""


class InvalidOverrideSyntax(DependencyError):
    """Raised when a ``group:::dependency`` line has an empty side."""


class InvalidConstraintPattern(DependencyError):
    """Raised when a ``~=`` pattern cannot be compiled or is too long."""


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class RepositoryError(BuildKeeperError):
    """Raised when a package repository cannot be queried.

    Args:
        message: Error description.
        package_name: Package being queried.
        command: External command involved, if any.
    """

    __slots__ = ("package_name", "command")

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        command: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_name)
        _add_if(details, "command", command)
        super().__init__(message, details)
        self.package_name = package_name
        self.command = command


class NetworkError(BuildKeeperError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class GitStateError(BuildKeeperError):
    """Raised when branch, commit or tag state cannot be determined.

    Args:
        message: Error description.
        command: git command that failed, if any.
    """

    __slots__ = ("command",)

    def __init__(self, message: str, *, command: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "command", command)
        super().__init__(message, details)
        self.command = command


class ConfigError(BuildKeeperError):
    """Raised when the configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Offending option name, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)
        super().__init__(message, details)
        self.config_path = config_path
        self.option = option


class FileOperationError(BuildKeeperError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error
