"""
Centralized constants for buildkeeper.

This module defines immutable configuration values used across buildkeeper,
including version patterns, fallback markers, network settings, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, Tuple

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "buildkeeper/{version}"

# ---------------------------------------------------------------------------
# Version patterns
# ---------------------------------------------------------------------------

#: SemVer 2.0 pattern. Groups: major, minor, patch, label, metadata.
SEMVER_PATTERN: Final[str] = (
    r"(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)"
    r"(?:-(?P<label>[^+]+))?(?:\+(?P<metadata>.+))?"
)

#: Dependency line: ``name`` or ``name (OP value)``.
DEPENDENCY_PATTERN: Final[str] = (
    r"^(?P<name>[^()\s]+)(?:\s+\((?P<op>[^\s()]*)\s+(?P<value>.*)\))?$"
)

#: Separator between a component override and the dependency string.
GROUP_OVERRIDE_SEPARATOR: Final[str] = ":::"

#: Marker introducing a passthrough annotation on a dependency line.
ANNOTATION_MARKER: Final[str] = "#"

#: Timestamp layout used in daily/internal/private labels.
LABEL_TIMESTAMP_FORMAT: Final[str] = "%Y%m%d%H%M%S"

#: Number of commit hash characters kept in build metadata.
SHORT_COMMIT_LENGTH: Final[int] = 8

# ---------------------------------------------------------------------------
# Version labels and fallback markers
# ---------------------------------------------------------------------------

MASTER_BRANCH: Final[str] = "master"
DEVELOPMENT_BRANCH: Final[str] = "development"

DAILY_LABEL: Final[str] = "xdaily"
INTERNAL_LABEL: Final[str] = "internal"
PRIVATE_LABEL: Final[str] = "private"

#: Suffix of the companion development package.
DEV_PACKAGE_SUFFIX: Final[str] = "-dev"

# ---------------------------------------------------------------------------
# Regex safety limit
# ---------------------------------------------------------------------------

#: Longest ``~=`` pattern accepted from a dependency declaration.
MAX_CONSTRAINT_PATTERN_LENGTH: Final[int] = 256

# ---------------------------------------------------------------------------
# CI environment
# ---------------------------------------------------------------------------

CI_ACTION_TAG_PUSH: Final[str] = "TAG_PUSH"
CI_ACTION_MERGE: Final[str] = "MERGE"

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

DEFAULT_INTERNAL_PREFIX: Final[str] = "rtbrick-"
DEFAULT_VERSION_FILE: Final[str] = ".jenkins_build_version.txt"
DEFAULT_SEARCH_DEV: Final[bool] = True
DEFAULT_APTLY_REPO: Final[str] = "internal"

# ---------------------------------------------------------------------------
# Network and apt configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Attempts for ``apt-get update`` before giving up.
APT_UPDATE_ATTEMPTS: Final[int] = 3

#: Initial wait and increment (seconds) between ``apt-get update`` retries.
APT_UPDATE_BACKOFF: Final[Tuple[int, int]] = (3, 2)

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed size (in bytes) of snapshot and configuration files.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
