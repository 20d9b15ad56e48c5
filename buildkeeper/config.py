"""Configuration file loader for buildkeeper.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``buildkeeper.toml`` — settings under ``[buildkeeper]`` table
- ``pyproject.toml`` — settings under ``[tool.buildkeeper]`` table

Discovery order:

1. Explicit path from ``--config`` or ``BUILDKEEPER_CONFIG``
2. ``buildkeeper.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.buildkeeper]`` section

Configuration precedence: defaults < config file < CLI args.

Example (``buildkeeper.toml``)::

    [buildkeeper]
    project = "bgp"
    version = "21.3.0"
    internal_prefix = "rtbrick-"
    aptly_url = "https://pkg.example.net/aptly-api"

    [buildkeeper.builds.bgpd]
    dependencies = [
        "rtbrick-libconfd",
        "libssl1.1 (~= ^1\\.1\\.)",
        "thirdparty:::libyang (= 1.0.130)",
    ]

    [buildkeeper.builds.bgpd-tools]
    version = { major = 21, minor = 3, rev = 1 }
"""

from __future__ import annotations


import tomli as tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from buildkeeper.models import SemVer
from buildkeeper.exceptions import ConfigError, MalformedVersion
from buildkeeper.utils.logger import get_logger
from buildkeeper.constants import (
    DEFAULT_APTLY_REPO,
    DEFAULT_INTERNAL_PREFIX,
    DEFAULT_SEARCH_DEV,
    DEFAULT_VERSION_FILE,
)

logger = get_logger("config")

VersionValue = Union[str, Dict[str, Any]]

_STRING_OPTIONS = (
    "project",
    "internal_prefix",
    "version_file",
    "aptly_url",
    "aptly_repo",
)
_BUILD_KEYS = {"project", "version", "dependencies"}


@dataclass
class BuildConfig:
    """Per-build overrides from a ``[builds.<name>]`` table.

    ``None`` means "use the top-level value".
    """

    project: Optional[str] = None
    version: Optional[VersionValue] = None
    dependencies: Optional[List[str]] = None


@dataclass
class BuildKeeperConfig:
    """Parsed and validated buildkeeper configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        project: Project name, part of the build job hash.
        version: Base version, either a SemVer string or a table with
            ``major``/``minor``/``rev`` (and optional ``label``/``meta``).
        internal_prefix: Package name prefix selecting branch fallback
            resolution.
        version_file: File the synthesized version is written to on CI.
        search_dev: Look up ``-dev`` companions of resolved dependencies.
        aptly_url: aptly API root used by ``resolve --aptly``.
        aptly_repo: Default aptly repository name.
        dependencies: Top-level dependency declarations.
        builds: Per-build overrides keyed by build name.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    project: Optional[str] = None
    version: Optional[VersionValue] = None
    internal_prefix: str = DEFAULT_INTERNAL_PREFIX
    version_file: str = DEFAULT_VERSION_FILE
    search_dev: bool = DEFAULT_SEARCH_DEV
    aptly_url: Optional[str] = None
    aptly_repo: str = DEFAULT_APTLY_REPO
    dependencies: List[str] = field(default_factory=list)
    builds: Dict[str, BuildConfig] = field(default_factory=dict)

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def build_value(self, build: Optional[str], key: str) -> Any:
        """Return ``key`` for ``build``, falling back to the top-level value.

        Raises:
            ConfigError: ``build`` is given but not configured.
        """
        if build is None:
            return getattr(self, key)

        if build not in self.builds:
            raise ConfigError(
                f"Unknown build '{build}'",
                config_path=str(self.source_path) if self.source_path else None,
                option="builds",
            )

        value = getattr(self.builds[build], key)
        return getattr(self, key) if value is None else value

    def base_version(self, build: Optional[str] = None) -> SemVer:
        """Return the configured base version of ``build`` as a :class:`SemVer`.

        Raises:
            ConfigError: No version configured, or it is malformed.
        """
        value = self.build_value(build, "version")
        if value is None:
            raise ConfigError(
                "No version configured",
                config_path=str(self.source_path) if self.source_path else None,
                option="version",
            )

        try:
            if isinstance(value, dict):
                return SemVer.from_dict(value)
            return SemVer.parse(value)
        except MalformedVersion as exc:
            raise ConfigError(
                f"Invalid version: {exc.message}",
                config_path=str(self.source_path) if self.source_path else None,
                option="version",
            ) from exc

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Excludes ``source_path`` metadata.
        """
        return {
            "project": self.project,
            "version": self.version,
            "internal_prefix": self.internal_prefix,
            "version_file": self.version_file,
            "search_dev": self.search_dev,
            "aptly_url": self.aptly_url,
            "aptly_repo": self.aptly_repo,
            "dependencies": len(self.dependencies),
            "builds": sorted(self.builds),
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``BUILDKEEPER_CONFIG``)
    2. ``buildkeeper.toml`` in current directory
    3. ``pyproject.toml`` with ``[tool.buildkeeper]`` section in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    buildkeeper_toml = cwd / "buildkeeper.toml"
    if buildkeeper_toml.is_file():
        logger.debug("Found buildkeeper.toml: %s", buildkeeper_toml)
        return buildkeeper_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_section(pyproject_toml):
        logger.debug("Found [tool.buildkeeper] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if pyproject.toml contains a [tool.buildkeeper] section.

    A pyproject.toml that cannot be parsed is treated as having no section.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "buildkeeper" in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> BuildKeeperConfig:
    """Load and validate buildkeeper configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`BuildKeeperConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return BuildKeeperConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get("buildkeeper", {})
    else:
        section = raw.get("buildkeeper", {})

    if not section:
        logger.debug("Config file found but no buildkeeper section, using defaults")
        return BuildKeeperConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _require_type(
    value: Any,
    expected: Union[type, tuple],
    *,
    option: str,
    config_path: str,
    description: str,
) -> None:
    if not isinstance(value, expected):
        raise ConfigError(
            f"{option} must be {description}, got {type(value).__name__}",
            config_path=config_path,
            option=option,
        )


def _check_version(value: Any, *, option: str, config_path: str) -> VersionValue:
    _require_type(
        value,
        (str, dict),
        option=option,
        config_path=config_path,
        description="a string or a table",
    )
    return value


def _check_dependencies(value: Any, *, option: str, config_path: str) -> List[str]:
    _require_type(
        value, list, option=option, config_path=config_path, description="a list"
    )
    for item in value:
        _require_type(
            item,
            str,
            option=option,
            config_path=config_path,
            description="a list of strings",
        )
    return list(value)


def _parse_builds(
    builds: Any,
    *,
    config_path: str,
) -> Dict[str, BuildConfig]:
    _require_type(
        builds, dict, option="builds", config_path=config_path, description="a table"
    )

    parsed: Dict[str, BuildConfig] = {}
    for name, table in builds.items():
        option = f"builds.{name}"
        _require_type(
            table, dict, option=option, config_path=config_path, description="a table"
        )

        unknown = set(table) - _BUILD_KEYS
        if unknown:
            raise ConfigError(
                f"Unknown keys in [{option}]: {', '.join(sorted(unknown))}",
                config_path=config_path,
                option=option,
            )

        build = BuildConfig()
        if "project" in table:
            _require_type(
                table["project"],
                str,
                option=f"{option}.project",
                config_path=config_path,
                description="a string",
            )
            build.project = table["project"]
        if "version" in table:
            build.version = _check_version(
                table["version"], option=f"{option}.version", config_path=config_path
            )
        if "dependencies" in table:
            build.dependencies = _check_dependencies(
                table["dependencies"],
                option=f"{option}.dependencies",
                config_path=config_path,
            )
        parsed[name] = build

    return parsed


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> BuildKeeperConfig:
    """Parse and validate the buildkeeper configuration section.

    Rejects unknown keys and type mismatches.

    Raises:
        ConfigError: Unknown keys or incorrect types.
    """
    config = BuildKeeperConfig()

    known_top = set(_STRING_OPTIONS) | {
        "version",
        "search_dev",
        "dependencies",
        "builds",
    }

    unknown_top = set(section.keys()) - known_top
    if unknown_top:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown_top))}",
            config_path=config_path,
        )

    for option in _STRING_OPTIONS:
        if option in section:
            _require_type(
                section[option],
                str,
                option=option,
                config_path=config_path,
                description="a string",
            )
            setattr(config, option, section[option])

    if "search_dev" in section:
        _require_type(
            section["search_dev"],
            bool,
            option="search_dev",
            config_path=config_path,
            description="a boolean",
        )
        config.search_dev = section["search_dev"]

    if "version" in section:
        config.version = _check_version(
            section["version"], option="version", config_path=config_path
        )

    if "dependencies" in section:
        config.dependencies = _check_dependencies(
            section["dependencies"], option="dependencies", config_path=config_path
        )

    if "builds" in section:
        config.builds = _parse_builds(section["builds"], config_path=config_path)

    return config
