"""Package repository snapshots for buildkeeper.

The matching core never talks to apt or aptly directly. It receives a
:class:`RepositorySnapshot`, anything that can answer "which versions of
this package are available (in this component)?". Three implementations
are provided:

- :class:`StaticRepository` — in-memory mapping, also loadable from a JSON
  snapshot file. Used by tests and offline resolution.
- :class:`AptCacheRepository` — the local apt index, queried with
  ``apt-cache madison``. This is what runs inside build containers.
- :class:`AptlyRepository` — the aptly REST API. Versions are prefetched
  asynchronously through :class:`~buildkeeper.utils.http.HTTPClient` and
  then served synchronously from the cache, the same split the rest of
  buildkeeper uses between network I/O and pure logic.

Snapshot file format::

    {
      "packages": {"rtbrick-foo": ["1.2.3", "1.3.0-xdaily.20210101120000"]},
      "components": {"thirdparty": {"libbar": ["2.0.0"]}}
    }

Retrying transient failures is the job of these adapters (``apt-get
update`` back-off, HTTP retries), never of the matcher.
"""

from __future__ import annotations

import re
import json
import time
import subprocess
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    runtime_checkable,
)

from buildkeeper.utils.http import HTTPClient
from buildkeeper.utils.logger import get_logger
from buildkeeper.utils.filesystem import safe_read_file
from buildkeeper.exceptions import RepositoryError
from buildkeeper.constants import APT_UPDATE_ATTEMPTS, APT_UPDATE_BACKOFF

logger = get_logger("repository")

__all__ = [
    "RepositorySnapshot",
    "StaticRepository",
    "AptCacheRepository",
    "AptlyRepository",
]


@runtime_checkable
class RepositorySnapshot(Protocol):
    """Query interface over the versions available in a package repository."""

    def list_versions(
        self,
        package_name: str,
        *,
        pattern: Optional[str] = None,
        component: Optional[str] = None,
    ) -> Set[str]:
        """Return available version strings of ``package_name``.

        Args:
            package_name: Exact package name.
            pattern: Optional regular expression pre-filter (``re.search``).
            component: Restrict to one repository component/group.
        """
        ...


def _filter(versions: Iterable[str], pattern: Optional[str]) -> Set[str]:
    if pattern is None:
        return set(versions)
    compiled = re.compile(pattern)
    return {v for v in versions if compiled.search(v)}


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class StaticRepository:
    """Repository snapshot backed by plain mappings.

    Args:
        packages: Package name → versions in the default component.
        components: Component name → (package name → versions).
    """

    def __init__(
        self,
        packages: Optional[Mapping[str, Iterable[str]]] = None,
        components: Optional[Mapping[str, Mapping[str, Iterable[str]]]] = None,
    ) -> None:
        self._default: Dict[str, Set[str]] = {
            name: set(versions) for name, versions in (packages or {}).items()
        }
        self._components: Dict[str, Dict[str, Set[str]]] = {
            component: {name: set(vs) for name, vs in pkgs.items()}
            for component, pkgs in (components or {}).items()
        }

    @classmethod
    def from_file(cls, path: str) -> "StaticRepository":
        """Load a JSON snapshot file (see module docstring)."""
        try:
            data = json.loads(safe_read_file(path))
        except json.JSONDecodeError as exc:
            raise RepositoryError(f"Invalid repository snapshot {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise RepositoryError(f"Repository snapshot {path} must be a JSON object")

        packages = _snapshot_packages(data.get("packages", {}), "packages", path)
        components = {
            component: _snapshot_packages(table, f"components.{component}", path)
            for component, table in _snapshot_object(
                data.get("components", {}), "components", path
            ).items()
        }

        logger.debug("Loaded repository snapshot from %s", path)
        return cls(packages, components)

    def add(
        self,
        package_name: str,
        *versions: str,
        component: Optional[str] = None,
    ) -> None:
        table = (
            self._components.setdefault(component, {})
            if component
            else self._default
        )
        table.setdefault(package_name, set()).update(versions)

    def list_versions(
        self,
        package_name: str,
        *,
        pattern: Optional[str] = None,
        component: Optional[str] = None,
    ) -> Set[str]:
        table = self._components.get(component, {}) if component else self._default
        return _filter(table.get(package_name, ()), pattern)


def _snapshot_object(value: Any, where: str, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise RepositoryError(
            f"'{where}' in repository snapshot {path} must be a JSON object"
        )
    return value


def _snapshot_packages(value: Any, where: str, path: str) -> Dict[str, List[str]]:
    table = _snapshot_object(value, where, path)
    for name, versions in table.items():
        if not isinstance(versions, list) or not all(
            isinstance(v, str) for v in versions
        ):
            raise RepositoryError(
                f"Versions of {name!r} in repository snapshot {path} "
                "must be a list of strings"
            )
    return table


# ---------------------------------------------------------------------------
# Local apt index
# ---------------------------------------------------------------------------

CommandRunner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


def _run(args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        check=False,
    )


def parse_madison(output: str, package_name: str) -> List[Tuple[str, Optional[str]]]:
    """Parse ``apt-cache madison`` output into ``(version, component)`` pairs.

    Lines look like::

        rtbrick-foo | 1.2.3 | http://pkg.example.net/internal stretch/main amd64 Packages

    The component is the part after ``/`` in the suite field, if any.
    """
    entries: List[Tuple[str, Optional[str]]] = []
    for line in output.splitlines():
        fields = [f.strip() for f in line.split("|")]
        if len(fields) < 3 or fields[0] != package_name:
            continue

        component: Optional[str] = None
        source = fields[2].split()
        if len(source) >= 2 and "/" in source[1]:
            component = source[1].rsplit("/", 1)[1]

        entries.append((fields[1], component))
    return entries


class AptCacheRepository:
    """Repository snapshot over the local apt package index.

    Args:
        runner: Executes a command and returns the completed process.
        sleep: Sleep function used between ``apt-get update`` retries.
    """

    def __init__(
        self,
        *,
        runner: CommandRunner = _run,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner = runner
        self._sleep = sleep
        self._cache: Dict[str, List[Tuple[str, Optional[str]]]] = {}

    def update_index(
        self,
        *,
        attempts: int = APT_UPDATE_ATTEMPTS,
        backoff: Tuple[int, int] = APT_UPDATE_BACKOFF,
    ) -> None:
        """Run ``apt-get update`` with bounded retries.

        Another build may be publishing to the repository at the same time,
        which makes the update fail transiently. The wait grows by
        ``backoff[1]`` seconds after each failure.

        Raises:
            RepositoryError: All attempts failed.
        """
        wait, step = backoff
        command = ["apt-get", "update", "-qq"]

        for attempt in range(1, attempts + 1):
            result = self._runner(command)
            if result.returncode == 0:
                self._cache.clear()
                return

            wait += step
            logger.warning(
                "apt-get update failed (%d/%d): %s",
                attempt,
                attempts,
                (result.stderr or "").strip() or f"exit code {result.returncode}",
            )
            if attempt < attempts:
                self._sleep(wait)

        raise RepositoryError(
            f"APT update failed after {attempts} attempts",
            command=" ".join(command),
        )

    def _entries(self, package_name: str) -> List[Tuple[str, Optional[str]]]:
        if package_name not in self._cache:
            command = ["apt-cache", "madison", package_name]
            result = self._runner(command)
            if result.returncode != 0 and "Unable to locate" in (result.stderr or ""):
                self._cache[package_name] = []
            elif result.returncode != 0:
                raise RepositoryError(
                    f"Cannot query versions of {package_name}: "
                    f"{(result.stderr or '').strip()}",
                    package_name=package_name,
                    command=" ".join(command),
                )
            else:
                self._cache[package_name] = parse_madison(result.stdout, package_name)
        return self._cache[package_name]

    def list_versions(
        self,
        package_name: str,
        *,
        pattern: Optional[str] = None,
        component: Optional[str] = None,
    ) -> Set[str]:
        entries = self._entries(package_name)
        versions = (
            version
            for version, entry_component in entries
            if component is None or entry_component == component
        )
        return _filter(versions, pattern)


# ---------------------------------------------------------------------------
# aptly REST API
# ---------------------------------------------------------------------------


def aptly_package_query(package_name: str) -> Dict[str, str]:
    """Return the aptly ``q`` parameter selecting every version of a package."""
    return {"q": f"Name (= {package_name})"}


def parse_aptly_keys(keys: Iterable[str], package_name: str) -> Set[str]:
    """Extract versions from aptly package keys.

    Keys have the form ``"Pamd64 rtbrick-foo 1.2.3 5f1e3c..."``.
    """
    versions: Set[str] = set()
    for key in keys:
        parts = str(key).split()
        if len(parts) >= 3 and parts[1] == package_name:
            versions.add(parts[2])
    return versions


class AptlyRepository:
    """Repository snapshot backed by the aptly REST API.

    Call :meth:`prefetch` (async) for every package the resolution pass may
    touch; :meth:`list_versions` then answers from the cache.

    Args:
        client: Shared HTTP client.
        base_url: aptly API root, e.g. ``https://pkg.example.net/aptly-api``.
        default_repo: Repository used when no component override applies.
    """

    def __init__(self, client: HTTPClient, base_url: str, default_repo: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._default_repo = default_repo
        self._cache: Dict[Tuple[str, str], Set[str]] = {}

    @property
    def client(self) -> HTTPClient:
        return self._client

    def _repo_for(self, component: Optional[str]) -> str:
        return component or self._default_repo

    def _packages_url(self, repo: str) -> str:
        return f"{self._base_url}/api/repos/{repo}/packages"

    async def prefetch(
        self,
        package_names: Iterable[str],
        *,
        component: Optional[str] = None,
    ) -> None:
        """Fetch and cache the versions of ``package_names``."""
        repo = self._repo_for(component)
        pending = [
            name for name in dict.fromkeys(package_names)
            if (repo, name) not in self._cache
        ]
        if not pending:
            return

        logger.debug("Fetching %d package(s) from aptly repo %s", len(pending), repo)
        responses = await self._client.gather_json(
            [(self._packages_url(repo), aptly_package_query(name)) for name in pending]
        )

        for name, keys in zip(pending, responses):
            if not isinstance(keys, list):
                raise RepositoryError(
                    f"Unexpected aptly response for {name}",
                    package_name=name,
                )
            self._cache[(repo, name)] = parse_aptly_keys(keys, name)

    def list_versions(
        self,
        package_name: str,
        *,
        pattern: Optional[str] = None,
        component: Optional[str] = None,
    ) -> Set[str]:
        key = (self._repo_for(component), package_name)
        if key not in self._cache:
            raise RepositoryError(
                f"Package {package_name} was not prefetched from repo {key[0]}",
                package_name=package_name,
            )
        return _filter(self._cache[key], pattern)
