"""Lookup of ``-dev`` companion packages.

Internal libraries are published as a runtime package and a ``-dev``
package built from the same source, sharing one version. A missing
companion is expected for many packages and is never an error.
"""

from __future__ import annotations

from typing import Optional

from buildkeeper.core.repository import RepositorySnapshot
from buildkeeper.models import ResolvedDependency
from buildkeeper.utils.logger import get_logger
from buildkeeper.constants import DEV_PACKAGE_SUFFIX

logger = get_logger("companion")


def find_dev_companion(
    resolved: ResolvedDependency,
    repo: RepositorySnapshot,
) -> Optional[ResolvedDependency]:
    """Return the ``{name}-dev`` package matching ``resolved``, if it exists.

    When ``resolved`` is pinned, the companion must exist with the very same
    version string; otherwise any version of the companion will do and it is
    returned unpinned.
    """
    dev_name = f"{resolved.package_name}{DEV_PACKAGE_SUFFIX}"
    available = repo.list_versions(dev_name, component=resolved.component)

    if resolved.raw_version:
        if resolved.raw_version not in available:
            logger.warning(
                "Could not find -dev package: '%s=%s'", dev_name, resolved.raw_version
            )
            return None
        return ResolvedDependency(
            package_name=dev_name,
            version=resolved.version,
            raw_version=resolved.raw_version,
            origin=resolved.origin,
            component=resolved.component,
        )

    if not available:
        logger.warning("Could not find -dev package: '%s'", dev_name)
        return None

    return ResolvedDependency(
        package_name=dev_name,
        origin=resolved.origin,
        component=resolved.component,
    )
