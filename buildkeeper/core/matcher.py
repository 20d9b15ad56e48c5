"""Dependency matching for buildkeeper.

Resolves a single :class:`~buildkeeper.models.DependencySpec` against a
:class:`~buildkeeper.core.repository.RepositorySnapshot`:

1. **No constraint** — passthrough; the installer picks its own default.
2. **REGEX** (``~=``) — every available version whose text matches the
   pattern (``re.search``, i.e. unanchored) and parses as SemVer is a
   candidate; the highest by :func:`~buildkeeper.utils.version_utils.pick_highest`
   wins.
3. **EXACT** (``=``) — only the identical version string is eligible.

Regular expressions come from build configuration and are applied with
Python's backtracking engine. Patterns longer than
``MAX_CONSTRAINT_PATTERN_LENGTH`` are rejected. Every candidate is
searched in full, however long, so a pathological pattern can still be
slow; configuration should keep patterns simple.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Pattern

from buildkeeper.core.repository import RepositorySnapshot
from buildkeeper.utils.logger import get_logger
from buildkeeper.utils.version_utils import pick_highest
from buildkeeper.models import (
    Constraint,
    ConstraintKind,
    DependencySpec,
    ResolvedDependency,
    SemVer,
)
from buildkeeper.exceptions import (
    InvalidConstraintPattern,
    MalformedVersion,
    NoMatchingVersion,
    UnsupportedConstraintKind,
)
from buildkeeper.constants import MAX_CONSTRAINT_PATTERN_LENGTH

logger = get_logger("matcher")

__all__ = ["match", "compile_constraint", "semver_candidates"]


def compile_constraint(spec: DependencySpec) -> Pattern[str]:
    """Compile the ``~=`` pattern of ``spec``.

    Raises:
        UnsupportedConstraintKind: ``spec`` has no ``~=`` constraint.
        InvalidConstraintPattern: Pattern too long or not a valid regex.
    """
    constraint = spec.constraint
    if constraint is None or constraint.kind is not ConstraintKind.REGEX:
        raise UnsupportedConstraintKind(
            "Only ~= constraints compile to a pattern",
            package_name=spec.package_name,
            dependency=spec.raw,
        )
    value = constraint.value

    if len(value) > MAX_CONSTRAINT_PATTERN_LENGTH:
        raise InvalidConstraintPattern(
            f"Version pattern longer than {MAX_CONSTRAINT_PATTERN_LENGTH} characters",
            package_name=spec.package_name,
            dependency=spec.raw,
        )

    try:
        return re.compile(value)
    except re.error as exc:
        raise InvalidConstraintPattern(
            f"Invalid version pattern {value!r}: {exc}",
            package_name=spec.package_name,
            dependency=spec.raw,
        ) from exc


def semver_candidates(
    package_name: str,
    versions: Iterable[str],
) -> Dict[str, SemVer]:
    """Keep the versions that are valid SemVer, keyed by their raw text."""
    candidates: Dict[str, SemVer] = {}
    for raw in versions:
        try:
            candidates[raw] = SemVer.parse(raw)
        except MalformedVersion:
            logger.debug("Ignoring non-SEMVER 2.0 version %r for %s", raw, package_name)
    return candidates


def match(spec: DependencySpec, repo: RepositorySnapshot) -> ResolvedDependency:
    """Resolve ``spec`` to a concrete installable reference.

    Args:
        spec: Parsed dependency declaration.
        repo: Repository to search; ``spec.group_override`` selects the
            component.

    Returns:
        The best match. Unconstrained specs come back unpinned.

    Raises:
        NoMatchingVersion: No available version satisfies the constraint.
        UnsupportedConstraintKind: Constraint kind is neither REGEX nor EXACT.
        InvalidConstraintPattern: The REGEX pattern is unusable.
    """
    constraint = spec.constraint
    if constraint is None:
        return ResolvedDependency(
            package_name=spec.package_name,
            origin="passthrough",
            raw_spec_echo=spec.raw,
            annotation=spec.annotation,
            component=spec.group_override,
        )

    eligible = _eligible_versions(spec, constraint, repo)
    candidates = semver_candidates(spec.package_name, eligible)
    best = pick_highest(candidates)

    if best is None:
        if eligible:
            logger.warning("Package %s has no SEMVER 2.0 versions", spec.package_name)
        raise NoMatchingVersion(
            f"No version of {spec.package_name} matches {constraint.render()}",
            package_name=spec.package_name,
            dependency=spec.raw or str(spec),
            component=spec.group_override,
        )

    logger.debug(
        "Selected %s=%s out of %d candidate(s)",
        spec.package_name,
        best,
        len(candidates),
    )

    return ResolvedDependency(
        package_name=spec.package_name,
        version=candidates[best],
        raw_version=best,
        origin=constraint.kind.value,
        raw_spec_echo=spec.raw,
        annotation=spec.annotation,
        component=spec.group_override,
    )


def _eligible_versions(
    spec: DependencySpec,
    constraint: Constraint,
    repo: RepositorySnapshot,
) -> List[str]:
    available = repo.list_versions(spec.package_name, component=spec.group_override)

    if constraint.kind is ConstraintKind.REGEX:
        pattern = compile_constraint(spec)
        return [v for v in available if pattern.search(v)]

    if constraint.kind is ConstraintKind.EXACT:
        return [v for v in available if v == constraint.value]

    raise UnsupportedConstraintKind(
        f"Unsupported constraint kind {constraint.kind!r}",
        package_name=spec.package_name,
        dependency=spec.raw,
    )


def describe(resolved: Optional[ResolvedDependency]) -> str:
    """Short human-readable form used in log lines."""
    if resolved is None:
        return "<none>"
    return f"{resolved.to_apt_token()} ({resolved.origin})"
