"""Branch-aware dependency resolution for buildkeeper.

Internal packages (names starting with the configured internal prefix) are
published per branch: CI builds of branch ``foo-bar`` carry ``Bfoobar`` in
their version metadata, daily master builds carry ``xdaily`` in their
label. An unconstrained internal dependency is therefore resolved by trying
an ordered list of candidate constraints and taking the first that
matches:

==============  =============================================================
Branch          Chain
==============  =============================================================
``master``      ``~= xdaily`` → unconstrained
``development`` ``~= Bdevelopment`` → ``~= xdaily`` → unconstrained
other           ``~= B<branch>`` → ``~= Bdevelopment`` → ``~= xdaily`` →
                unconstrained
==============  =============================================================

A failed step is only a warning. The unconstrained step succeeds when the
package exists in the repository at all; when even that fails the whole
chain raises :class:`~buildkeeper.exceptions.NoMatchingVersion`.

:class:`DependencyResolver` runs the batch pass over all declaration lines
of a build and attaches ``-dev`` companions.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from buildkeeper.core import matcher
from buildkeeper.core.companion import find_dev_companion
from buildkeeper.core.repository import RepositorySnapshot
from buildkeeper.models import (
    Constraint,
    ConstraintKind,
    DependencySpec,
    ResolvedDependency,
    sanitize_branch,
)
from buildkeeper.utils.logger import get_logger
from buildkeeper.exceptions import NoMatchingVersion
from buildkeeper.constants import (
    DAILY_LABEL,
    DEFAULT_INTERNAL_PREFIX,
    DEVELOPMENT_BRANCH,
    MASTER_BRANCH,
)

logger = get_logger("fallback")

__all__ = [
    "CandidateStrategy",
    "fallback_chain",
    "resolve_internal",
    "DependencyResolver",
]


class CandidateStrategy(str, Enum):
    """One step of a fallback chain."""

    BRANCH = "branch"
    DEVELOPMENT = "development"
    DAILY = "daily"
    UNCONSTRAINED = "unconstrained"

    def constraint_for(self, branch_sanitized: str) -> Optional[Constraint]:
        """Return the ``~=`` constraint this step applies, if any."""
        if self is CandidateStrategy.BRANCH:
            value = f"B{branch_sanitized}"
        elif self is CandidateStrategy.DEVELOPMENT:
            value = f"B{DEVELOPMENT_BRANCH}"
        elif self is CandidateStrategy.DAILY:
            value = DAILY_LABEL
        else:
            return None
        return Constraint(kind=ConstraintKind.REGEX, value=value)


_MASTER_CHAIN = (CandidateStrategy.DAILY, CandidateStrategy.UNCONSTRAINED)
_DEVELOPMENT_CHAIN = (
    CandidateStrategy.DEVELOPMENT,
    CandidateStrategy.DAILY,
    CandidateStrategy.UNCONSTRAINED,
)
_BRANCH_CHAIN = (CandidateStrategy.BRANCH,) + _DEVELOPMENT_CHAIN


def fallback_chain(branch: str) -> Sequence[CandidateStrategy]:
    """Return the ordered strategies to try for builds of ``branch``."""
    if branch == MASTER_BRANCH:
        return _MASTER_CHAIN
    if branch == DEVELOPMENT_BRANCH:
        return _DEVELOPMENT_CHAIN
    return _BRANCH_CHAIN


def resolve_internal(
    package_name: str,
    branch: str,
    branch_sanitized: str,
    repo: RepositorySnapshot,
    *,
    component: Optional[str] = None,
    chain: Optional[Sequence[CandidateStrategy]] = None,
    spec: Optional[DependencySpec] = None,
) -> ResolvedDependency:
    """Resolve an internal package by walking its branch fallback chain.

    Args:
        package_name: Package to resolve.
        branch: Current branch name, selects the default chain.
        branch_sanitized: Branch name with non-alphanumerics removed.
        repo: Repository snapshot to search.
        component: Component override for the lookup.
        chain: Explicit strategies, overriding :func:`fallback_chain`.
        spec: Originating declaration, echoed into the result.

    Raises:
        NoMatchingVersion: Every strategy failed.
    """
    strategies = chain if chain is not None else fallback_chain(branch)
    base = DependencySpec(
        package_name=package_name,
        group_override=component,
        annotation=spec.annotation if spec else None,
        raw=spec.raw if spec else package_name,
    )

    for strategy in strategies:
        constraint = strategy.constraint_for(branch_sanitized)

        if constraint is None:
            resolved = _resolve_unconstrained(base, repo)
            if resolved is not None:
                logger.info("Resolved %s", matcher.describe(resolved))
                return resolved
            logger.warning(
                "Package %s does not exist in the repository", package_name
            )
            continue

        candidate = base.with_constraint(constraint)
        try:
            resolved = matcher.match(candidate, repo)
        except NoMatchingVersion:
            logger.warning(
                "Searching for dependency from %s failed: '%s'",
                _step_description(strategy, branch),
                candidate,
            )
            continue

        resolved = ResolvedDependency(
            package_name=resolved.package_name,
            version=resolved.version,
            raw_version=resolved.raw_version,
            origin=strategy.value,
            raw_spec_echo=resolved.raw_spec_echo,
            annotation=resolved.annotation,
            component=resolved.component,
        )
        logger.info("Resolved %s", matcher.describe(resolved))
        return resolved

    raise NoMatchingVersion(
        f"Exhausted fallback chain for {package_name} on branch {branch}",
        package_name=package_name,
        dependency=base.raw,
        strategies=",".join(s.value for s in strategies),
    )


def _resolve_unconstrained(
    spec: DependencySpec,
    repo: RepositorySnapshot,
) -> Optional[ResolvedDependency]:
    if not repo.list_versions(spec.package_name, component=spec.group_override):
        return None
    return ResolvedDependency(
        package_name=spec.package_name,
        origin=CandidateStrategy.UNCONSTRAINED.value,
        raw_spec_echo=spec.raw,
        annotation=spec.annotation,
        component=spec.group_override,
    )


def _step_description(strategy: CandidateStrategy, branch: str) -> str:
    if strategy is CandidateStrategy.BRANCH:
        return f"branch {branch}"
    if strategy is CandidateStrategy.DEVELOPMENT:
        return f"{DEVELOPMENT_BRANCH} branch"
    return f"{MASTER_BRANCH} branch"


@dataclass
class DependencyResolver:
    """Batch resolution of a build's dependency declarations.

    Attributes:
        repo: Repository snapshot to search.
        branch: Branch being built.
        internal_prefix: Name prefix marking internal packages.
        search_dev: Whether to look for ``-dev`` companions.
    """

    repo: RepositorySnapshot
    branch: str
    internal_prefix: str = DEFAULT_INTERNAL_PREFIX
    search_dev: bool = True

    @property
    def branch_sanitized(self) -> str:
        return sanitize_branch(self.branch)

    def is_internal(self, package_name: str) -> bool:
        return bool(self.internal_prefix) and package_name.startswith(
            self.internal_prefix
        )

    def resolve(self, spec: DependencySpec) -> ResolvedDependency:
        """Resolve one declaration, including its ``-dev`` companion."""
        if spec.constraint is not None:
            resolved = matcher.match(spec, self.repo)
        elif self.is_internal(spec.package_name):
            resolved = resolve_internal(
                spec.package_name,
                self.branch,
                self.branch_sanitized,
                self.repo,
                component=spec.group_override,
                spec=spec,
            )
        else:
            resolved = matcher.match(spec, self.repo)

        if self.search_dev:
            resolved = resolved.with_companion(find_dev_companion(resolved, self.repo))

        logger.info(
            "Package dependency '%s' resolved to '%s'",
            spec.raw or spec,
            resolved.to_install_line(),
        )
        return resolved

    def resolve_all(self, lines: Iterable[str]) -> List[ResolvedDependency]:
        """Parse and resolve every non-empty line.

        All lines are parsed before any lookup, so a configuration error
        fails fast. Any failure aborts the pass; no partial list is
        returned.
        """
        specs = [DependencySpec.parse(line) for line in lines if line.strip()]
        return [self.resolve(spec) for spec in specs]
