"""
Unified data model exports for buildkeeper.

This module re-exports all core data models to provide a stable and
convenient public API.

Example:
    >>> from buildkeeper.models import SemVer, DependencySpec, VersionContext
"""

from __future__ import annotations

from buildkeeper.models.semver import SemVer
from buildkeeper.models.context import VersionContext, sanitize_branch
from buildkeeper.models.dependency import (
    Constraint,
    ConstraintKind,
    DependencySpec,
    ResolvedDependency,
)

__all__ = [
    "SemVer",
    "VersionContext",
    "sanitize_branch",
    "Constraint",
    "ConstraintKind",
    "DependencySpec",
    "ResolvedDependency",
]
