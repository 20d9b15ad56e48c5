"""
Core functionality exports for buildkeeper.

This module provides convenient access to the core subsystems of buildkeeper.
Importing from here keeps user-facing imports clean and stable:

    from buildkeeper.core import DependencyResolver, synthesize
"""

from __future__ import annotations

from buildkeeper.core.matcher import match
from buildkeeper.core.companion import find_dev_companion
from buildkeeper.core.git_state import CIEnvironment, GitRepository, collect_context
from buildkeeper.core.synthesizer import (
    build_job_hash,
    synthesize,
    write_version_file,
)
from buildkeeper.core.repository import (
    AptCacheRepository,
    AptlyRepository,
    RepositorySnapshot,
    StaticRepository,
)
from buildkeeper.core.fallback import (
    CandidateStrategy,
    DependencyResolver,
    fallback_chain,
    resolve_internal,
)

__all__ = [
    "synthesize",
    "write_version_file",
    "build_job_hash",
    "GitRepository",
    "CIEnvironment",
    "collect_context",
    "RepositorySnapshot",
    "StaticRepository",
    "AptCacheRepository",
    "AptlyRepository",
    "match",
    "CandidateStrategy",
    "fallback_chain",
    "resolve_internal",
    "DependencyResolver",
    "find_dev_companion",
]
