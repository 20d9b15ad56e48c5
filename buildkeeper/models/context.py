"""
Build context data model for buildkeeper.

A :class:`VersionContext` gathers everything version synthesis needs about
one build invocation: the configured base version plus git and CI state.
It is assembled once (see :mod:`buildkeeper.core.git_state`) and passed
explicitly; nothing is read from the process environment afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from buildkeeper.constants import MASTER_BRANCH, SHORT_COMMIT_LENGTH
from buildkeeper.models.semver import SemVer

_NON_ALNUM_RE = re.compile(r"[^0-9A-Za-z]")


def sanitize_branch(branch: str) -> str:
    """
    Strip every non-alphanumeric character from a branch name.

    Debian version strings only allow a restricted character set, so
    ``"feature/foo-bar"`` becomes ``"featurefoobar"``.
    """
    return _NON_ALNUM_RE.sub("", branch)


@dataclass(frozen=True)
class VersionContext:
    """
    Immutable inputs for version synthesis.

    Attributes:
        base_version: Version declared in the build configuration.
        branch_name: Current git branch.
        is_master: Whether ``branch_name`` is the mainline branch.
        is_local_build: Developer build outside CI.
        is_tag_triggered_release: CI build triggered by a tag push.
        commit_hash: Full hash of the commit being built.
        build_timestamp: Unix timestamp of the build.
        latest_tag: Latest SemVer tag reachable in git, if any.
        merge_request_id: Merge request number for MR-triggered builds.
        username: Local user, recorded for local builds.
    """

    base_version: SemVer
    branch_name: str
    is_master: bool
    is_local_build: bool
    is_tag_triggered_release: bool
    commit_hash: str
    build_timestamp: int
    latest_tag: Optional[SemVer] = None
    merge_request_id: Optional[int] = None
    username: Optional[str] = None

    @property
    def branch_sanitized(self) -> str:
        return sanitize_branch(self.branch_name)

    @property
    def short_commit(self) -> str:
        return self.commit_hash[:SHORT_COMMIT_LENGTH]

    @classmethod
    def for_branch(
        cls,
        base_version: SemVer,
        branch_name: str,
        commit_hash: str,
        build_timestamp: int,
        **kwargs: object,
    ) -> "VersionContext":
        """Build a context deriving ``is_master`` from the branch name."""
        kwargs.setdefault("is_local_build", False)
        kwargs.setdefault("is_tag_triggered_release", False)
        return cls(
            base_version=base_version,
            branch_name=branch_name,
            is_master=branch_name == MASTER_BRANCH,
            commit_hash=commit_hash,
            build_timestamp=build_timestamp,
            **kwargs,  # type: ignore[arg-type]
        )
