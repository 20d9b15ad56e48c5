"""Collection of git and CI state into a :class:`VersionContext`.

Everything version synthesis needs about the current checkout and the CI
job is gathered here, once, and frozen into a context object. The
environment is passed in explicitly as a mapping so that callers (and
tests) decide what it contains.

CI variables understood (GitLab-triggered Jenkins jobs):

- ``BRANCH`` / ``GIT_COMMIT`` — branch and commit of non-local builds.
- ``gitlabActionType`` — ``TAG_PUSH`` marks a release build, ``MERGE`` a
  merge request build.
- ``gitlabMergeRequestIid``, ``gitlabSourceBranch``,
  ``gitlabMergeRequestLastCommit`` — merge request details.
- ``USER`` — recorded in the metadata of local builds.
"""

from __future__ import annotations

import time
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence

from buildkeeper.models import SemVer, VersionContext
from buildkeeper.utils.logger import get_logger
from buildkeeper.exceptions import GitStateError
from buildkeeper.constants import CI_ACTION_MERGE, CI_ACTION_TAG_PUSH

logger = get_logger("git_state")

GitRunner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


def _run_git(args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=False,
    )


class GitRepository:
    """Read-only queries against the git checkout in the working directory.

    Args:
        runner: Runs ``git`` with the given arguments.
    """

    def __init__(self, runner: GitRunner = _run_git) -> None:
        self._runner = runner

    def _git(self, *args: str, required: bool = True) -> Optional[str]:
        result = self._runner(args)
        if result.returncode != 0:
            if required:
                raise GitStateError(
                    f"git failed: {(result.stderr or '').strip()}",
                    command="git " + " ".join(args),
                )
            return None
        return result.stdout.strip()

    def current_branch(self) -> Optional[str]:
        """Return the checked-out branch, or ``None`` on a detached HEAD."""
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD", required=False)
        if not branch or branch == "HEAD":
            return None
        return branch

    def head_commit(self) -> Optional[str]:
        return self._git("rev-parse", "HEAD", required=False) or None

    def commit_timestamp(self, commit: str) -> int:
        output = self._git("show", "--no-patch", "--format=%ct", commit)
        try:
            return int(output or "")
        except ValueError as exc:
            raise GitStateError(
                f"Unexpected commit timestamp {output!r}",
                command=f"git show --no-patch --format=%ct {commit}",
            ) from exc

    def tags(self) -> List[str]:
        output = self._git("tag", "-l", required=False) or ""
        return [line.strip() for line in output.splitlines() if line.strip()]

    def latest_tag_version(self) -> Optional[SemVer]:
        """Return the SemVer of the most recent tag.

        ``git describe --tags`` is tried first; if the nearest tag holds no
        SemVer, tags are walked in reverse lexicographic order and the
        first one containing a SemVer wins.
        """
        described = self._git("describe", "--tags", required=False)
        if described:
            version = SemVer.search(described)
            if version is not None:
                return version

        for tag in sorted(self.tags(), reverse=True):
            version = SemVer.search(tag)
            if version is not None:
                return version

        logger.debug("No SemVer tag found")
        return None


@dataclass(frozen=True)
class CIEnvironment:
    """CI job variables relevant to versioning."""

    action_type: Optional[str] = None
    branch: Optional[str] = None
    commit: Optional[str] = None
    merge_request_id: Optional[int] = None
    merge_request_source_branch: Optional[str] = None
    merge_request_last_commit: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_mapping(cls, env: Mapping[str, str]) -> "CIEnvironment":
        mr_raw = env.get("gitlabMergeRequestIid") or ""
        try:
            merge_request_id: Optional[int] = int(mr_raw) if mr_raw else None
        except ValueError:
            logger.warning("Ignoring non-numeric gitlabMergeRequestIid %r", mr_raw)
            merge_request_id = None

        return cls(
            action_type=env.get("gitlabActionType") or None,
            branch=env.get("BRANCH") or None,
            commit=env.get("GIT_COMMIT") or None,
            merge_request_id=merge_request_id,
            merge_request_source_branch=env.get("gitlabSourceBranch") or None,
            merge_request_last_commit=env.get("gitlabMergeRequestLastCommit") or None,
            username=env.get("USER") or None,
        )

    @property
    def is_tag_push(self) -> bool:
        return self.action_type == CI_ACTION_TAG_PUSH

    @property
    def is_merge_request(self) -> bool:
        return self.action_type == CI_ACTION_MERGE


def collect_context(
    base_version: SemVer,
    *,
    repo: GitRepository,
    env: Mapping[str, str],
    local_build: bool,
    build_timestamp: Optional[int] = None,
    branch: Optional[str] = None,
    commit: Optional[str] = None,
) -> VersionContext:
    """Assemble the :class:`VersionContext` for one build invocation.

    Branch and commit come from, in order: the explicit arguments, merge
    request variables, ``BRANCH``/``GIT_COMMIT`` (CI builds only), and
    finally the git checkout.

    Raises:
        GitStateError: Branch or commit cannot be determined.
    """
    ci = CIEnvironment.from_mapping(env)

    if ci.is_merge_request and not local_build:
        branch = branch or ci.merge_request_source_branch
        commit = commit or ci.merge_request_last_commit
        logger.info(
            "Build triggered by merge request !%s from %s",
            ci.merge_request_id,
            ci.merge_request_source_branch,
        )

    if not local_build:
        branch = branch or ci.branch
        commit = commit or ci.commit

    branch = branch or repo.current_branch()
    commit = commit or repo.head_commit()

    if not branch or not commit:
        raise GitStateError("Unknown state of git repository")

    logger.info("Continuing build in branch %s @ commit %s", branch, commit)

    return VersionContext.for_branch(
        base_version,
        branch,
        commit,
        build_timestamp if build_timestamp is not None else int(time.time()),
        is_local_build=local_build,
        is_tag_triggered_release=ci.is_tag_push and not local_build,
        latest_tag=repo.latest_tag_version(),
        merge_request_id=ci.merge_request_id if not local_build else None,
        username=ci.username,
    )
