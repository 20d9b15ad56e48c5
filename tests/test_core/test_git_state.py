"""Unit tests for buildkeeper.core.git_state module.

Test Coverage:
- GitRepository queries through a fake git runner
- CI environment parsing
- Context collection for CI, merge request, local and tag builds
"""

from __future__ import annotations

import logging
import subprocess
from typing import Dict, Sequence, Tuple

import pytest

from buildkeeper.core.git_state import CIEnvironment, GitRepository, collect_context
from buildkeeper.exceptions import GitStateError
from buildkeeper.models import SemVer

COMMIT = "abcdef1234567890abcdef1234567890abcdef12"


class FakeGit:
    """Answers git invocations from a table keyed by argument tuple."""

    def __init__(self, responses: Dict[Tuple[str, ...], Tuple[int, str]]) -> None:
        self.responses = responses
        self.calls = []

    def __call__(self, args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
        key = tuple(args)
        self.calls.append(key)
        returncode, stdout = self.responses.get(key, (128, ""))
        return subprocess.CompletedProcess(
            ["git", *args],
            returncode,
            stdout=stdout,
            stderr="fatal: not a git repository" if returncode else "",
        )


def _checkout(branch: str = "feature-x") -> GitRepository:
    responses = {
        ("rev-parse", "--abbrev-ref", "HEAD"): (0, f"{branch}\n"),
        ("rev-parse", "HEAD"): (0, f"{COMMIT}\n"),
        ("describe", "--tags"): (0, "v1.2.3\n"),
    }
    return GitRepository(runner=FakeGit(responses))


@pytest.mark.unit
class TestGitRepository:
    """Tests for GitRepository."""

    def test_current_branch(self) -> None:
        assert _checkout("development").current_branch() == "development"

    def test_detached_head(self) -> None:
        assert _checkout("HEAD").current_branch() is None

    def test_not_a_repository(self) -> None:
        repo = GitRepository(runner=FakeGit({}))

        assert repo.current_branch() is None
        assert repo.head_commit() is None
        assert repo.tags() == []

    def test_head_commit(self) -> None:
        assert _checkout().head_commit() == COMMIT

    def test_commit_timestamp(self) -> None:
        runner = FakeGit({("show", "--no-patch", "--format=%ct", COMMIT): (0, "1700000000\n")})

        assert GitRepository(runner=runner).commit_timestamp(COMMIT) == 1700000000

    def test_commit_timestamp_failure(self) -> None:
        with pytest.raises(GitStateError) as exc_info:
            GitRepository(runner=FakeGit({})).commit_timestamp(COMMIT)

        assert exc_info.value.details["command"].startswith("git show")

    def test_latest_tag_from_describe(self) -> None:
        assert _checkout().latest_tag_version() == SemVer(1, 2, 3)

    def test_latest_tag_from_tag_list(self) -> None:
        runner = FakeGit(
            {
                ("describe", "--tags"): (0, "nightly\n"),
                ("tag", "-l"): (0, "nightly\nv1.0.0\nv1.1.0\n"),
            }
        )

        assert GitRepository(runner=runner).latest_tag_version() == SemVer(1, 1, 0)

    def test_no_tags(self) -> None:
        assert GitRepository(runner=FakeGit({})).latest_tag_version() is None


@pytest.mark.unit
class TestCIEnvironment:
    """Tests for CIEnvironment.from_mapping."""

    def test_empty(self) -> None:
        ci = CIEnvironment.from_mapping({})

        assert ci == CIEnvironment()
        assert not ci.is_tag_push
        assert not ci.is_merge_request

    def test_merge_request(self) -> None:
        ci = CIEnvironment.from_mapping(
            {
                "gitlabActionType": "MERGE",
                "gitlabMergeRequestIid": "42",
                "gitlabSourceBranch": "feature-y",
                "gitlabMergeRequestLastCommit": "f00d",
            }
        )

        assert ci.is_merge_request
        assert ci.merge_request_id == 42
        assert ci.merge_request_source_branch == "feature-y"

    def test_tag_push(self) -> None:
        assert CIEnvironment.from_mapping({"gitlabActionType": "TAG_PUSH"}).is_tag_push

    def test_non_numeric_merge_request(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="buildkeeper"):
            ci = CIEnvironment.from_mapping({"gitlabMergeRequestIid": "abc"})

        assert ci.merge_request_id is None
        assert "gitlabMergeRequestIid" in caplog.text

    def test_blank_values_are_none(self) -> None:
        ci = CIEnvironment.from_mapping({"BRANCH": "", "USER": ""})

        assert ci.branch is None
        assert ci.username is None


@pytest.mark.unit
class TestCollectContext:
    """Tests for collect_context."""

    def test_ci_build_uses_environment(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3),
            repo=_checkout(),
            env={"BRANCH": "master", "GIT_COMMIT": "c0ffee00"},
            local_build=False,
            build_timestamp=1,
        )

        assert ctx.branch_name == "master"
        assert ctx.is_master
        assert ctx.commit_hash == "c0ffee00"
        assert ctx.build_timestamp == 1
        assert ctx.latest_tag == SemVer(1, 2, 3)

    def test_merge_request_build(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3),
            repo=_checkout(),
            env={
                "gitlabActionType": "MERGE",
                "gitlabMergeRequestIid": "7",
                "gitlabSourceBranch": "feature-y",
                "gitlabMergeRequestLastCommit": "f00df00d",
                "BRANCH": "development",
            },
            local_build=False,
            build_timestamp=1,
        )

        assert ctx.branch_name == "feature-y"
        assert ctx.commit_hash == "f00df00d"
        assert ctx.merge_request_id == 7

    def test_local_build_ignores_ci_variables(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3),
            repo=_checkout("feature-x"),
            env={
                "BRANCH": "master",
                "gitlabActionType": "TAG_PUSH",
                "gitlabMergeRequestIid": "7",
                "USER": "jdoe",
            },
            local_build=True,
            build_timestamp=1,
        )

        assert ctx.branch_name == "feature-x"
        assert ctx.commit_hash == COMMIT
        assert ctx.is_local_build
        assert not ctx.is_tag_triggered_release
        assert ctx.merge_request_id is None
        assert ctx.username == "jdoe"

    def test_tag_push_marks_release(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3),
            repo=_checkout("master"),
            env={"gitlabActionType": "TAG_PUSH"},
            local_build=False,
            build_timestamp=1,
        )

        assert ctx.is_tag_triggered_release

    def test_explicit_arguments_win(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3),
            repo=_checkout(),
            env={"BRANCH": "master", "GIT_COMMIT": "c0ffee00"},
            local_build=False,
            build_timestamp=1,
            branch="release-9",
            commit="deadbeef",
        )

        assert ctx.branch_name == "release-9"
        assert ctx.commit_hash == "deadbeef"

    def test_timestamp_defaults_to_now(self) -> None:
        ctx = collect_context(
            SemVer(1, 2, 3), repo=_checkout(), env={}, local_build=True
        )

        assert ctx.build_timestamp > 1600000000

    def test_unknown_state(self) -> None:
        with pytest.raises(GitStateError, match="Unknown state of git repository"):
            collect_context(
                SemVer(1, 2, 3),
                repo=_checkout("HEAD"),
                env={},
                local_build=True,
                build_timestamp=1,
            )
