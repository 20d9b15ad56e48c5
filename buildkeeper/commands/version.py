"""Version command implementation for buildkeeper.

Computes the version the current build is packaged under. The base
version comes from configuration (optionally per build); branch, commit,
tag and CI trigger come from git and the CI environment.

Typical usage::

    # Inside a CI job: prints and writes .jenkins_build_version.txt
    $ buildkeeper version --build bgpd

    # Developer machine: private build, nothing written
    $ buildkeeper version --local

    # Machine-readable details
    $ buildkeeper version --format json
"""

from __future__ import annotations

import os
import sys
import json
from typing import Any, Dict, Optional

import click

from buildkeeper.models import SemVer, VersionContext
from buildkeeper.exceptions import BuildKeeperError
from buildkeeper.context import pass_context, BuildKeeperContext
from buildkeeper.core import (
    GitRepository,
    build_job_hash,
    collect_context,
    synthesize,
    write_version_file,
)
from buildkeeper.utils import get_logger, print_error, print_result, print_success

logger = get_logger("commands.version")


@click.command()
@click.option("--build", "build", default=None, help="Configured build name.")
@click.option(
    "--local",
    "local_build",
    is_flag=True,
    help="Local (private) build: ignore CI variables, never write the version file.",
)
@click.option("--branch", default=None, help="Override the detected branch.")
@click.option("--commit", default=None, help="Override the detected commit.")
@click.option(
    "--timestamp",
    type=int,
    default=None,
    help="Build time as Unix seconds (default: now).",
)
@click.option(
    "--write/--no-write",
    default=True,
    help="Write the version file on CI builds.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format.",
)
@pass_context
def version(
    ctx: BuildKeeperContext,
    build: Optional[str],
    local_build: bool,
    branch: Optional[str],
    commit: Optional[str],
    timestamp: Optional[int],
    write: bool,
    format: str,
) -> None:
    """Compute the version of this build.

    Master builds triggered by a tag push use the configured version, which
    must equal the latest tag. Other master builds get an ``xdaily`` label;
    every other branch an ``internal`` label, and local builds a
    ``private`` label, each with branch and commit recorded in the
    metadata.
    """
    try:
        config = ctx.config
        base_version = config.base_version(build)
        build_ctx = collect_context(
            base_version,
            repo=GitRepository(),
            env=os.environ,
            local_build=local_build,
            build_timestamp=timestamp,
            branch=branch,
            commit=commit,
        )
        result = synthesize(build_ctx)

        written = None
        if write and not local_build:
            written = write_version_file(result, config.version_file)

        project = config.build_value(build, "project")
        job_hash = (
            build_job_hash(project, build or project, result) if project else None
        )

    except BuildKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    if format == "json":
        print_result(json.dumps(_version_report(build_ctx, result, job_hash), indent=2))
    else:
        print_result(str(result))

    if written is not None and format == "text":
        print_success(f"Version written to {written}")


def _version_report(
    build_ctx: VersionContext,
    result: SemVer,
    job_hash: Optional[str],
) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "version": str(result),
        "base_version": str(build_ctx.base_version),
        "branch": build_ctx.branch_name,
        "commit": build_ctx.commit_hash,
        "local": build_ctx.is_local_build,
        "release": build_ctx.is_tag_triggered_release and build_ctx.is_master,
    }
    if build_ctx.merge_request_id is not None:
        report["merge_request"] = build_ctx.merge_request_id
    if job_hash is not None:
        report["build_job_hash"] = job_hash
    return report
