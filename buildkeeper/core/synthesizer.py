"""Version synthesis for buildkeeper.

Turns the configured base version plus git/CI state into the version a
build is packaged under. Three kinds of builds exist:

- **Release** — CI build of ``master`` triggered by a tag push. The
  configured version must equal the latest SemVer tag and is used as-is.
- **Daily** — any other CI build of ``master``. Labelled
  ``xdaily.<YYYYMMDDHHMMSS>`` with ``C<commit>`` appended to the metadata.
- **Internal / private** — CI builds of other branches (``internal.<ts>``)
  and all local builds (``private.<ts>``). Metadata records the sanitized
  branch, merge request, commit and, for local builds, the user:
  ``B<branch>[.MR<id>].C<commit>[.U<user>]``.

Existing metadata from the base version is kept and extended with ``.``.

Typical usage::

    version = synthesize(context)
    write_version_file(version, ".jenkins_build_version.txt")
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from datetime import datetime, timezone
from typing import List, Union

from buildkeeper.models import SemVer, VersionContext
from buildkeeper.utils.logger import get_logger
from buildkeeper.utils.filesystem import safe_write_file
from buildkeeper.exceptions import EmptyVersionResult, VersionTagMismatch
from buildkeeper.constants import (
    DAILY_LABEL,
    INTERNAL_LABEL,
    PRIVATE_LABEL,
    LABEL_TIMESTAMP_FORMAT,
)

logger = get_logger("synthesizer")

__all__ = [
    "synthesize",
    "format_build_timestamp",
    "write_version_file",
    "build_job_hash",
]


def format_build_timestamp(timestamp: int) -> str:
    """Format a Unix timestamp as ``YYYYMMDDHHMMSS`` in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        LABEL_TIMESTAMP_FORMAT
    )


def synthesize(ctx: VersionContext) -> SemVer:
    """Compute the final build version for ``ctx``.

    Args:
        ctx: Build inputs assembled from configuration, git and CI state.

    Returns:
        The version to package under.

    Raises:
        VersionTagMismatch: Tag-triggered master build whose latest tag is
            missing or differs from the configured version.
        EmptyVersionResult: The result serialized to an empty string.
    """
    version = ctx.base_version

    if not ctx.is_local_build and ctx.is_master:
        if ctx.is_tag_triggered_release:
            _check_release_tag(ctx)
            logger.info("Release build matching tag %s", ctx.latest_tag)
        else:
            version = _daily_version(ctx)
            logger.info("Daily build from the master branch with version: %s", version)
    else:
        version = _branch_version(ctx)
        logger.info(
            "%s build from branch %s with version: %s",
            "Private" if ctx.is_local_build else "Internal",
            ctx.branch_name,
            version,
        )

    if not version.serialize():
        raise EmptyVersionResult(
            "Version synthesis produced an empty version",
            {"branch": ctx.branch_name},
        )
    return version


def _check_release_tag(ctx: VersionContext) -> None:
    if ctx.latest_tag is None or not ctx.base_version.equals(ctx.latest_tag):
        raise VersionTagMismatch(
            "A tag-triggered master build needs a tag equal to the configured version",
            configured=str(ctx.base_version),
            tag=str(ctx.latest_tag) if ctx.latest_tag is not None else None,
        )


def _daily_version(ctx: VersionContext) -> SemVer:
    label = f"{DAILY_LABEL}.{format_build_timestamp(ctx.build_timestamp)}"
    return ctx.base_version.with_label(label).append_metadata(f"C{ctx.short_commit}")


def _branch_version(ctx: VersionContext) -> SemVer:
    tokens: List[str] = [f"B{ctx.branch_sanitized}"]
    if ctx.merge_request_id:
        tokens.append(f"MR{ctx.merge_request_id}")
    tokens.append(f"C{ctx.short_commit}")
    if ctx.is_local_build and ctx.username:
        tokens.append(f"U{ctx.username}")

    kind = PRIVATE_LABEL if ctx.is_local_build else INTERNAL_LABEL
    label = f"{kind}.{format_build_timestamp(ctx.build_timestamp)}"

    return ctx.base_version.with_label(label).append_metadata(".".join(tokens))


def write_version_file(version: SemVer, path: Union[str, Path]) -> Path:
    """Persist ``version`` as a single line for downstream build steps."""
    written = safe_write_file(path, f"{version}\n")
    logger.info("Wrote build version %s to %s", version, written)
    return written


def build_job_hash(project: str, build_name: str, version: SemVer) -> str:
    """Return the 12-character identifier of a build job.

    Derived from the project, build name and version so that concurrent
    builds of different versions never share container or network names.
    """
    payload = f"{project} {build_name} {version}\n".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:12]
