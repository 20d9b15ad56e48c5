"""Resolve command implementation for buildkeeper.

Turns dependency declarations into install lines for the package
installer. Declarations come from the command line or, when none are
given, from the configured build.

Declaration syntax::

    rtbrick-libconfd                     # internal: branch fallback chain
    libssl1.1                            # passthrough, installer default
    libssl1.1 (~= ^1\\.1\\.)              # highest version matching regex
    libyang (= 1.0.130)                  # exact version
    thirdparty:::libyang (~= ^1\\.)      # lookup scoped to a component

The versions come from one repository backend:

- ``--snapshot FILE`` — a JSON snapshot (offline, reproducible)
- ``--aptly URL`` — the aptly REST API, queried concurrently
- ``--apt`` — the local apt index (default unless ``aptly_url`` is configured)

Typical usage::

    $ buildkeeper resolve --build bgpd
    $ buildkeeper resolve 'rtbrick-libconfd' --branch feature/x --format table
    $ buildkeeper resolve --snapshot repo.json --format json 'libfoo (= 1.0.0)'
"""

from __future__ import annotations

import os
import sys
import json
import asyncio
from pathlib import Path
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

import click

from buildkeeper.models import DependencySpec, ResolvedDependency
from buildkeeper.exceptions import BuildKeeperError, GitStateError
from buildkeeper.context import pass_context, BuildKeeperContext
from buildkeeper.constants import DEV_PACKAGE_SUFFIX
from buildkeeper.core import (
    AptCacheRepository,
    AptlyRepository,
    CIEnvironment,
    DependencyResolver,
    GitRepository,
    RepositorySnapshot,
    StaticRepository,
)
from buildkeeper.utils import (
    HTTPClient,
    colorize_origin,
    get_logger,
    print_error,
    print_result,
    print_table,
    print_warning,
)

logger = get_logger("commands.resolve")


@click.command()
@click.argument("dependencies", nargs=-1)
@click.option("--build", "build", default=None, help="Configured build name.")
@click.option("--branch", default=None, help="Override the detected branch.")
@click.option(
    "--with-dev/--no-dev",
    "with_dev",
    default=None,
    help="Look up -dev companion packages (default from configuration).",
)
@click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Resolve against a JSON repository snapshot.",
)
@click.option("--aptly", "aptly_url", default=None, help="aptly API root URL.")
@click.option("--apt", "use_apt", is_flag=True, help="Resolve against the local apt index.")
@click.option(
    "--update-index/--no-update-index",
    default=True,
    help="Run apt-get update before querying the apt index.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["simple", "table", "json"], case_sensitive=False),
    default="simple",
    help="Output format.",
)
@pass_context
def resolve(
    ctx: BuildKeeperContext,
    dependencies: Sequence[str],
    build: Optional[str],
    branch: Optional[str],
    with_dev: Optional[bool],
    snapshot: Optional[Path],
    aptly_url: Optional[str],
    use_apt: bool,
    update_index: bool,
    format: str,
) -> None:
    """Resolve dependency declarations to installable package references.

    Constrained declarations select the highest matching version.
    Unconstrained internal packages walk the branch fallback chain
    (branch, development, daily, any version). Everything else is passed
    through by name. Any failure aborts the whole pass.
    """
    if sum(bool(x) for x in (snapshot, aptly_url, use_apt)) > 1:
        raise click.UsageError("--snapshot, --aptly and --apt are mutually exclusive")

    config = ctx.config

    try:
        lines = list(dependencies) or list(config.build_value(build, "dependencies"))
        if not lines:
            print_warning("No dependencies to resolve")
            return

        specs = [DependencySpec.parse(line) for line in lines if line.strip()]
        current_branch = branch or _detect_branch()
        search_dev = config.search_dev if with_dev is None else with_dev

        repo = _open_repository(
            snapshot=snapshot,
            aptly_url=aptly_url or (None if use_apt else config.aptly_url),
            aptly_repo=config.aptly_repo,
            update_index=update_index,
        )
        if isinstance(repo, AptlyRepository):
            asyncio.run(_prefetch(repo, specs, search_dev=search_dev))

        resolver = DependencyResolver(
            repo=repo,
            branch=current_branch,
            internal_prefix=config.internal_prefix,
            search_dev=search_dev,
        )
        resolved = resolver.resolve_all(lines)

    except BuildKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    if format == "table":
        _display_table(resolved)
    elif format == "json":
        print_result(json.dumps([r.to_json() for r in resolved], indent=2))
    else:
        for item in resolved:
            print_result(item.to_install_line())


def _detect_branch() -> str:
    """Return the branch from the CI environment, else from git."""
    ci = CIEnvironment.from_mapping(os.environ)
    if ci.is_merge_request and ci.merge_request_source_branch:
        return ci.merge_request_source_branch

    detected = ci.branch or GitRepository().current_branch()
    if not detected:
        raise GitStateError("Cannot determine the current branch; use --branch")
    return detected


def _open_repository(
    *,
    snapshot: Optional[Path],
    aptly_url: Optional[str],
    aptly_repo: str,
    update_index: bool,
) -> RepositorySnapshot:
    if snapshot is not None:
        return StaticRepository.from_file(str(snapshot))

    if aptly_url:
        logger.info("Resolving against aptly at %s", aptly_url)
        return AptlyRepository(HTTPClient(), aptly_url, aptly_repo)

    repo = AptCacheRepository()
    if update_index:
        repo.update_index()
    return repo


async def _prefetch(
    repo: AptlyRepository,
    specs: List[DependencySpec],
    *,
    search_dev: bool,
) -> None:
    """Fetch every package the resolution pass may query, per component."""
    by_component: Dict[Optional[str], Set[str]] = defaultdict(set)
    for spec in specs:
        names = by_component[spec.group_override]
        names.add(spec.package_name)
        if search_dev:
            names.add(f"{spec.package_name}{DEV_PACKAGE_SUFFIX}")

    async with repo.client:
        await asyncio.gather(
            *(
                repo.prefetch(sorted(names), component=component)
                for component, names in by_component.items()
            )
        )


def _display_table(resolved: List[ResolvedDependency]) -> None:
    rows = [
        {
            "Package": item.package_name,
            "Version": item.raw_version or "-",
            "Origin": colorize_origin(item.origin),
            "Component": item.component or "-",
            "Dev": item.companion.to_apt_token() if item.companion else "-",
        }
        for item in resolved
    ]
    print_table(
        rows,
        headers=["Package", "Version", "Origin", "Component", "Dev"],
        title="Resolved Dependencies",
        column_styles={"Package": {"style": "bold", "no_wrap": True}},
    )
