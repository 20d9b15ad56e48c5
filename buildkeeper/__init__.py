"""
buildkeeper — build versioning and dependency resolution for Debian packages.

buildkeeper computes the version a CI or local build is packaged under from
git branch, commit and tag state, and resolves dependency declarations
(plain names, ``~=`` regex constraints, ``=`` pins, component overrides)
against a package repository, with per-branch fallback for internal
packages and ``-dev`` companion lookup.
"""

from __future__ import annotations

from buildkeeper.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "buildkeeper Contributors"
__license__ = "Apache-2.0"
__description__ = "Build version synthesis and Debian dependency resolution."

__all__ = [
    "__version__",
]
