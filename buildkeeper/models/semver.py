"""
SemVer data model for buildkeeper.

This module defines :class:`SemVer`, the structured
``MAJOR.MINOR.PATCH[-LABEL][+META]`` version used for build versions, git
tags, and repository candidates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from buildkeeper.constants import SEMVER_PATTERN
from buildkeeper.exceptions import MalformedVersion

_SEMVER_FULL_RE = re.compile(rf"^{SEMVER_PATTERN}$")
_SEMVER_SEARCH_RE = re.compile(SEMVER_PATTERN)


@dataclass(frozen=True)
class SemVer:
    """
    An immutable SemVer 2.0 version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch (revision) number.
        label: Prerelease qualifier, e.g. ``"xdaily.20210101120000"``.
        metadata: Build metadata, e.g. ``"Bmaster.C1a2b3c4"``.
    """

    major: int
    minor: int
    patch: int
    label: Optional[str] = None
    metadata: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise MalformedVersion(
                    f"{name} must be a non-negative integer, got {value!r}"
                )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        """
        Parse a complete version string.

        Leading zeros in numeric parts are dropped (``"08.1.2"`` → 8.1.2).

        Raises:
            MalformedVersion: ``text`` is not exactly a SemVer string.
        """
        match = _SEMVER_FULL_RE.match(text.strip()) if text else None
        if match is None:
            raise MalformedVersion(f"Not a SemVer 2.0 version: {text!r}", text=text)
        return cls._from_match(match)

    @classmethod
    def search(cls, text: str) -> Optional["SemVer"]:
        """
        Extract the first SemVer embedded in ``text``.

        Used for git tags such as ``v2.1.0`` or ``release_2.1.0``.

        Returns:
            The parsed version, or ``None`` if ``text`` holds none.
        """
        match = _SEMVER_SEARCH_RE.search(text or "")
        if match is None:
            return None
        return cls._from_match(match)

    @classmethod
    def _from_match(cls, match: "re.Match[str]") -> "SemVer":
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            label=match.group("label") or None,
            metadata=match.group("metadata") or None,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SemVer":
        """
        Build a version from a ``{"major", "minor", "rev", "label", "meta"}``
        mapping as found in build configuration files.

        ``patch`` is accepted as an alias of ``rev``; numbers may be given
        as integers or digit strings.
        """
        try:
            major = int(data["major"])
            minor = int(data["minor"])
            patch = int(data["rev"] if "rev" in data else data["patch"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedVersion(
                f"Invalid version mapping: {dict(data)!r}", text=str(dict(data))
            ) from exc
        return cls(
            major=major,
            minor=minor,
            patch=patch,
            label=data.get("label") or None,
            metadata=data.get("meta") or data.get("metadata") or None,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Return ``major.minor.patch[-label][+metadata]``."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.label:
            text += f"-{self.label}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        """Inverse of :meth:`from_dict`."""
        return {
            "major": self.major,
            "minor": self.minor,
            "rev": self.patch,
            "label": self.label or "",
            "meta": self.metadata or "",
        }

    # ------------------------------------------------------------------
    # Comparison and derivation
    # ------------------------------------------------------------------

    def equals(self, other: "SemVer") -> bool:
        """
        Return ``True`` if major, minor, patch and label match.

        Build metadata is ignored, so ``1.2.3+X`` equals ``1.2.3+Y``. This
        is the check applied between the configured release version and
        the latest git tag; it is not an ordering.
        """
        return (
            self.major == other.major
            and self.minor == other.minor
            and self.patch == other.patch
            and (self.label or None) == (other.label or None)
        )

    def with_label(self, label: Optional[str]) -> "SemVer":
        return replace(self, label=label or None)

    def with_metadata(self, metadata: Optional[str]) -> "SemVer":
        return replace(self, metadata=metadata or None)

    def append_metadata(self, token: str) -> "SemVer":
        """Return a copy with ``token`` appended to the metadata using ``.``."""
        if not token:
            return self
        if self.metadata:
            return replace(self, metadata=f"{self.metadata}.{token}")
        return replace(self, metadata=token)

    def __str__(self) -> str:
        return self.serialize()


def parse(text: str) -> SemVer:
    """Module-level shortcut for :meth:`SemVer.parse`."""
    return SemVer.parse(text)


def serialize(version: SemVer) -> str:
    """Module-level shortcut for :meth:`SemVer.serialize`."""
    return version.serialize()


def equals(a: SemVer, b: SemVer) -> bool:
    """Module-level shortcut for :meth:`SemVer.equals`."""
    return a.equals(b)
