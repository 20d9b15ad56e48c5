"""
Dependency data models for buildkeeper.

This module defines the structured form of a dependency declaration line
and of its resolution into an apt-installable ``name=version`` token.

Accepted declaration syntax::

    rtbrick-libinfra
    rtbrick-libinfra (~= 2\\.2\\.2.*Bdevelopment.*)
    rtbrick-libinfra (= 2.2.2-internal.20210101120000)
    thirdparty:::libfoo (~= ^1\\.4\\.)
    rtbrick-libinfra  # {"reason": "runtime"}
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from buildkeeper.constants import (
    ANNOTATION_MARKER,
    DEPENDENCY_PATTERN,
    GROUP_OVERRIDE_SEPARATOR,
)
from buildkeeper.exceptions import (
    InvalidConstraintPattern,
    InvalidOverrideSyntax,
    UnsupportedConstraintKind,
)
from buildkeeper.models.semver import SemVer

_DEPENDENCY_RE = re.compile(DEPENDENCY_PATTERN)
_ANNOTATION_RE = re.compile(rf"\s+{re.escape(ANNOTATION_MARKER)}\s?")


class ConstraintKind(str, Enum):
    """How a constraint value is applied to candidate versions."""

    EXACT = "exact"
    REGEX = "regex"

    @classmethod
    def from_operator(cls, operator: str, *, dependency: str) -> "ConstraintKind":
        """Map a declaration operator (``~=``, ``=``, ``==``) to a kind."""
        if operator == "~=":
            return cls.REGEX
        if operator in ("=", "=="):
            return cls.EXACT
        raise UnsupportedConstraintKind(
            f"Unsupported version match operator {operator!r}",
            dependency=dependency,
        )


@dataclass(frozen=True)
class Constraint:
    """A version constraint: a regular expression or an exact version."""

    kind: ConstraintKind
    value: str

    def render(self) -> str:
        operator = "~=" if self.kind is ConstraintKind.REGEX else "="
        return f"({operator} {self.value})"


@dataclass(frozen=True)
class DependencySpec:
    """
    One parsed dependency declaration.

    Attributes:
        package_name: Debian package name.
        constraint: Optional version constraint.
        group_override: Component the lookup is scoped to, from
            ``group:::dependency`` lines.
        annotation: Opaque trailing comment/JSON carried through verbatim.
        raw: Original declaration line.
    """

    package_name: str
    constraint: Optional[Constraint] = None
    group_override: Optional[str] = None
    annotation: Optional[str] = None
    raw: Optional[str] = None

    @classmethod
    def parse(cls, line: str) -> "DependencySpec":
        """
        Parse a declaration line.

        Raises:
            InvalidOverrideSyntax: ``:::`` with an empty side, or repeated.
            UnsupportedConstraintKind: Unknown operator or unparseable line.
            InvalidConstraintPattern: Constraint with an empty value.
        """
        raw = line.strip()
        body, annotation = _split_annotation(raw)

        group: Optional[str] = None
        if GROUP_OVERRIDE_SEPARATOR in body:
            group, _, body = body.partition(GROUP_OVERRIDE_SEPARATOR)
            group, body = group.strip(), body.strip()
            if not group or not body or GROUP_OVERRIDE_SEPARATOR in body:
                raise InvalidOverrideSyntax(
                    "Override must have the form 'group:::dependency'",
                    dependency=raw,
                )

        match = _DEPENDENCY_RE.match(body)
        if match is None:
            raise UnsupportedConstraintKind(
                "Unrecognized dependency declaration",
                dependency=raw,
            )

        constraint: Optional[Constraint] = None
        operator = match.group("op")
        if operator is not None:
            kind = ConstraintKind.from_operator(operator, dependency=raw)
            value = match.group("value").strip()
            if not value:
                raise InvalidConstraintPattern(
                    "Empty version constraint",
                    package_name=match.group("name"),
                    dependency=raw,
                )
            constraint = Constraint(kind=kind, value=value)

        return cls(
            package_name=match.group("name"),
            constraint=constraint,
            group_override=group,
            annotation=annotation,
            raw=raw,
        )

    def with_constraint(self, constraint: Optional[Constraint]) -> "DependencySpec":
        return replace(self, constraint=constraint)

    def __str__(self) -> str:
        text = self.package_name
        if self.constraint is not None:
            text += f" {self.constraint.render()}"
        if self.group_override:
            text = f"{self.group_override}{GROUP_OVERRIDE_SEPARATOR}{text}"
        return text


def _split_annotation(line: str) -> Tuple[str, Optional[str]]:
    parts = _ANNOTATION_RE.split(line, maxsplit=1)
    if len(parts) == 1:
        return line, None
    return parts[0].strip(), parts[1].strip() or None


@dataclass(frozen=True)
class ResolvedDependency:
    """
    A dependency resolved to something the package installer accepts.

    Attributes:
        package_name: Debian package name.
        version: Parsed selected version, ``None`` for passthrough names.
        raw_version: Version string exactly as the repository lists it.
        origin: How it was resolved (``regex``, ``exact``, ``branch``,
            ``development``, ``daily``, ``unconstrained``, ``passthrough``).
        raw_spec_echo: The declaration line this came from.
        annotation: Opaque trailing comment/JSON from the declaration.
        component: Repository component the lookup was scoped to.
        companion: Matching ``-dev`` package, when one was found.
    """

    package_name: str
    version: Optional[SemVer] = None
    raw_version: Optional[str] = None
    origin: str = "passthrough"
    raw_spec_echo: Optional[str] = None
    annotation: Optional[str] = None
    component: Optional[str] = None
    companion: Optional["ResolvedDependency"] = field(default=None, compare=False)

    def to_apt_token(self) -> str:
        """Return ``name=version``, or the bare name when unpinned."""
        if self.raw_version:
            return f"{self.package_name}={self.raw_version}"
        return self.package_name

    def install_tokens(self) -> List[str]:
        tokens = [self.to_apt_token()]
        if self.companion is not None:
            tokens.append(self.companion.to_apt_token())
        return tokens

    def to_install_line(self) -> str:
        """Render the output line: tokens, then the annotation if any."""
        line = "  ".join(self.install_tokens())
        if self.annotation:
            line += f"  {ANNOTATION_MARKER} {self.annotation}"
        return line

    def with_companion(
        self, companion: Optional["ResolvedDependency"]
    ) -> "ResolvedDependency":
        return replace(self, companion=companion)

    def to_json(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "package": self.package_name,
            "token": self.to_apt_token(),
            "origin": self.origin,
        }
        if self.raw_version:
            entry["version"] = self.raw_version
        if self.component:
            entry["component"] = self.component
        if self.raw_spec_echo:
            entry["dependency"] = self.raw_spec_echo
        if self.annotation:
            entry["annotation"] = self.annotation
        if self.companion is not None:
            entry["dev"] = self.companion.to_apt_token()
        return entry

    def __str__(self) -> str:
        return self.to_apt_token()
