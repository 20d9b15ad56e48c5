"""
Version ordering utilities for buildkeeper.

Candidate versions are ranked the way ``sort -V`` (and dpkg) order
package versions. The string is split into alternating non-digit and
digit runs. Digit runs compare numerically. Non-digit runs compare
character by character, with letters sorting before other punctuation
and ``~`` sorting before everything, even the end of the string, so
``1.2.3-rc~1`` ranks below ``1.2.3-rc``.

Known limitation: SemVer precedence says ``1.2.3-alpha < 1.2.3``, but the
natural ordering ranks ``1.2.3-alpha`` *higher* because it extends
``1.2.3``. Selection deliberately keeps this behaviour until a product
decision says otherwise; see ``test_prerelease_ranks_above_release``.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

_SEGMENT_RE = re.compile(r"(\D*)(\d*)")

Segment = Tuple[Tuple[int, ...], int]
VersionKey = Tuple[Segment, ...]

# An exhausted string compares like an empty text run followed by 0
_END: Segment = ((0,), 0)


def _char_order(char: str) -> int:
    if char == "~":
        return -1
    if char.isalpha():
        return ord(char)
    return ord(char) + 256


def version_sort_key(version: str) -> VersionKey:
    """Return a key ordering version strings naturally.

    Examples:
        >>> version_sort_key("1.10.0") > version_sort_key("1.9.0")
        True
    """
    key: List[Segment] = []
    for match in _SEGMENT_RE.finditer(version):
        text, digits = match.groups()
        if not text and not digits:
            continue
        order = tuple(_char_order(c) for c in text) + (0,)
        key.append((order, int(digits) if digits else 0))
    key.append(_END)
    return tuple(key)


def compare_for_selection(a: str, b: str) -> int:
    """Three-way comparison of two version strings for best-match selection.

    Returns:
        ``-1`` if ``a`` ranks lower, ``1`` if higher, ``0`` if equal.
    """
    key_a, key_b = version_sort_key(a), version_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def pick_highest(candidates: Iterable[str]) -> Optional[str]:
    """Return the highest-ranked candidate, or ``None`` for no candidates.

    Candidates are sorted textually first so the winner among equal keys
    (e.g. ``1.02.0`` vs ``1.2.0``) does not depend on input order.
    """
    ordered = sorted(candidates)
    if not ordered:
        return None
    return max(ordered, key=version_sort_key)
