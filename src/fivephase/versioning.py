"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Dotted version comparison.
"""

import re
from typing import Optional, Tuple

_LEADING_INT = re.compile(r'^\s*(\d+)')


def _component(part: str) -> int:
    # "2-beta" -> 2, "rc1" -> 0
    match = _LEADING_INT.match(part)
    return int(match.group(1)) if match else 0


def parse_version(version: Optional[str]) -> Tuple[int, int, int]:
    """
    Parse a dotted version into exactly three integer components.

    Pre-release suffixes are truncated, so "1.2.0-beta" parses as (1, 2, 0).
    This does not follow semver pre-release ordering; it only guarantees the
    comparison never fails on tagged versions.
    """
    parts = (version or '').split('.')
    padded = (parts + ['', '', ''])[:3]
    return (_component(padded[0]), _component(padded[1]), _component(padded[2]))


def compare_versions(a: Optional[str], b: Optional[str]) -> int:
    """Return -1, 0 or 1 as version a is older, equal to or newer than b."""
    left = parse_version(a)
    right = parse_version(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_newer(candidate: Optional[str], current: Optional[str]) -> bool:
    return compare_versions(candidate, current) > 0
