"""Wildcard pattern matching for command policies.

Patterns are plain text with ``*`` wildcards, compared case-insensitively.
A pattern without a wildcard matches when the command equals it or contains
it. A pattern with a wildcard must match the whole command.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from claude_guard.core.logging import get_logger


WILDCARD = "*"


def _is_trivial(pattern: Optional[str]) -> bool:
    return not pattern or pattern == WILDCARD


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Optional[re.Pattern[str]]:
    """Compile a folded wildcard pattern into an anchored regex.

    Returns None when the pattern cannot be compiled; callers then fall back
    to segment containment.
    """
    escaped = re.escape(pattern).replace(r"\*", ".*")
    try:
        return re.compile(f"^{escaped}$", re.DOTALL)
    except (re.error, RecursionError, OverflowError) as e:
        get_logger().debug("Pattern %r uses segment matching: %s", pattern, e)
        return None


def segment_match(command: str, pattern: str) -> bool:
    """Loose match: every literal segment between wildcards occurs in command."""
    segments = [part for part in pattern.split(WILDCARD) if part]
    return all(segment in command for segment in segments)


def matches(command: Optional[str], pattern: Optional[str]) -> bool:
    """Test a single command string against a single wildcard pattern.

    Args:
        command: Command text (one candidate, not a whole command line).
        pattern: Unscoped pattern. Empty or ``*`` matches everything.

    Returns:
        True if the command matches.
    """
    if _is_trivial(pattern):
        return True
    if not command:
        return False

    folded_command = command.lower()
    folded_pattern = pattern.lower()

    # Without a wildcard the test is containment (equality is a special case)
    if WILDCARD not in folded_pattern:
        return folded_command == folded_pattern or folded_pattern in folded_command

    regex = compile_pattern(folded_pattern)
    if regex is None:
        return segment_match(folded_command, folded_pattern)
    return regex.match(folded_command) is not None


def first_match(candidates: list[str], patterns: list[str]) -> Optional[str]:
    """Return the first pattern (in list order) matched by any candidate."""
    for pattern in patterns:
        if any(matches(candidate, pattern) for candidate in candidates):
            return pattern
    return None
