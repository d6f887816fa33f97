"""Command line decomposition into independently checked sub-commands.

This is not a shell parser. Operators inside quotes are split
like any other, ``&`` and ``&&`` are treated alike, and substitutions are
extracted one level deep only.
"""

from __future__ import annotations

import re
from typing import Optional


# Pipe, semicolon, ampersand (``&&`` leaves an empty segment that is dropped)
_OPERATOR_RE = re.compile(r"\s*[|;&]\s*|\s*&&\s*")

# $( ... ) up to the first closing paren
_DOLLAR_SUB_RE = re.compile(r"\$\(([^)]+)\)")

_BACKTICK_SUB_RE = re.compile(r"`([^`]+)`")


def extract_substitutions(command: str) -> list[str]:
    """Return the trimmed payloads of ``$(...)`` then backtick substitutions."""
    payloads = []
    for regex in (_DOLLAR_SUB_RE, _BACKTICK_SUB_RE):
        for inner in regex.findall(command):
            inner = inner.strip()
            if inner:
                payloads.append(inner)
    return payloads


def split_segments(command: str) -> list[str]:
    """Split on pipeline and sequencing operators, dropping empty segments."""
    segments = []
    for part in _OPERATOR_RE.split(command):
        part = part.strip()
        if part:
            segments.append(part)
    return segments


def decompose(command: Optional[str]) -> list[str]:
    """Decompose a command line into its sub-commands.

    Each segment is followed by the substitution payloads found in it.
    Payloads are not decomposed further. Duplicates are kept.
    """
    if not command:
        return []

    commands: list[str] = []
    for segment in split_segments(command):
        commands.append(segment)
        commands.extend(extract_substitutions(segment))
    return commands


def candidate_set(command: Optional[str]) -> list[str]:
    """Every string a pattern is tested against: sub-commands plus the original."""
    if not command:
        return []
    return decompose(command) + [command]
