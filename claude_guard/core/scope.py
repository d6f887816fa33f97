"""Parsing of tool-scoped patterns such as ``Bash(git *)``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union


_TOOL_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_]*")

# The only tool this gate authorizes as a shell executor
SHELL_TOOL = "Bash"


@dataclass(frozen=True)
class Scoped:
    """Pattern restricted to one tool."""
    tool: str
    pattern: str

    def applies_to(self, tool_name: str) -> bool:
        return self.tool == tool_name


@dataclass(frozen=True)
class Unscoped:
    """Pattern that applies to every tool."""
    pattern: str
    tool: None = None

    def applies_to(self, tool_name: str) -> bool:
        return True


ScopeResult = Union[Scoped, Unscoped]


def extract_scope(raw: Optional[str]) -> ScopeResult:
    """Split ``Tool(pattern)`` into its tool name and inner pattern.

    The scoped form is recognized only when a valid tool name starts the
    trimmed string, followed by the first ``(`` and closed by the last ``)``.
    Any other input is returned unscoped and unchanged.
    """
    if not raw:
        return Unscoped(pattern=raw or "")

    trimmed = raw.strip()
    open_paren = trimmed.find("(")
    close_paren = trimmed.rfind(")")

    if open_paren > 0 and close_paren > open_paren:
        tool = trimmed[:open_paren]
        if _TOOL_NAME_RE.fullmatch(tool):
            return Scoped(tool=tool, pattern=trimmed[open_paren + 1:close_paren])

    return Unscoped(pattern=raw)
