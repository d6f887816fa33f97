"""Error taxonomy for claude-guard.

Only structural rejections and policy blocks reach the user. Every other
category is recovered where it occurs.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from claude_guard.core.policy import PolicySource, Verdict, VerdictKind


class ErrorCategory(Enum):
    """Categories of errors with different handling."""
    STRUCTURAL_REJECTION = "structural_rejection"          # Length or forbidden characters
    POLICY_BLOCK = "policy_block"                          # Deny/block pattern matched
    CONFIGURATION_DEGRADED = "configuration_degraded"      # Config unreadable, defaults used
    AUDIT_WRITE_FAILURE = "audit_write_failure"            # Audit log not writable
    MATCHER_COMPILE_FAILURE = "matcher_compile_failure"    # Wildcard fell back to segments
    LAUNCH_FAILURE = "launch_failure"                      # Downstream executable not started


# Categories that terminate the request and are reported to the user
USER_VISIBLE: frozenset[ErrorCategory] = frozenset([
    ErrorCategory.STRUCTURAL_REJECTION,
    ErrorCategory.POLICY_BLOCK,
    ErrorCategory.LAUNCH_FAILURE,
])


class GuardError(Exception):
    """Base exception for claude-guard errors."""

    def __init__(self, message: str, category: ErrorCategory):
        super().__init__(message)
        self.message = message
        self.category = category

    @property
    def user_visible(self) -> bool:
        return self.category in USER_VISIBLE

    def to_audit(self) -> dict[str, Any]:
        """Fields recorded in the audit log for this error."""
        return {"reason": self.category.value, "error": self.message}


class StructuralRejection(GuardError):
    """Command rejected before any pattern was consulted."""

    def __init__(self, reason: str):
        super().__init__(reason, ErrorCategory.STRUCTURAL_REJECTION)
        self.reason = reason

    def to_audit(self) -> dict[str, Any]:
        return {"reason": self.reason}


class PolicyBlock(GuardError):
    """A deny or block pattern matched the command."""

    def __init__(self, source: PolicySource, pattern: str):
        super().__init__(f"Blocked by {source.label}: {pattern}", ErrorCategory.POLICY_BLOCK)
        self.source = source
        self.pattern = pattern

    def to_audit(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "source": self.source.value}


class ConfigurationDegraded(GuardError):
    """A configuration file could not be used; defaults apply."""

    def __init__(self, path: Union[str, Path], detail: str):
        super().__init__(f"Could not load {path}: {detail}", ErrorCategory.CONFIGURATION_DEGRADED)
        self.path = Path(path)
        self.detail = detail


class AuditWriteFailure(GuardError):
    """Audit entry could not be appended."""

    def __init__(self, path: Union[str, Path], original: Optional[Exception] = None):
        super().__init__(f"Could not write audit log {path}: {original}", ErrorCategory.AUDIT_WRITE_FAILURE)
        self.path = Path(path)
        self.original = original


class LaunchError(GuardError):
    """The downstream executable could not be started."""

    def __init__(self, executable: str, original: Optional[Exception] = None):
        super().__init__(f"Failed to launch '{executable}': {original}", ErrorCategory.LAUNCH_FAILURE)
        self.executable = executable
        self.original = original


def enforce(verdict: Verdict) -> Verdict:
    """Raise for denied or blocked verdicts, return allowed ones unchanged.

    Raises:
        StructuralRejection: The verdict is DENIED.
        PolicyBlock: The verdict is BLOCKED.
    """
    if verdict.kind == VerdictKind.DENIED:
        raise StructuralRejection(verdict.reason or "denied")
    if verdict.kind == VerdictKind.BLOCKED:
        raise PolicyBlock(verdict.source, verdict.pattern or "")
    return verdict
