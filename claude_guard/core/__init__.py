"""Core module - policy engine, configuration and collaborators."""

from claude_guard.core.matcher import matches, compile_pattern, segment_match
from claude_guard.core.scope import Scoped, Unscoped, extract_scope, SHELL_TOOL
from claude_guard.core.decompose import decompose, candidate_set, extract_substitutions
from claude_guard.core.policy import (
    Policy,
    NativePolicy,
    GuardPolicy,
    PolicyOptions,
    PolicySource,
    PolicyWarning,
    PolicyResolver,
    Verdict,
    VerdictKind,
    resolve,
)
from claude_guard.core.errors import (
    ErrorCategory,
    GuardError,
    StructuralRejection,
    PolicyBlock,
    ConfigurationDegraded,
    AuditWriteFailure,
    LaunchError,
    enforce,
)
from claude_guard.core.config import (
    ConfigManager,
    GuardConfig,
    PolicyConfig,
    NativeSettings,
    load_native_settings,
)

__all__ = [
    "matches",
    "compile_pattern",
    "segment_match",
    "Scoped",
    "Unscoped",
    "extract_scope",
    "SHELL_TOOL",
    "decompose",
    "candidate_set",
    "extract_substitutions",
    "Policy",
    "NativePolicy",
    "GuardPolicy",
    "PolicyOptions",
    "PolicySource",
    "PolicyWarning",
    "PolicyResolver",
    "Verdict",
    "VerdictKind",
    "resolve",
    "ErrorCategory",
    "GuardError",
    "StructuralRejection",
    "PolicyBlock",
    "ConfigurationDegraded",
    "AuditWriteFailure",
    "LaunchError",
    "enforce",
    "ConfigManager",
    "GuardConfig",
    "PolicyConfig",
    "NativeSettings",
    "load_native_settings",
]
