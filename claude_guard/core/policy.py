"""Command policy decision engine.

Resolves one verdict for a shell command line from two policy sources: the
assistant's native permission settings and the local guard configuration.

Order of evaluation:
1. Structural checks on the raw command (length, shell expansion)
2. Decomposition into the candidate set
3. Native deny / native allow / guard block, by configured precedence
4. Guard warnings (advisory, never block)
5. Repository-root caution (advisory, never blocks)

Every decision is a pure function of the command, the policy snapshot and
whether the working directory is a repository root.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from claude_guard.core.decompose import candidate_set
from claude_guard.core.matcher import first_match, matches
from claude_guard.core.scope import SHELL_TOOL, extract_scope


class VerdictKind(Enum):
    """Terminal outcome of one evaluation."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"
    DENIED = "denied"


class PolicySource(Enum):
    """Where a pattern came from."""
    NATIVE_ALLOW = "native_allow"
    NATIVE_DENY = "native_deny"
    GUARD_BLOCK = "guard_block"
    GUARD_WARN = "guard_warn"

    @property
    def label(self) -> str:
        if self in (PolicySource.NATIVE_ALLOW, PolicySource.NATIVE_DENY):
            return "Claude settings"
        return "guard pattern"


DENY_TOO_LONG = "too long"
DENY_SHELL_EXPANSION = "shell expansion disabled"

REPO_ROOT_CAUTION = (
    "You are in a git repository root directory. "
    "This command might delete important files."
)

# Characters rejected outright when shell expansion is disabled
SHELL_EXPANSION_RE = re.compile(r"[`$(){}\[\]|&;<>*?~]")

# Substring search, so "rm" also hits words such as "format"
DESTRUCTIVE_INTENT_RE = re.compile(r"rm|delete|remove|clean", re.IGNORECASE)


def _patterns(values: Optional[Iterable[str]]) -> tuple[str, ...]:
    # Blank entries in a config list are ignored rather than matching everything
    return tuple(value for value in (values or ()) if value)


@dataclass(frozen=True)
class NativePolicy:
    """The assistant's own allow/deny permission lists (``Tool(pattern)`` form)."""
    allow: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "allow", _patterns(self.allow))
        object.__setattr__(self, "deny", _patterns(self.deny))


@dataclass(frozen=True)
class GuardPolicy:
    """Locally configured block and warn patterns."""
    block: tuple[str, ...] = ()
    warn: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "block", _patterns(self.block))
        object.__setattr__(self, "warn", _patterns(self.warn))


@dataclass(frozen=True)
class PolicyOptions:
    """Switches that shape evaluation."""
    max_length: Optional[int] = None
    allow_shell_expansion: bool = True
    use_native_settings: bool = True
    native_settings_first: bool = True


@dataclass(frozen=True)
class Policy:
    """Immutable policy snapshot, loaded once per invocation."""
    native: NativePolicy = field(default_factory=NativePolicy)
    guard: GuardPolicy = field(default_factory=GuardPolicy)
    options: PolicyOptions = field(default_factory=PolicyOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Policy":
        """Build a snapshot from ``{native, guard, options}`` mappings.

        Option keys are accepted in camelCase or snake_case.
        """
        native = data.get("native") or {}
        guard = data.get("guard") or {}
        options = data.get("options") or {}

        def option(camel: str, snake: str, default: Any) -> Any:
            if camel in options:
                return options[camel]
            return options.get(snake, default)

        return cls(
            native=NativePolicy(allow=native.get("allow"), deny=native.get("deny")),
            guard=GuardPolicy(block=guard.get("block"), warn=guard.get("warn")),
            options=PolicyOptions(
                max_length=option("maxLength", "max_length", None),
                allow_shell_expansion=option("allowShellExpansion", "allow_shell_expansion", True),
                use_native_settings=option("useNativeSettings", "use_native_settings", True),
                native_settings_first=option("nativeSettingsFirst", "native_settings_first", True),
            ),
        )


@dataclass(frozen=True)
class PolicyWarning:
    """Advisory annotation from a matching warn pattern."""
    pattern: str
    source: PolicySource = PolicySource.GUARD_WARN


@dataclass(frozen=True)
class Verdict:
    """Result of evaluating one command line."""
    kind: VerdictKind
    source: Optional[PolicySource] = None
    pattern: Optional[str] = None
    reason: Optional[str] = None
    warnings: tuple[PolicyWarning, ...] = ()
    caution: Optional[str] = None

    @classmethod
    def allow(cls, source: Optional[PolicySource] = None) -> "Verdict":
        return cls(kind=VerdictKind.ALLOWED, source=source)

    @classmethod
    def block(cls, source: PolicySource, pattern: str) -> "Verdict":
        return cls(kind=VerdictKind.BLOCKED, source=source, pattern=pattern)

    @classmethod
    def deny(cls, reason: str) -> "Verdict":
        return cls(kind=VerdictKind.DENIED, reason=reason)

    @property
    def is_allowed(self) -> bool:
        return self.kind == VerdictKind.ALLOWED

    @property
    def is_blocked(self) -> bool:
        return self.kind == VerdictKind.BLOCKED

    @property
    def is_denied(self) -> bool:
        return self.kind == VerdictKind.DENIED

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.is_denied:
            return f"Denied: {self.reason}"
        if self.is_blocked:
            return f"Blocked by {self.source.label}: {self.pattern}"
        if self.source is not None:
            return f"Allowed by {self.source.label}"
        return "Allowed"


class PolicyResolver:
    """Evaluates command lines against one policy snapshot.

    The resolver holds no state besides the snapshot, so a single instance
    can evaluate any number of commands.
    """

    def __init__(self, policy: Optional[Policy] = None, tool_name: str = SHELL_TOOL):
        """Initialize with a policy snapshot.

        Args:
            policy: Snapshot to evaluate against. Defaults to an empty policy.
            tool_name: Tool scope that native patterns must target to apply.
        """
        self.policy = policy or Policy()
        self.tool_name = tool_name

    def check_structure(self, command: str) -> Optional[Verdict]:
        """Structural rejection on the raw command, before any pattern."""
        options = self.policy.options
        if options.max_length and len(command) > options.max_length:
            return Verdict.deny(DENY_TOO_LONG)
        if not options.allow_shell_expansion and SHELL_EXPANSION_RE.search(command):
            return Verdict.deny(DENY_SHELL_EXPANSION)
        return None

    def match_scoped(self, candidates: list[str], patterns: Iterable[str]) -> Optional[str]:
        """First ``Tool(pattern)`` entry that targets this tool and matches.

        Entries scoped to another tool never match. The raw entry is
        returned so it can be reported as written.
        """
        for raw in patterns:
            scoped = extract_scope(raw)
            if not scoped.applies_to(self.tool_name):
                continue
            if any(matches(candidate, scoped.pattern) for candidate in candidates):
                return raw
        return None

    def match_guard(self, candidates: list[str], patterns: Iterable[str]) -> Optional[str]:
        """First guard pattern matched by any candidate (no tool scoping)."""
        return first_match(candidates, list(patterns))

    def collect_warnings(self, candidates: list[str]) -> tuple[PolicyWarning, ...]:
        """Every warn pattern that matches, in configured order."""
        return tuple(
            PolicyWarning(pattern=pattern)
            for pattern in self.policy.guard.warn
            if any(matches(candidate, pattern) for candidate in candidates)
        )

    @staticmethod
    def caution_for(command: str, in_repo_root: bool) -> Optional[str]:
        """Advisory note for destructive-looking commands in a repository root."""
        if in_repo_root and DESTRUCTIVE_INTENT_RE.search(command):
            return REPO_ROOT_CAUTION
        return None

    def _guard_decision(self, candidates: list[str]) -> Verdict:
        blocked = self.match_guard(candidates, self.policy.guard.block)
        if blocked is not None:
            return Verdict.block(PolicySource.GUARD_BLOCK, blocked)
        return Verdict.allow()

    def _native_decision(self, candidates: list[str]) -> Optional[Verdict]:
        native = self.policy.native
        denied = self.match_scoped(candidates, native.deny)
        if denied is not None:
            return Verdict.block(PolicySource.NATIVE_DENY, denied)
        if self.match_scoped(candidates, native.allow) is not None:
            return Verdict.allow(PolicySource.NATIVE_ALLOW)
        return None

    def decide(self, candidates: list[str]) -> Verdict:
        """Allow/block decision for a candidate set, before annotations.

        Precedence:
        - native integration off: guard block only
        - native first: native deny, native allow (skips guard), guard block
        - native after guard: guard block, native deny, native allow
        """
        options = self.policy.options
        if not options.use_native_settings:
            return self._guard_decision(candidates)

        if options.native_settings_first:
            native = self._native_decision(candidates)
            if native is not None:
                return native
            return self._guard_decision(candidates)

        guard = self._guard_decision(candidates)
        if guard.is_blocked:
            return guard
        return self._native_decision(candidates) or guard

    def resolve(self, command: Optional[str], in_repo_root: bool = False) -> Verdict:
        """Resolve a command line to a single verdict.

        Args:
            command: Raw command line as supplied.
            in_repo_root: Whether the working directory is a repository root.

        Returns:
            Verdict with warnings and caution attached where they apply.
        """
        command = command or ""

        structural = self.check_structure(command)
        if structural is not None:
            return structural

        candidates = candidate_set(command)
        caution = self.caution_for(command, in_repo_root)
        verdict = self.decide(candidates)

        if verdict.is_blocked:
            return replace(verdict, caution=caution)
        return replace(verdict, warnings=self.collect_warnings(candidates), caution=caution)


def resolve(
    command: Optional[str],
    policy: Optional[Policy] = None,
    in_repo_root: bool = False,
) -> Verdict:
    """Convenience function to resolve a command against a policy snapshot."""
    return PolicyResolver(policy).resolve(command, in_repo_root=in_repo_root)
