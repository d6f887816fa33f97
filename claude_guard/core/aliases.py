"""Alias expansion for command arguments."""

from __future__ import annotations

from typing import Mapping, Sequence


def expand_aliases(args: Sequence[str], aliases: Mapping[str, str]) -> list[str]:
    """Replace every argument that is exactly an alias key by its value.

    Substitution is literal and single pass: an expansion is never expanded
    again.
    """
    return [aliases.get(arg, arg) for arg in args]


def join_command(args: Sequence[str]) -> str:
    """The command line evaluated by the policy: arguments joined by spaces."""
    return " ".join(args)
