"""Hand-off of allowed commands to the downstream executable."""

from __future__ import annotations

import os
import subprocess
from typing import Optional, Sequence

from claude_guard.core.errors import LaunchError
from claude_guard.core.logging import get_logger


GUARD_ACTIVE_ENV = "CLAUDE_GUARD_ACTIVE"

_PRINT_FLAGS = ("-p", "--print")


def build_argv(executable: str, args: Sequence[str], print_mode: bool = True) -> list[str]:
    """Full argv for the downstream executable.

    With ``print_mode`` a leading prompt (first argument not an option) gets
    ``-p`` unless a print flag is already present.
    """
    argv = list(args)
    if print_mode and argv and not argv[0].startswith("-"):
        if not any(flag in argv for flag in _PRINT_FLAGS):
            argv = ["-p", *argv]
    return [executable, *argv]


def guard_environment(base: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Copy of the environment with the guard marker set."""
    env = dict(os.environ if base is None else base)
    env[GUARD_ACTIVE_ENV] = "true"
    return env


def launch(
    args: Sequence[str],
    executable: str = "claude",
    print_mode: bool = True,
    cwd: Optional[str] = None,
) -> int:
    """Run the downstream executable with inherited terminal I/O.

    Returns:
        The child's exit code. A child killed by a signal maps to
        ``128 + signal``.

    Raises:
        LaunchError: The executable could not be started.
    """
    argv = build_argv(executable, args, print_mode=print_mode)
    get_logger().info("Launching %s", argv)
    try:
        result = subprocess.run(argv, env=guard_environment(), cwd=cwd)
    except OSError as e:
        raise LaunchError(executable, e) from e

    if result.returncode < 0:
        return 128 - result.returncode
    return result.returncode
