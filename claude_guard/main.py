"""claude-guard CLI entry point using Typer."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
import yaml

from claude_guard import __version__
from claude_guard.core.aliases import expand_aliases, join_command
from claude_guard.core.audit import (
    COMMAND_ALLOWED,
    COMMAND_BLOCKED,
    COMMAND_DENIED,
    COMMAND_END,
    COMMAND_ERROR,
    COMMAND_START,
    COMMAND_WARNING,
    AuditLog,
)
from claude_guard.core.config import ConfigManager, GuardConfig, NativeSettings, load_native_settings
from claude_guard.core.errors import GuardError, LaunchError, StructuralRejection, enforce
from claude_guard.core.integrity import verify_integrity
from claude_guard.core.launcher import launch
from claude_guard.core.logging import log_decision, setup_logging
from claude_guard.core.policy import DENY_TOO_LONG, PolicyResolver, PolicySource, Verdict
from claude_guard.ui import error, info, success, warn

BANNER = f"Claude Guard Community Edition v{__version__}"

# Downstream options such as -p or --model must reach the executable untouched
PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}

app = typer.Typer(
    name="claude-guard",
    help="Policy gate for commands handed to an AI coding assistant.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(BANNER)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version"
    ),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Guard configuration directory (default: ~/.claude/guard)"
    ),
) -> None:
    """Policy gate for commands handed to an AI coding assistant."""
    ctx.obj = ConfigManager(config_dir)


def _manager(ctx: typer.Context) -> ConfigManager:
    if isinstance(ctx.obj, ConfigManager):
        return ctx.obj
    return ConfigManager()


def _in_repo_root() -> bool:
    return (Path.cwd() / ".git").exists()


def _load_native(cfg: GuardConfig) -> NativeSettings:
    if not cfg.policies.use_native_settings:
        return NativeSettings()
    native = load_native_settings()
    if native.loaded:
        info(f"Loaded Claude settings from {native.source}")
    return native


def _rejection_message(verdict: Verdict, command: str, cfg: GuardConfig) -> str:
    if verdict.reason == DENY_TOO_LONG:
        return f"Command too long: {len(command)} characters (max: {cfg.policies.max_command_length})"
    return "Shell expansion and special characters are disabled"


def _evaluate(
    ctx: typer.Context,
    args: list[str],
    audit: Optional[AuditLog],
) -> tuple[str, Verdict, GuardConfig]:
    """Load policy, expand aliases and resolve a verdict for ``args``.

    Denied and blocked verdicts are reported and end the process with
    exit code 1.
    """
    manager = _manager(ctx)
    # File logging first so a degraded config is recorded too
    setup_logging(logs_dir=manager.logs_dir)
    cfg = manager.config
    setup_logging(cfg.log_level)

    native = _load_native(cfg)
    command = join_command(expand_aliases(args, cfg.aliases))
    if audit is not None:
        audit.record(COMMAND_START, command=command, pid=os.getpid(), original_command=join_command(args))

    verdict = PolicyResolver(cfg.to_policy(native)).resolve(command, in_repo_root=_in_repo_root())
    log_decision(command, verdict)

    if verdict.caution:
        warn(f"WARNING: {verdict.caution}")

    try:
        enforce(verdict)
    except GuardError as e:
        if isinstance(e, StructuralRejection):
            error(_rejection_message(verdict, command, cfg))
            action = COMMAND_DENIED
        else:
            error(e.message)
            action = COMMAND_BLOCKED
        if audit is not None:
            audit.record(action, command=command, **e.to_audit())
        raise typer.Exit(1)

    for warning in verdict.warnings:
        warn(f"Warning: {warning.pattern}")
        if audit is not None:
            audit.record(COMMAND_WARNING, command=command, pattern=warning.pattern)

    if verdict.source == PolicySource.NATIVE_ALLOW:
        success("Allowed by Claude settings")
        if audit is not None:
            audit.record(COMMAND_ALLOWED, command=command, source=verdict.source.value)

    return command, verdict, cfg


# --help is forwarded to the downstream tool
@app.command(context_settings=PASSTHROUGH, add_help_option=False)
def run(
    ctx: typer.Context,
    args: list[str] = typer.Argument(..., help="Prompt and options for the downstream tool"),
) -> None:
    """Check a command against policy and forward it if allowed."""
    audit_log = AuditLog(_manager(ctx).audit_path)
    args = list(args) + list(ctx.args)
    _, _, cfg = _evaluate(ctx, args, audit_log)

    expanded = expand_aliases(args, cfg.aliases)
    try:
        code = launch(expanded, executable=cfg.launcher.executable, print_mode=cfg.launcher.print_mode)
    except LaunchError as e:
        error(e.message)
        audit_log.record(COMMAND_ERROR, error=e.message)
        raise typer.Exit(1)

    audit_log.record(COMMAND_END, exit_code=code)
    raise typer.Exit(code)


@app.command(context_settings=PASSTHROUGH)
def check(
    ctx: typer.Context,
    args: list[str] = typer.Argument(..., help="Command to evaluate"),
) -> None:
    """Evaluate a command without running it."""
    args = list(args) + list(ctx.args)
    _, verdict, _ = _evaluate(ctx, args, audit=None)
    info(verdict.describe())


@app.command()
def config(
    ctx: typer.Context,
    path: bool = typer.Option(False, "--path", "-p", help="Show config file path only"),
) -> None:
    """Show the effective configuration."""
    manager = _manager(ctx)
    if path:
        typer.echo(str(manager.config_path))
        return
    typer.echo("Config:")
    typer.echo(yaml.safe_dump(manager.config.model_dump(), default_flow_style=False, sort_keys=False))
    typer.echo(f"Config file: {manager.config_path}")


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write the default configuration file."""
    manager = _manager(ctx)
    if manager.config_path.exists() and not force:
        warn(f"Configuration already exists at {manager.config_path} (use --force to overwrite)")
        raise typer.Exit(1)
    written = manager.save(GuardConfig())
    success(f"Configuration initialized at {written}")


@app.command()
def aliases(ctx: typer.Context) -> None:
    """List command aliases."""
    typer.echo("Available aliases:")
    for alias, command in _manager(ctx).config.aliases.items():
        typer.echo(f"  {alias}: {command}")


@app.command()
def audit(
    ctx: typer.Context,
    tail: int = typer.Option(10, "--tail", "-n", help="Number of recent entries to show"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Show entries containing this text"),
) -> None:
    """Show recent audit entries or search the audit log."""
    log = AuditLog(_manager(ctx).audit_path)
    if not log.path.exists():
        info("No audit logs found")
        return

    if search is not None:
        if not search:
            error("Please provide a search term")
            raise typer.Exit(1)
        total, entries = log.search(search)
        typer.echo(f"Found {total} matches for \"{search}\":")
    else:
        entries = log.tail(tail)
        typer.echo(f"Last {len(entries)} audit entries:")

    for entry in entries:
        typer.echo(entry.format())


@app.command()
def verify() -> None:
    """Verify installed files against the integrity manifest."""
    report = verify_integrity()
    if not report.manifest_found:
        warn("No integrity verification file found")
        return
    if not report.ok:
        for failure in report.failures:
            error(failure)
        raise typer.Exit(1)
    success(f"Integrity verified ({report.verified}/{report.total} files)")


if __name__ == "__main__":
    app()
