"""Minimal Rich console helpers."""

import sys

from rich.console import Console
from rich.markup import escape

# Decisions and output go to stdout; rejections and warnings to stderr
console = Console()
err_console = Console(stderr=True)

if sys.platform == "win32":
    try:
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    except AttributeError:
        pass  # non-standard stream, leave it alone


def info(msg: str) -> None:
    console.print(f"[bold blue]\\[i][/] {escape(msg)}", highlight=False)


def success(msg: str) -> None:
    console.print(f"[bold green]\\[+][/] {escape(msg)}", highlight=False)


def warn(msg: str) -> None:
    err_console.print(f"[bold yellow]\\[!][/] {escape(msg)}", highlight=False)


def error(msg: str) -> None:
    err_console.print(f"[bold red]\\[-][/] {escape(msg)}", highlight=False)
