"""Shared test fixtures and pytest configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml

from claude_guard.core.config import GUARD_HOME_ENV
from claude_guard.core.logging import reset_logger


@pytest.fixture(autouse=True)
def fresh_logger():
    """Each test gets its own logger so handlers never outlive captured streams."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def tmp_config_dir(tmp_path: Path) -> Path:
    """Provide a temporary guard config directory."""
    config_dir = tmp_path / "guard"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def guard_env(tmp_path: Path, tmp_config_dir: Path, monkeypatch) -> dict[str, Path]:
    """Isolated home, project and guard directories; cwd is the project."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv(GUARD_HOME_ENV, str(tmp_config_dir))
    monkeypatch.chdir(project)
    return {"home": home, "project": project, "config_dir": tmp_config_dir}


def write_guard_config(config_dir: Path, policies: Optional[dict[str, Any]] = None, **extra: Any) -> Path:
    """Write a guard config.yaml with the given policy overrides."""
    data: dict[str, Any] = dict(extra)
    if policies is not None:
        data["policies"] = policies
    path = config_dir / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def write_native_settings(base_dir: Path, allow: list[str] = (), deny: list[str] = ()) -> Path:
    """Write ``<base_dir>/.claude/settings.json`` with permission lists."""
    settings_dir = base_dir / ".claude"
    settings_dir.mkdir(parents=True, exist_ok=True)
    path = settings_dir / "settings.json"
    path.write_text(
        json.dumps({"permissions": {"allow": list(allow), "deny": list(deny)}}, indent=2),
        encoding="utf-8",
    )
    return path
