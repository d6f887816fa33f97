"""Configuration management for claude-guard.

Two inputs feed the policy snapshot:

- the guard configuration (``~/.claude/guard/config.yaml``), merged over
  built-in defaults
- the assistant's native settings (``.claude/settings.json`` in the project,
  else in the home directory), whose ``permissions.allow``/``deny`` lists are
  ``Tool(pattern)`` entries
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from claude_guard.core.errors import ConfigurationDegraded
from claude_guard.core.logging import get_logger
from claude_guard.core.policy import GuardPolicy, NativePolicy, Policy, PolicyOptions


GUARD_HOME_ENV = "CLAUDE_GUARD_HOME"

DEFAULT_BLOCKED_COMMANDS: tuple[str, ...] = (
    "rm -rf /",
    "rm -rf /*",
    "dd if=/dev/zero of=/dev/*",
    "mkfs.*",
    "format *",
    "sudo rm -rf /",
    "sudo chmod 777 /etc/passwd",
    "sudo chmod 777 /etc/shadow",
    ":(){ :|:& };:",
    "sudo dd if=/dev/zero of=/dev/sda*",
    "shutdown -h now",
    "reboot",
    "init 0",
    "killall -9 *",
)

DEFAULT_WARN_COMMANDS: tuple[str, ...] = (
    "rm -rf *",
    "sudo *",
    "chmod 777 *",
    "chown * /",
    "mv * /dev/null",
    "cp * /dev/null",
)

DEFAULT_ALIASES: dict[str, str] = {
    "@test": "npm test",
    "@build": "npm run build",
    "@lint": "npm run lint",
}


def default_config_dir() -> Path:
    """Guard configuration directory, honouring ``CLAUDE_GUARD_HOME``."""
    override = os.environ.get(GUARD_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude" / "guard"


class _CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, ignores unknown ones."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PolicyConfig(_CamelModel):
    """Guard policy section."""
    blocked_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS),
        description="Patterns that block a command",
    )
    warn_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WARN_COMMANDS),
        description="Patterns that only warn",
    )
    max_command_length: Optional[int] = Field(default=1000, ge=0, description="0 or null disables the limit")
    allow_shell_expansion: bool = Field(default=False, description="Permit shell metacharacters")
    use_native_settings: bool = Field(
        default=True,
        validation_alias=AliasChoices("use_native_settings", "useNativeSettings", "useClaudeSettings"),
        description="Consult the assistant's own permission lists",
    )
    native_settings_first: bool = Field(
        default=True,
        validation_alias=AliasChoices("native_settings_first", "nativeSettingsFirst", "claudeSettingsFirst"),
        description="Native allow/deny take priority over guard patterns",
    )


class LauncherConfig(_CamelModel):
    """Downstream executable settings."""
    executable: str = Field(default="claude", description="Program that receives allowed commands")
    print_mode: bool = Field(default=True, description="Prefix -p when the first argument is a prompt")


class GuardConfig(_CamelModel):
    """Main claude-guard configuration."""
    version: str = "2.0"
    log_level: str = Field(default="INFO", description="Level for the rotating log file")
    policies: PolicyConfig = Field(default_factory=PolicyConfig)
    aliases: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))
    launcher: LauncherConfig = Field(default_factory=LauncherConfig)

    def to_policy(self, native: Optional["NativeSettings"] = None) -> Policy:
        """Freeze this configuration and the native settings into a snapshot."""
        native = native or NativeSettings()
        policies = self.policies
        return Policy(
            native=NativePolicy(allow=native.allow, deny=native.deny),
            guard=GuardPolicy(block=policies.blocked_commands, warn=policies.warn_commands),
            options=PolicyOptions(
                max_length=policies.max_command_length,
                allow_shell_expansion=policies.allow_shell_expansion,
                use_native_settings=policies.use_native_settings,
                native_settings_first=policies.native_settings_first,
            ),
        )


class NativeSettings(BaseModel):
    """Permission lists from the assistant's ``settings.json``."""
    allow: list[str] = Field(default_factory=list)
    deny: list[str] = Field(default_factory=list)
    source: Optional[Path] = None

    @property
    def loaded(self) -> bool:
        return self.source is not None


class ConfigManager:
    """Manages the guard configuration file."""

    CONFIG_FILENAMES = ("config.yaml", "config.json")

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory. Defaults to ~/.claude/guard
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self._config: Optional[GuardConfig] = None

    @property
    def config_path(self) -> Path:
        """First existing config file, else the preferred YAML path."""
        for name in self.CONFIG_FILENAMES:
            candidate = self.config_dir / name
            if candidate.exists():
                return candidate
        return self.config_dir / self.CONFIG_FILENAMES[0]

    @property
    def audit_path(self) -> Path:
        return self.config_dir / "audit.log"

    @property
    def logs_dir(self) -> Path:
        return self.config_dir / "logs"

    @property
    def config(self) -> GuardConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def read(self) -> GuardConfig:
        """
        Parse the configuration file strictly.

        Raises:
            ConfigurationDegraded: The file exists but cannot be used.
        """
        path = self.config_path
        if not path.exists():
            return GuardConfig()

        try:
            with open(path, "r", encoding="utf-8") as f:
                # Tab-indented JSON is valid JSON but not valid YAML
                data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationDegraded(path, str(e)) from e

        if data is None:
            return GuardConfig()
        if not isinstance(data, dict):
            raise ConfigurationDegraded(path, f"expected a mapping, got {type(data).__name__}")

        try:
            return GuardConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationDegraded(path, str(e)) from e

    def load(self) -> GuardConfig:
        """
        Load configuration from file.

        Returns:
            GuardConfig: Loaded configuration, or defaults if the file is
            missing or unusable.
        """
        try:
            return self.read()
        except ConfigurationDegraded as e:
            get_logger().warning("%s; using defaults", e.message)
            return GuardConfig()

    def save(self, config: Optional[GuardConfig] = None) -> Path:
        """
        Save configuration as YAML with owner-only permissions.

        Args:
            config: Configuration to save. Uses current config if not provided.

        Returns:
            Path written.
        """
        if config is not None:
            self._config = config
        if self._config is None:
            self._config = GuardConfig()

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.config_dir / self.CONFIG_FILENAMES[0]
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._config.model_dump(), f, default_flow_style=False, sort_keys=False)
        if os.name != "nt":
            path.chmod(0o600)
        return path


def native_settings_paths(project_dir: Optional[Path] = None, home: Optional[Path] = None) -> list[Path]:
    """Native settings files in precedence order: project, then user."""
    project_dir = Path(project_dir) if project_dir else Path.cwd()
    home = Path(home) if home else Path.home()
    return [
        project_dir / ".claude" / "settings.json",
        home / ".claude" / "settings.json",
    ]


def _read_native_settings(path: Path) -> NativeSettings:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationDegraded(path, str(e)) from e

    permissions = data.get("permissions") if isinstance(data, dict) else None
    if permissions is None:
        return NativeSettings(source=path)
    if not isinstance(permissions, dict):
        raise ConfigurationDegraded(path, "'permissions' must be an object")

    try:
        return NativeSettings(
            allow=permissions.get("allow") or [],
            deny=permissions.get("deny") or [],
            source=path,
        )
    except ValidationError as e:
        raise ConfigurationDegraded(path, str(e)) from e


def load_native_settings(project_dir: Optional[Path] = None, home: Optional[Path] = None) -> NativeSettings:
    """Load the first native settings file found.

    Missing files are skipped silently; unreadable ones are logged and
    skipped. Returns empty settings when nothing usable is found.
    """
    for path in native_settings_paths(project_dir, home):
        if not path.is_file():
            continue
        try:
            settings = _read_native_settings(path)
        except ConfigurationDegraded as e:
            get_logger().warning("%s; ignoring native settings file", e.message)
            continue
        get_logger().debug("Loaded native settings from %s", path)
        return settings
    return NativeSettings()
