"""End-to-end tests for the claude-guard CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from claude_guard import __version__
from claude_guard.core.errors import LaunchError
from claude_guard.main import app

from conftest import write_guard_config, write_native_settings

runner = CliRunner()


class FakeLauncher:
    """Stands in for the downstream executable."""

    def __init__(self, code: int = 0, error: Exception | None = None):
        self.code = code
        self.error = error
        self.calls: list[dict] = []

    def __call__(self, args, executable="claude", print_mode=True, cwd=None):
        self.calls.append({"args": list(args), "executable": executable, "print_mode": print_mode})
        if self.error is not None:
            raise self.error
        return self.code


@pytest.fixture
def launcher(monkeypatch) -> FakeLauncher:
    fake = FakeLauncher()
    monkeypatch.setattr("claude_guard.main.launch", fake)
    return fake


def audit_actions(config_dir: Path) -> list[dict]:
    path = config_dir / "audit.log"
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestInfoCommands:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"Claude Guard Community Edition v{__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    def test_config_shows_defaults(self, guard_env):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Config:" in result.output
        assert "blocked_commands" in result.output
        assert "Config file:" in result.output

    def test_config_path(self, guard_env):
        result = runner.invoke(app, ["config", "--path"])
        assert result.exit_code == 0
        assert result.output.strip() == str(guard_env["config_dir"] / "config.yaml")

    def test_config_dir_option(self, guard_env, tmp_path):
        other = tmp_path / "other"
        result = runner.invoke(app, ["--config-dir", str(other), "config", "-p"])
        assert result.output.strip() == str(other / "config.yaml")

    def test_aliases(self, guard_env):
        write_guard_config(guard_env["config_dir"], aliases={"@deploy": "npm run deploy"})
        result = runner.invoke(app, ["aliases"])
        assert result.exit_code == 0
        assert "Available aliases:" in result.output
        assert "  @deploy: npm run deploy" in result.output

    def test_verify_without_manifest(self, guard_env):
        result = runner.invoke(app, ["verify"])
        assert result.exit_code == 0
        assert "No integrity verification file found" in result.output


class TestInit:
    def test_init_writes_defaults(self, guard_env):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (guard_env["config_dir"] / "config.yaml").exists()

    def test_init_refuses_overwrite(self, guard_env):
        write_guard_config(guard_env["config_dir"], {"blockedCommands": ["halt"]})
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, guard_env):
        path = write_guard_config(guard_env["config_dir"], {"blockedCommands": ["halt"]})
        result = runner.invoke(app, ["init", "--force"])
        assert result.exit_code == 0
        assert "halt" not in path.read_text(encoding="utf-8")


class TestRunDecisions:
    def test_allowed_command_launched(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "explain the build"])
        assert result.exit_code == 0
        assert launcher.calls == [{"args": ["explain the build"], "executable": "claude", "print_mode": True}]

    def test_guard_block(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "rm -rf /"])
        assert result.exit_code == 1
        assert "Blocked by guard pattern: rm -rf /" in result.output
        assert launcher.calls == []

    def test_shell_expansion_denied(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "echo $(whoami)"])
        assert result.exit_code == 1
        assert "Shell expansion and special characters are disabled" in result.output
        assert launcher.calls == []

    def test_too_long(self, guard_env, launcher):
        write_guard_config(guard_env["config_dir"], {"maxCommandLength": 10})
        result = runner.invoke(app, ["run", "echo hello world"])
        assert result.exit_code == 1
        assert "Command too long: 16 characters (max: 10)" in result.output

    def test_native_deny(self, guard_env, launcher):
        write_native_settings(guard_env["project"], deny=["Bash(npm publish*)"])
        result = runner.invoke(app, ["run", "npm publish"])
        assert result.exit_code == 1
        assert "Loaded Claude settings" in result.output
        assert "Blocked by Claude settings: Bash(npm publish*)" in result.output

    def test_native_allow_overrides_guard_block(self, guard_env, launcher):
        write_native_settings(guard_env["home"], allow=["Bash(reboot)"])
        result = runner.invoke(app, ["run", "reboot"])
        assert result.exit_code == 0
        assert "Allowed by Claude settings" in result.output
        assert len(launcher.calls) == 1

    def test_guard_only_mode(self, guard_env, launcher):
        write_guard_config(guard_env["config_dir"], {"useNativeSettings": False})
        write_native_settings(guard_env["project"], allow=["Bash(reboot)"])
        result = runner.invoke(app, ["run", "reboot"])
        assert result.exit_code == 1
        assert "Loaded Claude settings" not in result.output
        assert "Blocked by guard pattern: reboot" in result.output

    def test_guard_first_precedence(self, guard_env, launcher):
        write_guard_config(guard_env["config_dir"], {"nativeSettingsFirst": False})
        write_native_settings(guard_env["project"], allow=["Bash(reboot)"])
        result = runner.invoke(app, ["run", "reboot"])
        assert result.exit_code == 1

    def test_warning_does_not_block(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "sudo ls"])
        assert result.exit_code == 0
        assert "Warning: sudo *" in result.output
        assert len(launcher.calls) == 1

    def test_repo_root_caution(self, guard_env, launcher):
        (guard_env["project"] / ".git").mkdir()
        result = runner.invoke(app, ["run", "git clean -fd"])
        assert result.exit_code == 0
        assert "git repository root directory" in result.output
        assert len(launcher.calls) == 1

    def test_no_caution_outside_repo_root(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "git clean -fd"])
        assert "git repository root" not in result.output


class TestRunLaunch:
    def test_alias_expanded(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "@test"])
        assert result.exit_code == 0
        assert launcher.calls[0]["args"] == ["npm test"]

    def test_options_pass_through(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "--model", "opus", "hello"])
        assert result.exit_code == 0
        assert launcher.calls[0]["args"] == ["--model", "opus", "hello"]

    def test_help_passes_through(self, guard_env, launcher):
        result = runner.invoke(app, ["run", "explain", "--help"])
        assert result.exit_code == 0
        assert launcher.calls[0]["args"] == ["explain", "--help"]

    def test_exit_code_propagated(self, guard_env, monkeypatch):
        monkeypatch.setattr("claude_guard.main.launch", FakeLauncher(code=3))
        result = runner.invoke(app, ["run", "hello"])
        assert result.exit_code == 3
        last = audit_actions(guard_env["config_dir"])[-1]
        assert last["action"] == "command_end"
        assert last["exit_code"] == 3

    def test_launcher_settings_from_config(self, guard_env, launcher):
        write_guard_config(guard_env["config_dir"], launcher={"executable": "claude-beta", "printMode": False})
        runner.invoke(app, ["run", "hello"])
        assert launcher.calls[0]["executable"] == "claude-beta"
        assert launcher.calls[0]["print_mode"] is False

    def test_launch_error(self, guard_env, monkeypatch):
        fake = FakeLauncher(error=LaunchError("claude", FileNotFoundError("not found")))
        monkeypatch.setattr("claude_guard.main.launch", fake)
        result = runner.invoke(app, ["run", "hello"])
        assert result.exit_code == 1
        assert "Failed to launch 'claude': not found" in result.output
        assert audit_actions(guard_env["config_dir"])[-1]["action"] == "command_error"


class TestDiagnosticLog:
    def test_degraded_config_reaches_log_file(self, guard_env, launcher):
        (guard_env["config_dir"] / "config.yaml").write_text("policies: [unclosed", encoding="utf-8")
        result = runner.invoke(app, ["run", "hello"])
        assert result.exit_code == 0
        content = (guard_env["config_dir"] / "logs" / "claude-guard.log").read_text(encoding="utf-8")
        assert "using defaults" in content
        assert "Decision kind=allowed" in content

    def test_configured_level_applied(self, guard_env, launcher):
        write_guard_config(guard_env["config_dir"], log_level="WARNING")
        runner.invoke(app, ["run", "hello"])
        content = (guard_env["config_dir"] / "logs" / "claude-guard.log").read_text(encoding="utf-8")
        assert "Decision" not in content


class TestAuditTrail:
    def test_allowed_run_audited(self, guard_env, launcher):
        runner.invoke(app, ["run", "@test"])
        entries = audit_actions(guard_env["config_dir"])
        assert [e["action"] for e in entries] == ["command_start", "command_end"]
        assert entries[0]["command"] == "npm test"
        assert entries[0]["original_command"] == "@test"

    def test_blocked_run_audited(self, guard_env, launcher):
        runner.invoke(app, ["run", "reboot"])
        entries = audit_actions(guard_env["config_dir"])
        assert entries[-1]["action"] == "command_blocked"
        assert entries[-1]["pattern"] == "reboot"
        assert entries[-1]["source"] == "guard_block"

    def test_denied_run_audited(self, guard_env, launcher):
        runner.invoke(app, ["run", "ls | wc"])
        entries = audit_actions(guard_env["config_dir"])
        assert entries[-1]["action"] == "command_denied"
        assert entries[-1]["reason"] == "shell expansion disabled"

    def test_warnings_and_native_allow_audited(self, guard_env, launcher):
        write_native_settings(guard_env["project"], allow=["Bash(sudo *)"])
        runner.invoke(app, ["run", "sudo ls"])
        actions = [e["action"] for e in audit_actions(guard_env["config_dir"])]
        assert actions == ["command_start", "command_warning", "command_allowed", "command_end"]

    def test_unwritable_audit_does_not_change_outcome(self, guard_env, launcher):
        (guard_env["config_dir"] / "audit.log").mkdir()
        result = runner.invoke(app, ["run", "hello"])
        assert result.exit_code == 0
        assert len(launcher.calls) == 1


class TestCheck:
    def test_allowed(self, guard_env, launcher):
        result = runner.invoke(app, ["check", "npm test"])
        assert result.exit_code == 0
        assert "Allowed" in result.output
        assert launcher.calls == []

    def test_blocked(self, guard_env, launcher):
        result = runner.invoke(app, ["check", "reboot"])
        assert result.exit_code == 1
        assert "Blocked by guard pattern: reboot" in result.output

    def test_writes_no_audit(self, guard_env, launcher):
        runner.invoke(app, ["check", "reboot"])
        assert not (guard_env["config_dir"] / "audit.log").exists()


class TestAuditCommand:
    def test_no_log(self, guard_env):
        result = runner.invoke(app, ["audit"])
        assert result.exit_code == 0
        assert "No audit logs found" in result.output

    def test_tail(self, guard_env, launcher):
        runner.invoke(app, ["run", "@test"])
        result = runner.invoke(app, ["audit", "--tail", "1"])
        assert result.exit_code == 0
        assert "Last 1 audit entries:" in result.output
        assert "command_end" in result.output

    def test_search(self, guard_env, launcher):
        runner.invoke(app, ["run", "@test"])
        runner.invoke(app, ["run", "reboot"])
        result = runner.invoke(app, ["audit", "--search", "reboot"])
        assert result.exit_code == 0
        assert 'Found 2 matches for "reboot":' in result.output
        assert "command_blocked: reboot" in result.output

    def test_empty_search_term(self, guard_env, launcher):
        runner.invoke(app, ["run", "@test"])
        result = runner.invoke(app, ["audit", "--search", ""])
        assert result.exit_code == 1
