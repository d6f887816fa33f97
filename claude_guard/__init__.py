"""claude-guard: policy gate for shell commands issued to an AI coding assistant."""

__version__ = "2.0.4"
