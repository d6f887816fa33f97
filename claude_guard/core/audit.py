"""Append-only JSON lines audit trail.

Writes are best effort: a failure to record an event never changes a
decision or an exit code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from claude_guard.core.errors import AuditWriteFailure
from claude_guard.core.logging import get_logger


# Event names written to the log
COMMAND_START = "command_start"
COMMAND_DENIED = "command_denied"
COMMAND_BLOCKED = "command_blocked"
COMMAND_WARNING = "command_warning"
COMMAND_ALLOWED = "command_allowed"
COMMAND_END = "command_end"
COMMAND_ERROR = "command_error"


@dataclass
class AuditEntry:
    """One parsed line of the audit log."""
    timestamp: str = ""
    action: str = ""
    command: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    raw: Optional[str] = None  # Set when the line was not valid JSON

    @classmethod
    def parse(cls, line: str) -> "AuditEntry":
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return cls(raw=line)
        if not isinstance(data, dict):
            return cls(raw=line)
        return cls(
            timestamp=str(data.pop("timestamp", "")),
            action=str(data.pop("action", "")),
            command=str(data.pop("command", "") or ""),
            details=data,
        )

    def format(self) -> str:
        if self.raw is not None:
            return self.raw
        return f"[{self.timestamp}] {self.action}: {self.command}"


class AuditLog:
    """Audit sink backed by a single append-only file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def append(self, action: str, **details: Any) -> dict[str, Any]:
        """Append an event strictly.

        Raises:
            AuditWriteFailure: The entry could not be written.
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "action": action,
        }
        entry.update({k: v for k, v in details.items() if v is not None})
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=str) + "\n")
        except (OSError, TypeError, ValueError) as e:
            raise AuditWriteFailure(self.path, e) from e
        return entry

    def record(self, action: str, **details: Any) -> Optional[dict[str, Any]]:
        """Append an event, swallowing write failures."""
        try:
            return self.append(action, **details)
        except AuditWriteFailure as e:
            get_logger().debug("%s", e.message)
            return None

    def _lines(self) -> list[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            return [line.rstrip("\n") for line in f if line.strip()]

    def tail(self, count: int = 10) -> list[AuditEntry]:
        """Last ``count`` entries, oldest first."""
        if count <= 0:
            return []
        return [AuditEntry.parse(line) for line in self._lines()[-count:]]

    def search(self, term: str, limit: int = 20) -> tuple[int, list[AuditEntry]]:
        """Entries whose raw line contains ``term``.

        Returns:
            Tuple of (total match count, last ``limit`` matching entries).
        """
        hits = [line for line in self._lines() if term in line]
        return len(hits), [AuditEntry.parse(line) for line in hits[-limit:]]
