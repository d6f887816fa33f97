"""Installation integrity check against a SHA-256 manifest.

The manifest (``INTEGRITY.json``) maps file names, relative to the package
directory, to their expected digests::

    {"files": {"core/policy.py": {"sha256": "..."}}}
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from claude_guard.core.logging import get_logger


MANIFEST_NAME = "INTEGRITY.json"

PACKAGE_DIR = Path(__file__).resolve().parent.parent


@dataclass
class IntegrityReport:
    """Outcome of an integrity check."""
    ok: bool
    verified: int = 0
    total: int = 0
    manifest_found: bool = True
    failures: list[str] = field(default_factory=list)


def file_digest(path: Path) -> str:
    """Hex SHA-256 of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def build_manifest(files: list[str], base_dir: Optional[Path] = None) -> dict:
    """Manifest for the given files, relative to ``base_dir``."""
    base_dir = base_dir or PACKAGE_DIR
    return {"files": {name: {"sha256": file_digest(base_dir / name)} for name in files}}


def verify_integrity(base_dir: Optional[Path] = None) -> IntegrityReport:
    """Verify every file listed in the manifest.

    A missing manifest passes with a warning. A missing file, a digest
    mismatch or an unreadable manifest fails. Checking stops at the first
    failure.
    """
    base_dir = base_dir or PACKAGE_DIR
    manifest_path = base_dir / MANIFEST_NAME
    logger = get_logger()

    if not manifest_path.exists():
        logger.warning("No integrity manifest found at %s", manifest_path)
        return IntegrityReport(ok=True, manifest_found=False)

    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            files = json.load(f)["files"]
        entries = list(files.items())
    except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        return IntegrityReport(ok=False, failures=[f"Unreadable manifest: {e}"])

    report = IntegrityReport(ok=True, total=len(entries))
    for name, expected in entries:
        path = base_dir / name
        if not path.is_file():
            report.ok = False
            report.failures.append(f"Missing file: {name}")
            return report

        actual = file_digest(path)
        wanted = expected.get("sha256") if isinstance(expected, dict) else None
        if actual != wanted:
            report.ok = False
            report.failures.append(f"Integrity check failed for {name}: expected {wanted}, actual {actual}")
            return report
        report.verified += 1

    return report
