"""Webhook audit trail: append-only JSON Lines with size rotation and a hash chain.

Each entry carries ``prev_hash``, the SHA-256 of the previous line, so a
tampered or truncated log is detectable with ``validate_audit_chain``.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
import threading
from dataclasses import dataclass
from pathlib import Path

from src.models import AuditEvent

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that every entry's ``prev_hash`` matches the line before it."""
    lines = [line for line in log_path.read_text().splitlines() if line]
    expected: str | None = None
    for number, line in enumerate(lines, start=1):
        if json.loads(line).get("prev_hash") != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        expected = _line_hash(line)
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Writes ``AuditEvent`` records for the webhook receiver and client."""

    def __init__(
        self,
        log_path: str | Path,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._lock = threading.Lock()
        self._last_line = self._read_last_line()

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        return cls(
            log_path=log_path,
            max_bytes=int(os.environ.get("AUDIT_LOG_MAX_BYTES", str(DEFAULT_MAX_BYTES))),
            backup_count=int(
                os.environ.get("AUDIT_LOG_BACKUP_COUNT", str(DEFAULT_BACKUP_COUNT)),
            ),
        )

    def _read_last_line(self) -> str | None:
        if not self.log_path.exists():
            return None
        lines = [line for line in self.log_path.read_text().splitlines() if line]
        return lines[-1] if lines else None

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate_if_needed(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        self._backup(self._backup_count).unlink(missing_ok=True)
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        entry = event.model_dump(mode="json")
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")

        with self._lock:
            entry["prev_hash"] = _line_hash(self._last_line) if self._last_line else None
            line = json.dumps(entry, separators=(",", ":"))
            with open(lock_path, "w") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    self._rotate_if_needed()
                    with open(self.log_path, "a") as f:
                        f.write(line + "\n")
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
            self._last_line = line
