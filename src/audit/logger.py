"""Audit logger — append-only JSON Lines delivery log with size rotation."""

from __future__ import annotations

import fcntl
import json
import os
from pathlib import Path

from src.models import AuditEvent, AuditEventType


def read_audit_events(
    log_path: Path, event_type: AuditEventType | None = None,
) -> list[AuditEvent]:
    """Read back the events of the current log file, optionally filtered by type."""
    if not log_path.exists():
        return []
    events: list[AuditEvent] = []
    for line in log_path.read_text().splitlines():
        if not line.strip():
            continue
        event = AuditEvent.model_validate_json(line)
        if event_type is None or event.event_type == event_type:
            events.append(event)
    return events


class AuditLogger:
    """Records every attachment delivery attempt as one JSON line."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        """Create AuditLogger with rotation settings from environment variables."""
        max_bytes = int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760"))
        backup_count = int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5"))
        return cls(log_path=log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _backup_path(self, n: int) -> Path:
        return self.log_path.parent / f"{self.log_path.name}.{n}"

    def _maybe_rotate(self) -> None:
        if not self.log_path.exists():
            return
        if self.log_path.stat().st_size < self._max_bytes:
            return

        oldest = self._backup_path(self._backup_count)
        if oldest.exists():
            oldest.unlink()
        for i in range(self._backup_count - 1, 0, -1):
            src = self._backup_path(i)
            if src.exists():
                src.rename(self._backup_path(i + 1))
        self.log_path.rename(self._backup_path(1))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        data = json.loads(event.model_dump_json(exclude_none=True))
        line = json.dumps(data, separators=(",", ":"))

        # Rotation and append happen under one lock
        lock_file = self.log_path.parent / f".{self.log_path.name}.lock"
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._maybe_rotate()
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)
