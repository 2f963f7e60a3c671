"""Run outcome reporting and audit records.

Reporters receive the run status (running, done, error) together with a
stats snapshot. Reporting is fire-and-forget: ``safe_report`` logs and
drops any reporter failure so it can never fail a run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Protocol

import orjson

logger = logging.getLogger(__name__)

RunStatus = Literal["running", "done", "error"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RunReporter(Protocol):
    def report(
        self, status: RunStatus, stats: dict, error_message: str | None = None
    ) -> None: ...


class NullReporter:
    """Reporter that discards everything."""

    def report(
        self, status: RunStatus, stats: dict, error_message: str | None = None
    ) -> None:
        pass


class StatusFileReporter:
    """Keeps the latest run status in a JSON file.

    The file is rewritten on every report; ``started_at`` is preserved from
    the first report and ``finished_at`` is set once the run leaves the
    running state.
    """

    def __init__(self, path: Path, source: str = "") -> None:
        self.path = Path(path)
        self.source = source
        self._started_at: str | None = None

    def report(
        self, status: RunStatus, stats: dict, error_message: str | None = None
    ) -> None:
        now = _now()
        if self._started_at is None:
            self._started_at = now
        payload = {
            "status": status,
            "source": self.source,
            "stats": stats,
            "error_message": error_message,
            "started_at": self._started_at,
            "updated_at": now,
            "finished_at": None if status == "running" else now,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))


def safe_report(
    reporter: RunReporter,
    status: RunStatus,
    stats: dict,
    error_message: str | None = None,
) -> None:
    """Report without ever raising."""
    try:
        reporter.report(status, stats, error_message)
    except Exception as e:
        logger.warning("Could not report run status %r: %s", status, e)


def read_status(path: Path) -> dict | None:
    """Load a status or summary JSON file, or None if it doesn't exist."""
    if not path.exists():
        return None
    return orjson.loads(path.read_bytes())


def write_summary(path: Path, summary: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(summary, option=orjson.OPT_INDENT_2))


class AuditLog:
    """Append-only JSON Lines log of reverted files."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append(self, file: str, error: str, self_corrected: bool = False) -> dict:
        """Append one revert record and return it."""
        record = {
            "timestamp": _now(),
            "file": file,
            "error": error or "Syntax/Validation Error",
            "self_corrected": self_corrected,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("ab") as f:
            f.write(orjson.dumps(record) + b"\n")
        return record

    def read(self) -> list[dict]:
        """Return all records, oldest first. Blank lines are ignored."""
        if not self.path.exists():
            return []
        return [
            orjson.loads(line)
            for line in self.path.read_bytes().splitlines()
            if line.strip()
        ]
