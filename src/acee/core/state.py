"""State directory layout for acee runs.

All run artifacts live in .acee/ under the current working directory:
- run_status.json: Latest run status (running, done, error) and stats
- summary.json: Machine-readable summary of the last completed run
- validation_audit.log: Append-only JSON Lines record of reverted files
"""

from pathlib import Path

STATUS_FILE = "run_status.json"
SUMMARY_FILE = "summary.json"
AUDIT_LOG_FILE = "validation_audit.log"


def ensure_acee_dir() -> Path:
    """Ensure .acee directory exists in current working directory.

    Returns:
        Path to .acee directory.
    """
    acee_dir = Path.cwd() / ".acee"
    acee_dir.mkdir(parents=True, exist_ok=True)
    return acee_dir


def get_status_path() -> Path:
    return ensure_acee_dir() / STATUS_FILE


def get_summary_path() -> Path:
    return ensure_acee_dir() / SUMMARY_FILE


def get_audit_log_path() -> Path:
    return ensure_acee_dir() / AUDIT_LOG_FILE
