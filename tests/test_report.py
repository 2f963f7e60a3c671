"""Tests for status reporting and the audit log."""

import orjson

from acee.core.report import (
    AuditLog,
    NullReporter,
    StatusFileReporter,
    read_status,
    safe_report,
    write_summary,
)
from acee.core.state import (
    AUDIT_LOG_FILE,
    get_audit_log_path,
    get_status_path,
    get_summary_path,
)


def test_state_paths_live_in_acee_dir(setup_acee_dir):
    acee_dir = setup_acee_dir / ".acee"
    assert get_status_path() == acee_dir / "run_status.json"
    assert get_summary_path() == acee_dir / "summary.json"
    assert get_audit_log_path() == acee_dir / AUDIT_LOG_FILE
    assert acee_dir.is_dir()


def test_status_file_lifecycle(tmp_path):
    path = tmp_path / "status.json"
    reporter = StatusFileReporter(path, source="https://example.com/repo.git")

    reporter.report("running", {"files_scanned": 0})
    running = read_status(path)
    assert running["status"] == "running"
    assert running["finished_at"] is None
    assert running["error_message"] is None

    reporter.report("done", {"files_scanned": 4})
    done = read_status(path)
    assert done["status"] == "done"
    assert done["stats"] == {"files_scanned": 4}
    assert done["source"] == "https://example.com/repo.git"
    assert done["started_at"] == running["started_at"]
    assert done["finished_at"] is not None


def test_status_file_records_error(tmp_path):
    path = tmp_path / "nested" / "status.json"
    StatusFileReporter(path).report("error", {}, "Authentication failed")

    assert read_status(path)["error_message"] == "Authentication failed"


def test_read_status_missing_file(tmp_path):
    assert read_status(tmp_path / "nope.json") is None


def test_safe_report_swallows_reporter_failures(caplog):
    class Broken:
        def report(self, status, stats, error_message=None):
            raise ConnectionError("store unreachable")

    safe_report(Broken(), "running", {})
    assert "store unreachable" in caplog.text


def test_null_reporter_accepts_anything():
    NullReporter().report("done", {"files_scanned": 1}, None)


def test_write_summary(tmp_path):
    path = tmp_path / "out" / "summary.json"
    write_summary(path, {"files_scanned": 2, "cache": {"hits": 1}})
    assert orjson.loads(path.read_bytes()) == {"files_scanned": 2, "cache": {"hits": 1}}


def test_audit_log_appends_json_lines(tmp_path):
    log = AuditLog(tmp_path / "audit.log")

    log.append("a.js", "SyntaxError: x", self_corrected=True)
    log.append("b.js", "")

    lines = (tmp_path / "audit.log").read_bytes().splitlines()
    assert len(lines) == 2
    records = log.read()
    assert [r["file"] for r in records] == ["a.js", "b.js"]
    assert records[0]["self_corrected"] is True
    assert records[1]["error"] == "Syntax/Validation Error"
    assert "timestamp" in records[0]


def test_audit_log_read_missing(tmp_path):
    assert AuditLog(tmp_path / "none.log").read() == []
