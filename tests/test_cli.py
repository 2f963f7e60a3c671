"""Tests for the acee command line."""

import pytest
from click.testing import CliRunner

from conftest import write_file

from acee.cli import main
from acee.commands import run as run_cmd
from acee.commands.run import format_summary
from acee.core.pipeline import RunAborted, RunAudit
from acee.core.report import AuditLog, StatusFileReporter, write_summary
from acee.core.state import get_audit_log_path, get_status_path, get_summary_path

SUMMARY = {
    "files_scanned": 10,
    "successful_evolutions": 4,
    "syntax_errors_prevented": 1,
    "chars_saved": 250,
    "success_rate": 40.0,
    "execution_time_seconds": 8.2,
    "cache": {"hits": 2, "misses": 6, "hit_rate": "25.0%", "cached_entries": 6},
    "file_concurrency": 3,
    "source": "local",
    "completed_at": "2026-01-01T00:00:00+00:00",
}


@pytest.fixture
def runner():
    """Click CLI test runner."""
    return CliRunner()


def test_help_lists_commands(runner):
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    for name in ("run", "audit", "status", "restore"):
        assert name in result.output


def test_format_summary():
    text = format_summary(SUMMARY)
    assert "ACEE FINAL PROJECT AUDIT" in text
    assert "Total Files Scanned:      10" in text
    assert "Success Rate:             40.00%" in text
    assert "LLM Cache Hits:           2 (25.0%)" in text


# =============================================================================
# run
# =============================================================================


def test_run_requires_exactly_one_source(runner, setup_acee_dir):
    result = runner.invoke(main, ["run"])
    assert result.exit_code == 1
    assert "either REPO_URL or --path" in result.output

    result = runner.invoke(
        main, ["run", "https://example.com/r.git", "--path", str(setup_acee_dir)]
    )
    assert result.exit_code == 1


def test_run_rejects_bad_environment(runner, setup_acee_dir, monkeypatch):
    monkeypatch.setenv("ACEE_FILE_CONCURRENCY", "lots")
    result = runner.invoke(main, ["run", "--path", str(setup_acee_dir)])
    assert result.exit_code == 1
    assert "ACEE_FILE_CONCURRENCY" in result.output


def test_run_local_path_prints_summary(runner, setup_acee_dir, monkeypatch):
    seen = {}

    async def fake_evolve(root, config, reporter, audit_log, **kwargs):
        seen["root"] = root
        seen["config"] = config
        seen.update(kwargs)
        return SUMMARY

    monkeypatch.setattr(run_cmd, "evolve_workspace", fake_evolve)
    project = setup_acee_dir / "project"
    project.mkdir()

    result = runner.invoke(
        main,
        ["run", "--path", str(project), "--file-concurrency", "5", "--docker"],
    )

    assert result.exit_code == 0, result.output
    assert "ACEE FINAL PROJECT AUDIT" in result.output
    assert seen["root"] == project
    assert seen["config"].file_concurrency == 5
    assert seen["config"].validate_with_docker is True
    assert seen["source"] == str(project)
    assert seen["summary_path"] == get_summary_path()


@pytest.mark.parametrize("language,extension", [(None, ".js"), ("typescript", ".ts")])
def test_run_language_selects_extension(
    runner, setup_acee_dir, monkeypatch, language, extension
):
    seen = {}

    async def fake_evolve(root, config, reporter, audit_log, **kwargs):
        seen["config"] = config
        return SUMMARY

    monkeypatch.setattr(run_cmd, "evolve_workspace", fake_evolve)
    args = ["run", "--path", str(setup_acee_dir)]
    if language:
        args += ["--language", language]

    result = runner.invoke(main, args)

    assert result.exit_code == 0, result.output
    assert seen["config"].extension == extension


def test_run_rejects_unknown_language(runner, setup_acee_dir):
    result = runner.invoke(main, ["run", "--path", str(setup_acee_dir), "--language", "cobol"])
    assert result.exit_code != 0


def test_run_aborted_exits_nonzero(runner, setup_acee_dir, monkeypatch):
    async def fake_evolve(*args, **kwargs):
        raise RunAborted("Authentication failed: 401", RunAudit())

    monkeypatch.setattr(run_cmd, "evolve_workspace", fake_evolve)
    result = runner.invoke(main, ["run", "--path", str(setup_acee_dir)])

    assert result.exit_code == 1
    assert "Authentication failed" in result.output


def test_run_clone_failure_reports_error(runner, setup_acee_dir, monkeypatch):
    monkeypatch.setattr(run_cmd, "clone_repo", lambda url, path: False)

    result = runner.invoke(
        main,
        ["run", "https://example.invalid/r.git", "--workspace", "ws"],
    )

    assert result.exit_code == 1
    assert "failed to clone" in result.output
    assert '"status": "error"' in get_status_path().read_text()


# =============================================================================
# audit / status
# =============================================================================


def test_audit_empty(runner, setup_acee_dir):
    result = runner.invoke(main, ["audit"])
    assert result.exit_code == 0
    assert "No reverted files recorded." in result.output


def test_audit_lists_records(runner, setup_acee_dir):
    log = AuditLog(get_audit_log_path())
    log.append("a.js", "a.js:3\nSyntaxError: Unexpected token")
    log.append("b.js", "b.js:1\nSyntaxError: missing )", self_corrected=True)

    result = runner.invoke(main, ["audit"])
    assert result.exit_code == 0
    assert "a.js" in result.output
    assert "b.js (after self-correction)" in result.output
    assert "SyntaxError: missing )" in result.output

    result = runner.invoke(main, ["audit", "--limit", "1"])
    assert "a.js:3" not in result.output
    assert "b.js" in result.output


def test_status_without_runs(runner, setup_acee_dir):
    result = runner.invoke(main, ["status"])
    assert result.exit_code == 0
    assert "No runs recorded." in result.output


def test_status_shows_last_run(runner, setup_acee_dir):
    StatusFileReporter(get_status_path(), source="local").report(
        "done", {"files_scanned": 10, "successful_evolutions": 4}
    )
    write_summary(get_summary_path(), SUMMARY)

    result = runner.invoke(main, ["status"])

    assert result.exit_code == 0
    assert "done" in result.output
    assert "local" in result.output
    assert "files_scanned" in result.output
    assert "25.0%" in result.output


# =============================================================================
# restore
# =============================================================================


def test_restore_copies_backups_back(runner, tmp_path):
    write_file(tmp_path, "a.js", "evolved")
    write_file(tmp_path, "a.js.bak", "original")
    write_file(tmp_path, "lib/b.js", "evolved")
    write_file(tmp_path, "lib/b.js.bak", "original b")
    write_file(tmp_path, "node_modules/x.js.bak", "ignored")

    result = runner.invoke(main, ["restore", str(tmp_path), "--clean"])

    assert result.exit_code == 0
    assert "Restored a.js" in result.output
    assert "Restored lib/b.js" in result.output
    assert "Restored 2 file(s)." in result.output
    assert (tmp_path / "a.js").read_text() == "original"
    assert (tmp_path / "lib/b.js").read_text() == "original b"
    assert not (tmp_path / "a.js.bak").exists()
    assert not (tmp_path / "node_modules/x.js").exists()


def test_restore_without_backups(runner, tmp_path):
    result = runner.invoke(main, ["restore", str(tmp_path)])
    assert result.exit_code == 0
    assert "No backups found." in result.output
