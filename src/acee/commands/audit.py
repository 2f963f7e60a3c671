"""Audit command for acee.

Shows the files that were reverted because their rewrite broke syntax.
"""

import click

from acee.core.report import AuditLog
from acee.core.state import get_audit_log_path


@click.command()
@click.option("--limit", type=int, default=None, help="Only show the most recent N records.")
def audit(limit: int | None) -> None:
    """Show the validation audit log of reverted files."""
    try:
        records = AuditLog(get_audit_log_path()).read()
        if not records:
            click.echo("No reverted files recorded.")
            return

        if limit is not None:
            records = records[-limit:] if limit > 0 else []

        for record in records:
            ts = record.get("timestamp", "?")[:19]
            file = record.get("file", "?")
            marker = " (after self-correction)" if record.get("self_corrected") else ""
            click.echo(f"{ts}  {click.style(file, fg='yellow')}{marker}")
            error = str(record.get("error", "")).strip()
            for line in error.splitlines()[:5]:
                click.echo(f"    {line}")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
