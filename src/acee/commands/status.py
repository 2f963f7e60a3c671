"""Status command for acee."""

import click

from acee.core.report import read_status
from acee.core.state import get_status_path, get_summary_path

STATUS_COLORS = {"running": "cyan", "done": "green", "error": "red"}


@click.command()
def status() -> None:
    """Show the status of the last run and its summary."""
    try:
        current = read_status(get_status_path())
        if current is None:
            click.echo("No runs recorded.")
            return

        state = current.get("status", "?")
        click.echo(
            f"Status:   {click.style(state, fg=STATUS_COLORS.get(state, 'white'))}"
        )
        click.echo(f"Source:   {current.get('source') or '-'}")
        click.echo(f"Started:  {(current.get('started_at') or '-')[:19]}")
        click.echo(f"Finished: {(current.get('finished_at') or '-')[:19]}")
        if current.get("error_message"):
            click.echo(f"Error:    {current['error_message']}")

        stats = current.get("stats") or {}
        for key in (
            "files_scanned",
            "successful_evolutions",
            "syntax_errors_prevented",
            "chars_saved",
        ):
            if key in stats:
                click.echo(f"  {key:<24} {stats[key]}")

        summary = read_status(get_summary_path())
        if state == "done" and summary:
            cache = summary.get("cache", {})
            click.echo(f"  {'execution_time_seconds':<24} {summary.get('execution_time_seconds')}")
            click.echo(f"  {'cache_hit_rate':<24} {cache.get('hit_rate', 'N/A')}")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
