"""Run command for acee.

Clones a repository (or takes a local directory) and evolves its
JavaScript functions.
"""

import asyncio
from pathlib import Path

import click

from acee.core.config import ConfigError, EvolveConfig
from acee.core.engine import evolve_workspace
from acee.core.pipeline import RunAborted
from acee.core.report import AuditLog, StatusFileReporter
from acee.core.state import get_audit_log_path, get_status_path, get_summary_path
from acee.core.workspace import LANGUAGE_EXTENSIONS, clone_repo, prepare_workspace


def format_summary(summary: dict) -> str:
    """Render the run summary as the final audit table."""
    cache = summary["cache"]
    rule = "=" * 44
    lines = [
        rule,
        "ACEE FINAL PROJECT AUDIT",
        rule,
        f"Total Files Scanned:      {summary['files_scanned']}",
        f"Successful Evolutions:    {summary['successful_evolutions']}",
        f"Syntax Errors Blocked:    {summary['syntax_errors_prevented']}",
        f"Net Code Reduction:       {summary['chars_saved']} characters",
        f"Success Rate:             {summary['success_rate']:.2f}%",
        f"Total Execution Time:     {summary['execution_time_seconds']}s",
        f"LLM Cache Hits:           {cache['hits']} ({cache['hit_rate']})",
        f"LLM API Calls:            {cache['misses']}",
        f"Cached Evolutions:        {cache['cached_entries']}",
        rule,
    ]
    return "\n".join(lines)


@click.command()
@click.argument("repo_url", required=False)
@click.option(
    "--path",
    "local_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Evolve an existing directory in place instead of cloning.",
)
@click.option(
    "--workspace",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("workspace"),
    show_default=True,
    help="Where REPO_URL is cloned. Wiped before cloning.",
)
@click.option(
    "--language",
    type=click.Choice(sorted(LANGUAGE_EXTENSIONS)),
    default=None,
    help="Language whose source files are evolved. Defaults to javascript.",
)
@click.option("--model", default=None, help="Model identifier, e.g. groq/llama-3.3-70b-versatile.")
@click.option("--file-concurrency", type=int, default=None, help="Files processed concurrently.")
@click.option("--llm-concurrency", type=int, default=None, help="Simultaneous model calls.")
@click.option("--max-retries", type=int, default=None, help="Retries after a rate limit.")
@click.option("--backoff-base", type=float, default=None, help="First backoff delay in seconds.")
@click.option(
    "--docker/--no-docker",
    "validate_with_docker",
    default=None,
    help="Validate syntax inside a container.",
)
@click.option("--timeout", "run_timeout", type=float, default=None, help="Whole-run timeout in seconds.")
def run(
    repo_url: str | None,
    local_path: Path | None,
    workspace: Path,
    language: str | None,
    model: str | None,
    file_concurrency: int | None,
    llm_concurrency: int | None,
    max_retries: int | None,
    backoff_base: float | None,
    validate_with_docker: bool | None,
    run_timeout: float | None,
) -> None:
    """Evolve the JavaScript functions of a repository.

    REPO_URL is cloned into the workspace directory. Use --path to work on
    a local directory instead; its files are modified in place and a .bak
    copy is kept next to every file that was touched.

    Examples:

        acee run https://github.com/user/project.git

        acee -v run --path ./my-project --docker
    """
    if bool(repo_url) == bool(local_path):
        click.echo("Error: pass either REPO_URL or --path", err=True)
        raise SystemExit(1)

    try:
        config = EvolveConfig.from_env().with_overrides(
            model=model,
            extension=LANGUAGE_EXTENSIONS[language] if language else None,
            file_concurrency=file_concurrency,
            llm_concurrency=llm_concurrency,
            max_retries=max_retries,
            backoff_base=backoff_base,
            validate_with_docker=validate_with_docker,
            run_timeout=run_timeout,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    source = repo_url or str(local_path)
    reporter = StatusFileReporter(get_status_path(), source=source)

    if repo_url:
        root = prepare_workspace(workspace)
        if not clone_repo(repo_url, root):
            reporter.report("error", {}, f"Failed to clone repository: {repo_url}")
            click.echo(f"Error: failed to clone repository: {repo_url}", err=True)
            raise SystemExit(1)
    else:
        root = local_path

    try:
        summary = asyncio.run(
            evolve_workspace(
                root,
                config,
                reporter,
                AuditLog(get_audit_log_path()),
                source=source,
                summary_path=get_summary_path(),
            )
        )
    except RunAborted as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except asyncio.TimeoutError:
        click.echo(f"Error: run timed out after {config.run_timeout:g}s", err=True)
        raise SystemExit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(format_summary(summary))
