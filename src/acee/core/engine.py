"""One complete evolution run.

Wires the pieces together: report ``running``, evolve every candidate file,
build the summary, report ``done``. Any failure, including a run timeout or
an authentication error, is reported as ``error`` with the counters gathered
so far and then re-raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from acee.core.config import EvolveConfig
from acee.core.llm import LanguageModelClient
from acee.core.pipeline import EvolutionPipeline, RunAborted, RunAudit
from acee.core.report import AuditLog, RunReporter, safe_report, write_summary
from acee.core.transform import TransformText, Transformer
from acee.core.validate import SyntaxChecker, Validator, make_checker
from acee.core.workspace import list_candidate_files

logger = logging.getLogger(__name__)


def build_summary(
    audit: RunAudit,
    transformer: Transformer,
    config: EvolveConfig,
    elapsed: float,
    source: str = "",
) -> dict:
    """Machine-readable summary of a finished run."""
    return {
        **audit.to_dict(),
        "success_rate": audit.success_rate,
        "execution_time_seconds": round(elapsed, 1),
        "cache": transformer.cache_stats(),
        "file_concurrency": config.file_concurrency,
        "source": source,
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }


async def evolve_workspace(
    root: Path,
    config: EvolveConfig,
    reporter: RunReporter,
    audit_log: AuditLog,
    *,
    source: str = "",
    summary_path: Path | None = None,
    transform_text: TransformText | None = None,
    checker: SyntaxChecker | None = None,
) -> dict:
    """Evolve every candidate file under ``root`` and return the run summary.

    ``transform_text`` and ``checker`` default to the configured model
    client and syntax checker; tests pass doubles instead.
    """
    started = time.monotonic()
    audit = RunAudit()
    safe_report(reporter, "running", audit.to_dict())

    transformer = Transformer(
        transform_text
        or LanguageModelClient(config.model, config.temperature, config.max_tokens),
        max_concurrency=config.llm_concurrency,
        max_retries=config.max_retries,
        base_delay=config.backoff_base,
    )
    validator = Validator(root, checker or make_checker(config))
    pipeline = EvolutionPipeline(root, transformer, validator, audit_log, config)

    try:
        files = list_candidate_files(root, config.extension)
        if not files:
            logger.warning("No %s files found under %s", config.extension, root)
        else:
            logger.info(
                "Starting evolution of %d files (concurrency: %d)",
                len(files),
                config.file_concurrency,
            )
            if config.run_timeout:
                audit = await asyncio.wait_for(
                    pipeline.run(files), timeout=config.run_timeout
                )
            else:
                audit = await pipeline.run(files)
    except RunAborted as e:
        safe_report(reporter, "error", e.audit.to_dict(), str(e))
        raise
    except asyncio.TimeoutError:
        message = f"Run timed out after {config.run_timeout:g}s"
        safe_report(reporter, "error", audit.to_dict(), message)
        raise
    except Exception as e:
        safe_report(reporter, "error", audit.to_dict(), str(e))
        raise

    summary = build_summary(
        audit, transformer, config, time.monotonic() - started, source
    )
    if summary_path is not None:
        try:
            write_summary(summary_path, summary)
        except OSError as e:
            logger.warning("Could not write summary to %s: %s", summary_path, e)
    safe_report(reporter, "done", audit.to_dict())
    return summary
