"""Evolution pipeline: per-file rewrite transactions and the batch loop.

For each file the pipeline extracts candidate functions, keeps the ones
worth rewriting, splices accepted rewrites back-to-front, and validates
the result once. A failed validation gets exactly one self-correction
attempt before the file is reverted to its pre-run backup.

Counters are not shared between concurrent files. Each file returns a
``FileOutcome``; the batch loop folds their ``RunAudit`` contributions
together at batch boundaries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Literal

from acee.core.config import EvolveConfig
from acee.core.extract import ANONYMOUS, FunctionCandidate, extract
from acee.core.report import AuditLog
from acee.core.score import score
from acee.core.transform import AuthenticationFailed, Transformer
from acee.core.validate import Validator, brackets_balanced

logger = logging.getLogger(__name__)

FileStatus = Literal["skipped", "unchanged", "evolved", "reverted", "failed"]


@dataclass(frozen=True)
class RunAudit:
    """Run-wide counters, combined with ``merge``."""

    files_scanned: int = 0
    successful_evolutions: int = 0
    syntax_errors_prevented: int = 0
    chars_saved: int = 0

    def merge(self, other: RunAudit) -> RunAudit:
        return RunAudit(
            files_scanned=self.files_scanned + other.files_scanned,
            successful_evolutions=self.successful_evolutions
            + other.successful_evolutions,
            syntax_errors_prevented=self.syntax_errors_prevented
            + other.syntax_errors_prevented,
            chars_saved=self.chars_saved + other.chars_saved,
        )

    @property
    def success_rate(self) -> float:
        if not self.files_scanned:
            return 0.0
        return round(self.successful_evolutions / self.files_scanned * 100, 2)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FileOutcome:
    """What happened to one file."""

    path: str
    status: FileStatus
    chars_saved: int = 0
    rewritten: list[str] = field(default_factory=list)
    self_corrected: bool = False
    error: str = ""

    def audit(self) -> RunAudit:
        return RunAudit(
            files_scanned=1,
            successful_evolutions=1 if self.status == "evolved" else 0,
            syntax_errors_prevented=1 if self.status == "reverted" else 0,
            chars_saved=self.chars_saved if self.status == "evolved" else 0,
        )


class RunAborted(Exception):
    """A fatal error stopped the run. Carries the counters gathered so far."""

    def __init__(self, message: str, audit: RunAudit) -> None:
        super().__init__(message)
        self.audit = audit


def splice(content: bytes, candidate: FunctionCandidate, replacement: str) -> bytes:
    """Replace the candidate's byte span in ``content``."""
    return (
        content[: candidate.start]
        + replacement.encode("utf-8")
        + content[candidate.end :]
    )


def display_name(candidate: FunctionCandidate) -> str:
    if candidate.name == ANONYMOUS:
        return f"anonymous_at_byte_{candidate.start}"
    return candidate.name


def _accepts(candidate: FunctionCandidate, rewrite: str) -> bool:
    """Check a rewrite before it goes anywhere near the file."""
    if not rewrite or not rewrite.strip() or rewrite == candidate.body:
        return False
    if not brackets_balanced(rewrite):
        logger.warning(
            "[%s] rewrite discarded: unbalanced brackets", display_name(candidate)
        )
        return False
    return True


class EvolutionPipeline:
    """Runs the extract, score, rewrite, validate cycle over workspace files."""

    def __init__(
        self,
        root: Path,
        transformer: Transformer,
        validator: Validator,
        audit_log: AuditLog,
        config: EvolveConfig | None = None,
    ) -> None:
        self.root = Path(root)
        self.transformer = transformer
        self.validator = validator
        self.audit_log = audit_log
        self.config = config or EvolveConfig()

    def is_too_simple(self, candidate: FunctionCandidate) -> bool:
        return (
            candidate.line_count < self.config.min_lines
            and len(candidate.body) < self.config.min_chars
        )

    def select_candidates(
        self, candidates: list[FunctionCandidate]
    ) -> list[FunctionCandidate]:
        """Keep candidates worth rewriting, highest start offset first."""
        selected = []
        for candidate in candidates:
            name = display_name(candidate)
            if self.is_too_simple(candidate):
                logger.debug("Skipping %s: too simple to evolve", name)
                continue
            result = score(candidate.body)
            if result.score == 0:
                logger.debug("Skipping %s: no anti-patterns detected", name)
                continue
            logger.info(
                "Evolving %s (score: %d): %s",
                name,
                result.score,
                ", ".join(result.reasons),
            )
            selected.append(candidate)
        return sorted(selected, key=lambda c: c.start, reverse=True)

    async def process_file(self, rel_path: str) -> FileOutcome:
        """Evolve one file. Leaves it either validated or exactly as it was."""
        path = self.root / rel_path
        original = path.read_bytes()

        candidates = list(extract(original))
        if not candidates:
            logger.info("%s: no functions found, skipping", rel_path)
            return FileOutcome(rel_path, "skipped")

        working = original
        rewritten: list[FunctionCandidate] = []
        # Lowest byte offset replaced so far; anything reaching past it is stale.
        floor = len(original)
        for candidate in self.select_candidates(candidates):
            if candidate.end > floor:
                logger.debug(
                    "Skipping %s: encloses an already rewritten function",
                    display_name(candidate),
                )
                continue
            rewrite = await self.transformer.evolve(candidate.name, candidate.body)
            if not _accepts(candidate, rewrite):
                continue
            working = splice(working, candidate, rewrite)
            rewritten.append(candidate)
            floor = candidate.start

        if not rewritten:
            return FileOutcome(rel_path, "unchanged")

        try:
            return await self._commit(rel_path, original, working, rewritten)
        except Exception:
            self.validator.revert(rel_path)
            raise

    async def _commit(
        self,
        rel_path: str,
        original: bytes,
        working: bytes,
        rewritten: list[FunctionCandidate],
    ) -> FileOutcome:
        self.validator.save(rel_path, working)
        result = await self.validator.validate(rel_path)

        self_corrected = False
        if not result.success:
            self_corrected = True
            logger.info(
                "%s: validation failed, attempting self-correction", rel_path
            )
            self.validator.revert(rel_path)
            fresh = (self.root / rel_path).read_bytes()
            target = rewritten[0]
            fixed = await self.transformer.evolve(
                target.name, target.body, feedback=result.error
            )
            if _accepts(target, fixed):
                retry = splice(fresh, target, fixed)
                self.validator.save(rel_path, retry)
                retry_result = await self.validator.validate(rel_path)
                if retry_result.success:
                    logger.info("%s: self-correction succeeded", rel_path)
                    working = retry
                    rewritten = [target]
                result = retry_result
            else:
                logger.info("%s: self-correction produced no usable rewrite", rel_path)

        if not result.success:
            reason = "Self-correction failed" if self_corrected else "Syntax error blocked"
            logger.warning("Reverting %s: %s", rel_path, reason)
            self.audit_log.append(rel_path, result.error, self_corrected=self_corrected)
            self.validator.revert(rel_path)
            return FileOutcome(
                rel_path,
                "reverted",
                self_corrected=self_corrected,
                error=result.error,
            )

        chars_saved = len(original.decode("utf-8")) - len(working.decode("utf-8"))
        if chars_saved >= 0:
            logger.info("%s evolved (%d chars removed)", rel_path, chars_saved)
        else:
            logger.info("%s evolved (%d chars added)", rel_path, -chars_saved)
        return FileOutcome(
            rel_path,
            "evolved",
            chars_saved=chars_saved,
            rewritten=[c.name for c in rewritten],
            self_corrected=self_corrected,
        )

    async def run(self, files: list[str]) -> RunAudit:
        """Process files in concurrent batches and return the merged audit.

        A file that raises is logged and counted as scanned; its siblings
        carry on. An authentication failure stops the run once the current
        batch has settled.

        Raises:
            RunAborted: On authentication failure, with the audit so far.
        """
        audit = RunAudit()
        size = self.config.file_concurrency
        total_batches = (len(files) + size - 1) // size

        for index, start in enumerate(range(0, len(files), size), start=1):
            batch = files[start : start + size]
            logger.info(
                "Processing batch %d/%d (%d files)", index, total_batches, len(batch)
            )
            results = await asyncio.gather(
                *(self.process_file(f) for f in batch), return_exceptions=True
            )

            fatal: AuthenticationFailed | None = None
            for rel_path, result in zip(batch, results):
                if isinstance(result, FileOutcome):
                    audit = audit.merge(result.audit())
                    continue
                if not isinstance(result, Exception):
                    raise result
                audit = audit.merge(FileOutcome(rel_path, "failed").audit())
                if isinstance(result, AuthenticationFailed):
                    fatal = result
                else:
                    logger.error("Error processing %s: %s", rel_path, result)

            if fatal is not None:
                raise RunAborted(f"Authentication failed: {fatal}", audit) from fatal

        return audit
