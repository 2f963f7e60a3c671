"""Save, syntax-check and revert source files.

The Validator wraps every file mutation in a small transaction:

    Clean --save--> Saved --validate--> success | failure --revert--> Reverted

The first save of a file in a run copies the pre-run content to
``<file>.bak``. That backup is never rewritten for the rest of the run, so
every revert restores the original content, not an intermediate attempt.
Backups stay on disk after the run for manual recovery.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from acee.core.config import EvolveConfig

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


@dataclass
class ValidationResult:
    """Outcome of a syntax check."""

    success: bool
    error: str = ""


class SyntaxChecker(Protocol):
    async def check(self, root: Path, rel_path: str) -> ValidationResult: ...


def brackets_balanced(code: str) -> bool:
    """True when braces and parentheses occur in matching counts."""
    return code.count("{") == code.count("}") and code.count("(") == code.count(")")


async def _run_check(argv: Sequence[str], timeout: float) -> ValidationResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return ValidationResult(success=False, error=f"Command failed to start: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return ValidationResult(
            success=False, error=f"Command timed out after {timeout:g}s"
        )

    if proc.returncode == 0:
        return ValidationResult(success=True)
    output = stderr.decode("utf-8", errors="replace") or stdout.decode(
        "utf-8", errors="replace"
    )
    return ValidationResult(
        success=False, error=output or f"Exited with status {proc.returncode}"
    )


class LocalChecker:
    """Runs the check command on the host, e.g. ``node --check <file>``."""

    def __init__(
        self, command: Sequence[str] = ("node", "--check"), timeout: float = 120.0
    ) -> None:
        self.command = tuple(command)
        self.timeout = timeout

    async def check(self, root: Path, rel_path: str) -> ValidationResult:
        path = (root / rel_path).resolve()
        return await _run_check([*self.command, str(path)], self.timeout)


class DockerChecker:
    """Runs the check command inside a throwaway container.

    The workspace is mounted at /app, so the file is addressed by its
    POSIX relative path.
    """

    def __init__(
        self,
        image: str = "node:20-slim",
        command: Sequence[str] = ("node", "--check"),
        timeout: float = 120.0,
    ) -> None:
        self.image = image
        self.command = tuple(command)
        self.timeout = timeout

    def argv(self, root: Path, rel_path: str) -> list[str]:
        internal = rel_path.replace("\\", "/")
        return [
            "docker",
            "run",
            "--rm",
            "-v",
            f"{root.resolve()}:/app",
            "-w",
            "/app",
            self.image,
            *self.command,
            internal,
        ]

    async def check(self, root: Path, rel_path: str) -> ValidationResult:
        return await _run_check(self.argv(root, rel_path), self.timeout)


def docker_available() -> bool:
    """Check whether a Docker daemon answers ``docker info``."""
    try:
        subprocess.run(
            ["docker", "info"], capture_output=True, check=True, timeout=30
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired):
        return False
    return True


def make_checker(config: EvolveConfig) -> SyntaxChecker:
    """Pick the configured checker, falling back to local when Docker is down."""
    if config.validate_with_docker:
        if docker_available():
            logger.info("Docker daemon detected, using containerised validation")
            return DockerChecker(
                image=config.docker_image,
                command=config.check_command,
                timeout=config.check_timeout,
            )
        logger.warning(
            "Docker validation requested but the daemon is not reachable. "
            "Falling back to local checks."
        )
    return LocalChecker(command=config.check_command, timeout=config.check_timeout)


class Validator:
    """File mutation transactions rooted at a workspace directory."""

    def __init__(self, root: Path, checker: SyntaxChecker) -> None:
        self.root = Path(root)
        self.checker = checker
        self._backed_up: set[str] = set()

    def backup_path(self, rel_path: str) -> Path:
        path = self.root / rel_path
        return path.with_name(path.name + BACKUP_SUFFIX)

    def save(self, rel_path: str, content: bytes) -> None:
        """Write new content, backing up the pre-run file on first save."""
        path = self.root / rel_path
        if rel_path not in self._backed_up:
            shutil.copyfile(path, self.backup_path(rel_path))
            self._backed_up.add(rel_path)
        path.write_bytes(content)
        logger.debug("Saved evolution to %s", rel_path)

    async def validate(self, rel_path: str) -> ValidationResult:
        result = await self.checker.check(self.root, rel_path)
        if result.success:
            logger.debug("Validation passed for %s", rel_path)
        else:
            logger.info("Validation failed for %s: %s", rel_path, result.error.strip())
        return result

    def revert(self, rel_path: str) -> bool:
        """Restore the pre-run content. Returns False if there is no backup."""
        if rel_path not in self._backed_up:
            return False
        shutil.copyfile(self.backup_path(rel_path), self.root / rel_path)
        logger.info("Reverted %s to its backup", rel_path)
        return True
