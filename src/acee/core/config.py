"""Run configuration for acee.

Values come from ``ACEE_*`` environment variables and can be overridden
per invocation by CLI options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping


class ConfigError(Exception):
    """Raised when an environment value cannot be parsed."""


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class EvolveConfig:
    """Knobs for a single evolution run."""

    model: str = "groq/llama-3.3-70b-versatile"
    temperature: float = 0.1
    max_tokens: int = 4096
    llm_concurrency: int = 2
    file_concurrency: int = 3
    max_retries: int = 3
    backoff_base: float = 10.0
    validate_with_docker: bool = False
    docker_image: str = "node:20-slim"
    check_command: tuple[str, ...] = ("node", "--check")
    check_timeout: float = 120.0
    min_lines: int = 4
    min_chars: int = 60
    extension: str = ".js"
    run_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.llm_concurrency < 1:
            raise ConfigError("llm_concurrency must be at least 1")
        if self.file_concurrency < 1:
            raise ConfigError("file_concurrency must be at least 1")
        if self.max_retries < 0:
            raise ConfigError("max_retries cannot be negative")
        if self.backoff_base < 0:
            raise ConfigError("backoff_base cannot be negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EvolveConfig:
        """Build a config from ``ACEE_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict = {}

        if env.get("ACEE_MODEL"):
            values["model"] = env["ACEE_MODEL"]
        if env.get("ACEE_DOCKER_IMAGE"):
            values["docker_image"] = env["ACEE_DOCKER_IMAGE"]

        for name, field_name in (
            ("ACEE_LLM_CONCURRENCY", "llm_concurrency"),
            ("ACEE_FILE_CONCURRENCY", "file_concurrency"),
            ("ACEE_MAX_RETRIES", "max_retries"),
            ("ACEE_MIN_LINES", "min_lines"),
            ("ACEE_MIN_CHARS", "min_chars"),
        ):
            if env.get(name):
                values[field_name] = _parse_int(name, env[name])

        for name, field_name in (
            ("ACEE_BACKOFF_BASE", "backoff_base"),
            ("ACEE_CHECK_TIMEOUT", "check_timeout"),
            ("ACEE_RUN_TIMEOUT", "run_timeout"),
        ):
            if env.get(name):
                values[field_name] = _parse_float(name, env[name])

        if "ACEE_VALIDATE_WITH_DOCKER" in env:
            values["validate_with_docker"] = _parse_bool(
                "ACEE_VALIDATE_WITH_DOCKER", env["ACEE_VALIDATE_WITH_DOCKER"]
            )

        return cls(**values)

    def with_overrides(self, **overrides) -> EvolveConfig:
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown config option(s): {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")
