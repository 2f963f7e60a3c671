"""Shared pytest fixtures and test doubles for acee tests."""

import asyncio
import re
from pathlib import Path

import pytest

from acee.core.transform import TransformError
from acee.core.validate import ValidationResult

_NAME = re.compile(r"^Original Name: (.*)$", re.MULTILINE)


def prompt_name(prompt: str) -> str:
    """Pull the function name back out of an evolve prompt."""
    match = _NAME.search(prompt)
    return match.group(1).strip() if match else ""


class FakeModel:
    """Stands in for the language model.

    ``rewrites`` maps a function name to the text returned for it, either a
    single string or a list consumed one call at a time. ``errors`` maps a
    name to exceptions raised (in order) before any rewrite is returned.
    """

    def __init__(self, rewrites=None, errors=None, delay: float = 0.0):
        self.rewrites = {k: list(v) if isinstance(v, list) else v for k, v in (rewrites or {}).items()}
        self.errors = {k: list(v) for k, v in (errors or {}).items()}
        self.delay = delay
        self.prompts: list[str] = []
        self.names: list[str] = []

    async def __call__(self, prompt: str) -> str:
        name = prompt_name(prompt)
        self.prompts.append(prompt)
        self.names.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        pending = self.errors.get(name)
        if pending:
            raise pending.pop(0)
        rewrite = self.rewrites.get(name, "")
        if isinstance(rewrite, list):
            return rewrite.pop(0) if rewrite else ""
        return rewrite


class FakeChecker:
    """Syntax checker that fails any file containing a marker string."""

    def __init__(self, marker: str = "BROKEN"):
        self.marker = marker
        self.checked: list[str] = []

    async def check(self, root: Path, rel_path: str) -> ValidationResult:
        self.checked.append(rel_path)
        text = (root / rel_path).read_text()
        if self.marker in text:
            return ValidationResult(
                success=False, error=f"{rel_path}:2\nSyntaxError: Unexpected identifier"
            )
        return ValidationResult(success=True)


class RecordingReporter:
    def __init__(self):
        self.calls: list[tuple] = []

    def report(self, status, stats, error_message=None):
        self.calls.append((status, dict(stats), error_message))


def rate_limited() -> TransformError:
    return TransformError("rate_limited", "429 Too Many Requests")


@pytest.fixture
def fake_checker():
    return FakeChecker()


@pytest.fixture
def setup_acee_dir(tmp_path, monkeypatch):
    """Run the test from a temporary directory so .acee/ lands there."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    return root


def write_file(root: Path, rel_path: str, content: str) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
