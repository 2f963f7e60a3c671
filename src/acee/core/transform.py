"""Rate-limited, cached access to the function rewrite capability.

The Transformer sits between the pipeline and the language model. It
short-circuits repeated bodies through a content-addressed cache, bounds
the number of simultaneous model calls, backs off on rate limits, and
cleans up whatever text comes back. It never fails a caller: when no
usable rewrite is produced the original body is returned. The one
exception is an authentication failure, which aborts the whole run.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from typing import Awaitable, Callable, Literal

from acee.prompts import build_evolve_prompt

logger = logging.getLogger(__name__)

TransformStatus = Literal["rate_limited", "unauthorized", "server_error", "failed"]

_FENCE = re.compile(r"```javascript|```js|```")
_TRAILING_SEMICOLONS = re.compile(r";+$")
_COSMETIC = re.compile(r"[\s;]")


class TransformError(Exception):
    """A failed call to the rewrite capability."""

    def __init__(self, status: TransformStatus, message: str = "") -> None:
        super().__init__(message or status)
        self.status = status


class AuthenticationFailed(Exception):
    """The rewrite capability rejected our credentials."""


TransformText = Callable[[str], Awaitable[str]]


def body_digest(body: str, feedback: str | None = None) -> str:
    """Content address of a rewrite request."""
    h = hashlib.sha256(body.encode("utf-8"))
    if feedback:
        h.update(b"\0")
        h.update(feedback.encode("utf-8"))
    return h.hexdigest()


def sanitize_code(code: str | None, fallback: str) -> str:
    """Strip markdown fences, surrounding blank space and trailing semicolons."""
    if not code or not isinstance(code, str):
        return fallback
    cleaned = _FENCE.sub("", code).strip()
    cleaned = _TRAILING_SEMICOLONS.sub("", cleaned)
    return cleaned or fallback


def is_cosmetic_change(old: str, new: str) -> bool:
    """True when the two texts differ only in whitespace or semicolons."""
    return _COSMETIC.sub("", old) == _COSMETIC.sub("", new)


class Transformer:
    """Cached, concurrency-limited wrapper around ``transform_text``.

    One instance is shared by every file pipeline of a run, so its cache
    and gate are the only cross-file state. Create a new instance to start
    a run with an empty cache.
    """

    def __init__(
        self,
        transform_text: TransformText,
        *,
        max_concurrency: int = 2,
        max_retries: int = 3,
        base_delay: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transform_text = transform_text
        self._gate = asyncio.Semaphore(max_concurrency)
        self._sleep = sleep
        self._cache: dict[str, str] = {}
        self.max_retries = max_retries
        self.base_delay = base_delay

        self.cache_hits = 0
        self.cache_misses = 0
        self.noops = 0
        self.failures = 0

    async def evolve(self, name: str, body: str, feedback: str | None = None) -> str:
        """Return a rewrite of ``body``, or ``body`` itself if there is none.

        ``feedback`` is a validator diagnostic from a failed earlier
        rewrite; it becomes part of both the prompt and the cache key.

        Raises:
            AuthenticationFailed: If the capability rejects our credentials.
        """
        if not body:
            return body

        key = body_digest(body, feedback)
        if key in self._cache:
            self.cache_hits += 1
            logger.info("Cache hit for %s, skipping model call", name)
            return self._cache[key]
        self.cache_misses += 1

        prompt = build_evolve_prompt(name, body, feedback)
        started = time.monotonic()
        raw = await self._call_with_backoff(name, prompt)
        if raw is None:
            self.failures += 1
            return body
        if not raw.strip():
            logger.warning("Empty response from model for %s", name)
            self.failures += 1
            return body

        rewritten = sanitize_code(raw, body)
        if is_cosmetic_change(body, rewritten):
            logger.info("Skipped %s: cosmetic changes only", name)
            self.noops += 1
            self._cache[key] = body
            return body

        self._log_metrics(name, started, len(body), len(rewritten))
        self._cache[key] = rewritten
        return rewritten

    async def _call_with_backoff(self, name: str, prompt: str) -> str | None:
        """Call the capability, retrying rate limits with exponential backoff.

        Returns None when no rewrite could be obtained.
        """
        attempt = 0
        while True:
            try:
                async with self._gate:
                    return await self._transform_text(prompt)
            except TransformError as e:
                if e.status == "rate_limited" and attempt < self.max_retries:
                    wait = self.base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Rate limited on %s. Retry %d/%d in %.1fs",
                        name,
                        attempt,
                        self.max_retries,
                        wait,
                    )
                    await self._sleep(wait)
                    continue
                if e.status == "unauthorized":
                    logger.error("Authentication failed for model calls: %s", e)
                    raise AuthenticationFailed(str(e)) from e
                if e.status == "rate_limited":
                    logger.error(
                        "Giving up on %s after %d rate-limited retries", name, attempt
                    )
                elif e.status == "server_error":
                    logger.error("Server error for %s: %s", name, e)
                else:
                    logger.error("Model call failed for %s: %s", name, e)
                return None
            except Exception as e:
                logger.error("Model call failed for %s: %s", name, e)
                return None

    def _log_metrics(
        self, name: str, started: float, original_length: int, evolved_length: int
    ) -> None:
        elapsed = time.monotonic() - started
        diff = original_length - evolved_length
        sign = "-" if diff > 0 else "+"
        logger.info(
            "Evolved %s (%d chars -> %d chars) in %.2fs [Diff: %s%d]",
            name,
            original_length,
            evolved_length,
            elapsed,
            sign,
            abs(diff),
        )

    def cache_stats(self) -> dict:
        """Cache performance counters for the run summary."""
        total = self.cache_hits + self.cache_misses
        return {
            "hits": self.cache_hits,
            "misses": self.cache_misses,
            "hit_rate": f"{self.cache_hits / total * 100:.1f}%" if total else "N/A",
            "cached_entries": len(self._cache),
        }
