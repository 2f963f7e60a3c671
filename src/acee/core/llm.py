"""Language model access through DSPy.

``LanguageModelClient`` is the production ``transform_text`` capability: it
sends one prompt to a ``dspy.LM`` and returns the completion text. DSPy's
own response cache and retry loop are switched off because the
Transformer owns caching and backoff.

Example:
    ```python
    client = LanguageModelClient("groq/llama-3.3-70b-versatile")
    text = await client("Rewrite this function ...")
    ```
"""

from __future__ import annotations

import logging

import dspy

from acee.core.transform import TransformError, TransformStatus

logger = logging.getLogger(__name__)


def status_code_of(error: BaseException) -> int | None:
    """Find the HTTP status carried by a provider exception, if any."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_error(error: BaseException) -> TransformStatus:
    """Map a provider exception onto the transform error taxonomy."""
    code = status_code_of(error)
    if code == 429:
        return "rate_limited"
    if code == 401:
        return "unauthorized"
    if code is not None and code >= 500:
        return "server_error"
    return "failed"


def _completion_text(output) -> str:
    # dspy returns plain strings, or dicts when extra fields are requested.
    if isinstance(output, dict):
        return output.get("text") or ""
    return output or ""


class LanguageModelClient:
    """Async ``transform_text`` backed by ``dspy.LM``."""

    def __init__(
        self,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 4096,
        lm: dspy.LM | None = None,
    ) -> None:
        self.model = model
        self.lm = lm or dspy.LM(
            model,
            temperature=temperature,
            max_tokens=max_tokens,
            cache=False,
            num_retries=0,
        )

    async def __call__(self, prompt: str) -> str:
        try:
            outputs = await self.lm.acall(prompt=prompt)
        except Exception as e:
            status = classify_error(e)
            logger.debug("Model call to %s failed (%s): %s", self.model, status, e)
            raise TransformError(status, str(e)) from e

        if not outputs:
            return ""
        return _completion_text(outputs[0])
