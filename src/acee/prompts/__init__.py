"""Prompt loading utilities for acee.

Prompt text lives in markdown templates next to this module so it can be
iterated on without code changes. Templates use ``string.Template``
placeholders (``$name``, ``$body``, ``$error``).
"""

from functools import lru_cache
from importlib import resources
from string import Template

__all__ = [
    "load_template",
    "build_evolve_prompt",
]


@lru_cache(maxsize=None)
def load_template(name: str) -> Template:
    """Load a prompt template by name.

    Args:
        name: The template name without extension (e.g. 'evolve', 'fix').

    Returns:
        The parsed template.

    Raises:
        FileNotFoundError: If the template file doesn't exist.
    """
    ref = resources.files("acee.prompts").joinpath("templates", f"{name}.md")
    return Template(ref.read_text(encoding="utf-8"))


def build_evolve_prompt(name: str, body: str, feedback: str | None = None) -> str:
    """Build the rewrite request for one function.

    When ``feedback`` carries a validator diagnostic, a self-correction
    section is appended asking the model to fix bracket balance.
    """
    prompt = load_template("evolve").substitute(name=name.strip(), body=body.strip())
    if feedback:
        prompt += load_template("fix").substitute(
            name=name.strip(), error=feedback.strip()
        )
    return prompt
