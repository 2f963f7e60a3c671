"""Function extraction for JavaScript sources.

Parses a file with tree-sitter and yields every function-like node with
its name, source text and byte span. Offsets index into the UTF-8 encoded
content so replacements can be spliced straight into the file bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tree_sitter_javascript.language())

FUNCTION_NODE_TYPES = frozenset(
    {
        "function_declaration",
        "function_expression",
        "arrow_function",
        "method_definition",
    }
)
ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class FunctionCandidate:
    """A function-like unit found in a source file."""

    name: str
    body: str
    start: int
    end: int

    @property
    def line_count(self) -> int:
        return len(self.body.split("\n"))


def _node_text(node: Node | None) -> str | None:
    if node is None or node.text is None:
        return None
    return node.text.decode("utf-8")


def resolve_name(node: Node) -> str:
    """Pick a display name for a function node.

    Declarations and methods use their declared identifier. An anonymous
    function bound to a variable takes the variable's name.
    """
    own_name = _node_text(node.child_by_field_name("name"))
    if own_name and node.type != "arrow_function":
        return own_name

    parent = node.parent
    if parent is not None and parent.type == "variable_declarator":
        bound = _node_text(parent.child_by_field_name("name"))
        if bound:
            return bound
    return ANONYMOUS


def _walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal, so nodes come out in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def extract(source: str | bytes) -> Iterator[FunctionCandidate]:
    """Yield the de-duplicated function candidates of a JavaScript source.

    Candidates with identical bodies are reported once, at their first
    occurrence. Sources that fail to parse produce nothing.
    """
    data = source.encode("utf-8") if isinstance(source, str) else source
    try:
        data.decode("utf-8")
        tree = Parser(JS_LANGUAGE).parse(data)
    except (UnicodeDecodeError, ValueError) as e:
        logger.debug("Cannot parse source: %s", e)
        return

    if tree.root_node.has_error:
        logger.debug("Source has syntax errors, no candidates extracted")
        return

    seen: set[str] = set()
    for node in _walk(tree.root_node):
        # Keyword tokens such as `function` are unnamed nodes.
        if not node.is_named or node.type not in FUNCTION_NODE_TYPES:
            continue
        body = data[node.start_byte : node.end_byte].decode("utf-8")
        if body in seen:
            continue
        seen.add(body)
        yield FunctionCandidate(
            name=resolve_name(node),
            body=body,
            start=node.start_byte,
            end=node.end_byte,
        )
