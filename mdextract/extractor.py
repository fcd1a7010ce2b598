from __future__ import annotations

import logging
from typing import Callable, Dict, List

from .models import MarkdownNode
from .parser import parse_markdown

logger = logging.getLogger(__name__)

ALLOWED_NODE_TYPES = frozenset(
    {
        "Document",
        "Heading",
        "Paragraph",
        "Blockquote",
        "List",
        "Item",
        "Text",
        "Emph",
        "Strong",
        "Code",
        "Link",
        "Image",
    }
)


def _kind_is(*kinds: str) -> Callable[[MarkdownNode], bool]:
    def matches(node: MarkdownNode) -> bool:
        return node.kind in kinds

    return matches


_MATCHERS: Dict[str, Callable[[MarkdownNode], bool]] = {
    "Document": _kind_is("root"),
    "Heading": _kind_is("heading"),
    "Paragraph": _kind_is("paragraph"),
    "Blockquote": _kind_is("blockquote"),
    "List": _kind_is("bullet_list", "ordered_list"),
    "Item": _kind_is("list_item"),
    "Text": _kind_is("text"),
    "Strong": _kind_is("strong"),
    "Emph": _kind_is("em"),
}

# Code, Link and Image pass validation but have no matcher yet.
SUPPORTED_NODE_TYPES = frozenset(_MATCHERS)


class ExtractionError(Exception):
    """Raised when a node type cannot be extracted."""

    def __init__(self, node_type: str, message: str):
        super().__init__(message)
        self.node_type = node_type


class InvalidNodeTypeError(ExtractionError):
    def __init__(self, node_type: str):
        super().__init__(node_type, f"invalid node type: {node_type}")


class UnsupportedNodeTypeError(ExtractionError):
    def __init__(self, node_type: str):
        super().__init__(node_type, f"node type {node_type} currently unsupported")


def validate_node_type(node_type: str) -> None:
    if node_type not in ALLOWED_NODE_TYPES:
        raise InvalidNodeTypeError(node_type)


def extract(markdown: str, node_type: str) -> List[str]:
    """
    Return the literal text of the first child of every node of `node_type`.

    Values are in document order. Nodes without a first child, or whose first
    child has no literal text, are skipped.
    """
    validate_node_type(node_type)
    matcher = _MATCHERS.get(node_type)
    if matcher is None:
        raise UnsupportedNodeTypeError(node_type)

    tree = parse_markdown(markdown)
    values: List[str] = []
    for node, entering in tree.walk():
        if not entering or not matcher(node):
            continue
        child = node.first_child
        if child is None or not child.literal:
            continue
        values.append(child.literal)
    logger.debug("Extracted %s value(s) for node type %s", len(values), node_type)
    return values
