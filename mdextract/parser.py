"""Build a MarkdownNode tree from markdown text with markdown-it-py."""

from __future__ import annotations

from typing import List

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from .models import MarkdownNode

# Node kinds whose raw text is carried as the node's literal.
LITERAL_KINDS = frozenset({"text", "code_inline", "code_block", "fence", "html_inline", "html_block"})

# Node kinds that never have children.
LEAF_KINDS = LITERAL_KINDS | {"softbreak", "hardbreak", "hr"}

_md = MarkdownIt("commonmark")


def parse_markdown(markdown: str) -> MarkdownNode:
    """
    Parse markdown into an immutable MarkdownNode tree rooted at kind "root".

    The parser is permissive: any string yields a tree, malformed markup becomes text.
    """
    tokens = _md.parse(markdown)
    return _convert(SyntaxTreeNode(tokens))


def render_html(markdown: str) -> str:
    return _md.render(markdown)


def _convert(node: SyntaxTreeNode) -> MarkdownNode:
    kind = node.type
    children: List[MarkdownNode] = []
    for child in node.children:
        # "inline" only wraps the inline content of a block; lift its children.
        if child.type == "inline":
            children.extend(_convert(grandchild) for grandchild in child.children)
        else:
            children.append(_convert(child))
    literal = node.content if kind in LITERAL_KINDS else ""
    return MarkdownNode(
        kind=kind,
        literal=literal,
        children=tuple(_join_text_runs(children)),
        leaf=kind in LEAF_KINDS,
    )


def _join_text_runs(children: List[MarkdownNode]) -> List[MarkdownNode]:
    """
    Merge adjacent text and soft line breaks into a single text node.

    Empty text runs are dropped, so a node starting with a delimiter run
    (e.g. "**bold** rest") has the strong node as its first child.
    """
    joined: List[MarkdownNode] = []
    run: List[str] = []

    def flush() -> None:
        text = "".join(run)
        run.clear()
        if text:
            joined.append(MarkdownNode(kind="text", literal=text, leaf=True))

    for child in children:
        if child.kind == "text":
            run.append(child.literal)
        elif child.kind == "softbreak":
            run.append("\n")
        else:
            flush()
            joined.append(child)
    flush()
    return joined
