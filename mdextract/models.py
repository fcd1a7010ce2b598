from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class MarkdownNode:
    kind: str  # e.g., "root", "heading", "paragraph", "text", "strong"
    literal: str = ""
    children: Tuple["MarkdownNode", ...] = ()
    leaf: bool = False

    @property
    def first_child(self) -> Optional["MarkdownNode"]:
        return self.children[0] if self.children else None

    def walk(self) -> Iterator[Tuple["MarkdownNode", bool]]:
        """
        Pre-order traversal yielding (node, entering).

        Containers are reported twice (entering, then leaving after their subtree);
        leaves only once.
        """
        yield self, True
        if self.leaf:
            return
        for child in self.children:
            yield from child.walk()
        yield self, False


@dataclass(frozen=True)
class MailMessage:
    subject: str
    text_body: str
    html_body: Optional[str] = None
