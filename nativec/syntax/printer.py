"""Render a (possibly rewritten) syntax tree back to source text."""

from __future__ import annotations

from typing import List

from .nodes import Node, NodeKind, SyntaxTree


def render(tree: SyntaxTree) -> str:
    """Return the source text for ``tree``.

    Text between child spans is copied from the original bytes, so anything
    the rewriter did not replace is emitted exactly as written.
    """
    root = tree.root
    # The root span can exclude leading and trailing whitespace.
    parts: List[bytes] = [tree.source[: root.start]]
    _render_into(root, tree.source, parts)
    parts.append(tree.source[root.end :])
    return b"".join(parts).decode("utf-8")


def render_node(tree: SyntaxTree, node: Node) -> str:
    parts: List[bytes] = []
    _render_into(node, tree.source, parts)
    return b"".join(parts).decode("utf-8")


def _render_into(node: Node, source: bytes, parts: List[bytes]) -> None:
    if node.kind is NodeKind.PLACEHOLDER:
        parts.append((node.text or "").encode("utf-8"))
        for child in node.children:
            _render_into(child, source, parts)
        return
    cursor = node.start
    for child in node.children:
        if child.start < cursor:
            # Shorthand properties share the span of their identifier.
            continue
        parts.append(source[cursor : child.start])
        _render_into(child, source, parts)
        cursor = child.end
    parts.append(source[cursor : node.end])


__all__ = ["render", "render_node"]
