"""Marker extraction and native reference rewriting over a syntax tree."""

from __future__ import annotations

from enum import Enum
from typing import AbstractSet, Optional

from .evaluator import ConstantEvaluator, EvaluationContext
from .logging import get_logger
from .models import SourceUnit
from .syntax.nodes import Node, NodeKind, SyntaxTree, placeholder
from .syntax.printer import render_node

_EMPTY_STATEMENT = ";"


class MarkerKind(str, Enum):
    """Reserved pseudo-statements that declare compile-time metadata."""

    PACKAGE = "package"
    CLASS = "class"
    STATIC = "static"
    NATIVE = "native"
    IMPORT = "import"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["MarkerKind"]:
        if name is None:
            return None
        try:
            return cls(name)
        except ValueError:
            return None


class MarkerRewriter:
    """Walks one file's tree, records declarations and substitutes placeholders.

    The input tree is never modified; :meth:`rewrite` returns a new tree. A
    marker whose argument can't be resolved raises out of :meth:`rewrite` and
    the unit must be discarded.
    """

    def __init__(
        self,
        unit: SourceUnit,
        *,
        evaluator: ConstantEvaluator | None = None,
        known_globals: AbstractSet[str] = frozenset(),
    ) -> None:
        self.unit = unit
        self.evaluator = evaluator or ConstantEvaluator()
        self.known_globals = frozenset(known_globals)
        self.logger = get_logger("rewriter")
        self._tree: Optional[SyntaxTree] = None

    def rewrite(self, tree: SyntaxTree) -> SyntaxTree:
        self._tree = tree
        try:
            root = self._transform(tree.root)
        finally:
            self._tree = None
        return SyntaxTree(root=root, source=tree.source, filename=tree.filename)

    # ------------------------------------------------------------------
    # Traversal

    def _transform(self, node: Node) -> Node:
        if node.kind is NodeKind.EXPRESSION_STATEMENT:
            replacement = self._marker_statement(node)
            if replacement is not None:
                return replacement
        elif node.kind is NodeKind.NEW:
            replacement = self._instantiation(node)
            if replacement is not None:
                return replacement
        elif node.kind is NodeKind.CALL:
            replacement = self._native_call(node)
            if replacement is not None:
                return replacement
        return self._descend(node)

    def _descend(self, node: Node) -> Node:
        if not node.children:
            return node
        children = tuple(self._transform(child) for child in node.children)
        if all(new is old for new, old in zip(children, node.children)):
            return node
        return node.with_children(children)

    def _is_unbound(self, identifier: Node) -> bool:
        name = identifier.name or ""
        if name in self.known_globals:
            return False
        return identifier.scope is None or identifier.scope.find_binding(name) is None

    # ------------------------------------------------------------------
    # Recognised constructs

    def _marker_statement(self, statement: Node) -> Optional[Node]:
        if not statement.children:
            return None
        call = statement.expression
        if call.kind is not NodeKind.CALL or call.callee.kind is not NodeKind.IDENTIFIER:
            return None
        marker = MarkerKind.from_name(call.callee.name)
        if marker is None or not call.arguments:
            return None
        if not self._is_unbound(call.callee):
            # A real variable or function that happens to share the name.
            return None

        argument = call.arguments[0]
        context = EvaluationContext(
            filename=statement.location.file,
            declaration=marker.value,
            site=statement.location,
        )
        location = statement.location
        if marker is MarkerKind.NATIVE:
            self.unit.process_native(self.evaluator.resolve_mapping(argument, context), location)
        else:
            value = self.evaluator.resolve(argument, context)
            if marker is MarkerKind.PACKAGE:
                self.unit.process_package(value, location)
            elif marker is MarkerKind.CLASS:
                self.unit.process_class(value, location)
            elif marker is MarkerKind.STATIC:
                self.unit.process_static(value, location)
            else:
                self.unit.process_import(value, location)
        self.logger.debug("Extracted %s marker at %s", marker.value, location)
        return placeholder(statement, _EMPTY_STATEMENT)

    def _instantiation(self, node: Node) -> Optional[Node]:
        callee = node.callee
        if callee.kind is not NodeKind.IDENTIFIER or not self._is_unbound(callee):
            return None
        # Constructor arguments are left to the backend's real call signature.
        symbol = self.unit.process_new_class(callee.name or "", node.location)
        return placeholder(node, f"{symbol}()")

    def _native_call(self, node: Node) -> Optional[Node]:
        callee = node.callee
        if callee.kind is not NodeKind.IDENTIFIER:
            return None
        if MarkerKind.from_name(callee.name) is not None or not self._is_unbound(callee):
            return None
        argument_list = node.argument_list
        if argument_list is None:
            return None
        # The symbol is allocated before the arguments are visited so numbering runs outer to inner.
        symbol = self.unit.process_function(callee.name or "", [], node.location)
        call_site = self.unit.declarations.call_sites[-1]
        rewritten_arguments = self._descend(argument_list)
        call_site.arguments = [self._text(arg) for arg in rewritten_arguments.children]
        return placeholder(node, symbol, (rewritten_arguments,))

    def _text(self, node: Node) -> str:
        assert self._tree is not None
        return render_node(self._tree, node)


__all__ = ["MarkerKind", "MarkerRewriter"]
