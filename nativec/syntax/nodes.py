"""Closed syntax node model and lexical scopes consumed by the rewriter."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from ..models import Location


class NodeKind(str, Enum):
    """Every node kind the frontend distinguishes.

    Anything the rewriter and evaluator do not care about is ``OTHER``; it
    keeps its children so nested constructs are still visited.
    """

    PROGRAM = "program"
    EXPRESSION_STATEMENT = "expression_statement"
    EMPTY_STATEMENT = "empty_statement"
    CALL = "call"
    NEW = "new"
    ARGUMENTS = "arguments"
    ARRAY = "array"
    OBJECT = "object"
    PROPERTY = "property"
    IDENTIFIER = "identifier"
    BINARY = "binary"
    UNARY = "unary"
    LITERAL = "literal"
    PLACEHOLDER = "placeholder"
    OTHER = "other"


class BindingKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"
    CLASS = "class"
    PARAMETER = "parameter"
    CATCH = "catch"
    IMPORT = "import"


@dataclass
class Binding:
    """A declared name and the initializer expression it was bound to, if any."""

    name: str
    kind: BindingKind
    init: Optional["Node"]
    location: Location


class Scope:
    """One lexical level: program, function or block."""

    def __init__(self, kind: str, parent: Optional["Scope"] = None) -> None:
        self.kind = kind
        self.parent = parent
        self.bindings: Dict[str, Binding] = {}

    @property
    def is_function_scope(self) -> bool:
        return self.kind in {"program", "function"}

    def declare(self, binding: Binding) -> None:
        # Redeclaration keeps the latest initializer, matching `var` semantics.
        existing = self.bindings.get(binding.name)
        if existing is not None and binding.init is None and existing.init is not None:
            return
        self.bindings[binding.name] = binding

    def function_scope(self) -> "Scope":
        scope: Scope = self
        while not scope.is_function_scope and scope.parent is not None:
            scope = scope.parent
        return scope

    def find_binding(self, name: str) -> Optional[Binding]:
        """Look ``name`` up from this scope outward; ``None`` when unbound."""
        scope: Optional[Scope] = self
        while scope is not None:
            binding = scope.bindings.get(name)
            if binding is not None:
                return binding
            scope = scope.parent
        return None

    def __repr__(self) -> str:
        return f"Scope({self.kind}, names={sorted(self.bindings)})"


@dataclass(frozen=True)
class Node:
    """Immutable syntax node.

    ``start``/``end`` are byte offsets into the original source. Kind-specific
    payload: ``name`` holds an identifier name or a property key, ``value`` a
    literal value, ``operator`` a binary/unary operator and ``text`` the
    replacement text of a placeholder.
    """

    kind: NodeKind
    start: int
    end: int
    location: Location
    children: Tuple["Node", ...] = ()
    name: Optional[str] = None
    value: Any = None
    operator: Optional[str] = None
    text: Optional[str] = None
    scope: Optional[Scope] = field(default=None, compare=False, repr=False)

    @property
    def expression(self) -> "Node":
        return self.children[0]

    @property
    def callee(self) -> "Node":
        return self.children[0]

    @property
    def arguments(self) -> Tuple["Node", ...]:
        if len(self.children) > 1 and self.children[1].kind is NodeKind.ARGUMENTS:
            return self.children[1].children
        return ()

    @property
    def argument_list(self) -> Optional["Node"]:
        if len(self.children) > 1 and self.children[1].kind is NodeKind.ARGUMENTS:
            return self.children[1]
        return None

    @property
    def left(self) -> "Node":
        return self.children[0]

    @property
    def right(self) -> "Node":
        return self.children[1]

    @property
    def operand(self) -> "Node":
        return self.children[0]

    def with_children(self, children: Tuple["Node", ...]) -> "Node":
        return replace(self, children=children)

    def walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed file: root node plus the exact bytes it was parsed from."""

    root: Node
    source: bytes
    filename: str

    def text_of(self, node: Node) -> str:
        return self.source[node.start : node.end].decode("utf-8")


def placeholder(node: Node, text: str, children: Tuple[Node, ...] = ()) -> Node:
    """Return a node that prints as ``text`` followed by ``children`` in place of ``node``."""
    return Node(
        kind=NodeKind.PLACEHOLDER,
        start=node.start,
        end=node.end,
        location=node.location,
        children=children,
        text=text,
        scope=node.scope,
    )


__all__ = [
    "Binding",
    "BindingKind",
    "Node",
    "NodeKind",
    "Scope",
    "SyntaxTree",
    "placeholder",
]
