"""Static evaluation of marker arguments into compile-time values."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Set

from . import jsvalues
from .errors import UnresolvedReference, UnsupportedExpression
from .models import Location
from .syntax.nodes import Binding, BindingKind, Node, NodeKind, Scope

_GLOBAL_CONSTANTS: Dict[str, Any] = {"NaN": math.nan, "Infinity": math.inf}
_UNINITIALIZED_KINDS = frozenset({BindingKind.VAR, BindingKind.LET, BindingKind.CONST})


class BinaryOperator(str, Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    REMAINDER = "%"
    EXPONENT = "**"
    EQUAL = "=="
    NOT_EQUAL = "!="
    STRICT_EQUAL = "==="
    STRICT_NOT_EQUAL = "!=="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    BIT_AND = "&"
    BIT_OR = "|"
    BIT_XOR = "^"
    LEFT_SHIFT = "<<"
    RIGHT_SHIFT = ">>"
    UNSIGNED_RIGHT_SHIFT = ">>>"
    LOGICAL_AND = "&&"
    LOGICAL_OR = "||"
    NULLISH = "??"


_SHORT_CIRCUIT = frozenset(
    {BinaryOperator.LOGICAL_AND, BinaryOperator.LOGICAL_OR, BinaryOperator.NULLISH}
)


@dataclass(frozen=True)
class EvaluationContext:
    """Where a value is being resolved from, for diagnostics."""

    filename: str
    declaration: str
    site: Location

    def describe(self) -> str:
        return f"{self.declaration} at {self.site}"


class _BindingTable(Mapping[str, Any]):
    """Name -> value view over one scope, resolving initializers on first use."""

    def __init__(self, scope: Optional[Scope], resolve: Callable[[Binding], Any]) -> None:
        self._bindings: Dict[str, Binding] = dict(scope.bindings) if scope else {}
        self._resolve = resolve
        self._values: Dict[str, Any] = {}

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            self._values[name] = self._resolve(self._bindings[name])
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)


class ConstantEvaluator:
    """Resolves literal, array, object, identifier and operator nodes to values.

    Anything that is not knowable at compile time is an error: markers vanish
    from the rewritten output, so there is no runtime fallback.
    """

    def __init__(self) -> None:
        self._resolving: Set[int] = set()

    def resolve(self, node: Node, context: EvaluationContext) -> Any:
        kind = node.kind
        if kind is NodeKind.LITERAL:
            return node.value
        if kind is NodeKind.ARRAY:
            return [self.resolve(child, context) for child in node.children]
        if kind is NodeKind.OBJECT:
            return self._object(node, context)
        if kind is NodeKind.IDENTIFIER:
            return self._identifier(node, context)
        if kind is NodeKind.BINARY:
            table = _BindingTable(_table_scope(node.scope), lambda b: self._binding(b, node, context))
            return self._operation(node, table, context)
        if kind is NodeKind.UNARY:
            return _apply_unary(node, self.resolve(node.operand, context), context)
        raise UnsupportedExpression(
            f"Can't determine a compile-time value for this expression in {context.describe()}",
            node.location,
        )

    def resolve_mapping(self, node: Node, context: EvaluationContext) -> Dict[str, Any]:
        """Resolve ``node`` and coerce the result to a key -> value mapping."""
        value = self.resolve(node, context)
        if isinstance(value, dict):
            return value
        if isinstance(value, list):
            return {str(index): item for index, item in enumerate(value)}
        raise UnsupportedExpression(
            f"{context.declaration} expects an object, got {jsvalues.to_string(value)!r}",
            node.location,
        )

    # ------------------------------------------------------------------
    # Structural resolution

    def _object(self, node: Node, context: EvaluationContext) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for prop in node.children:
            if prop.kind is not NodeKind.PROPERTY or prop.name is None:
                raise UnsupportedExpression(
                    f"Only plain key: value properties are allowed in {context.declaration}",
                    prop.location,
                )
            # Later duplicates win, as in an object literal.
            result[prop.name] = self.resolve(prop.children[0], context)
        return result

    def _identifier(self, node: Node, context: EvaluationContext) -> Any:
        name = node.name or ""
        binding = node.scope.find_binding(name) if node.scope else None
        if binding is None:
            if name in _GLOBAL_CONSTANTS:
                return _GLOBAL_CONSTANTS[name]
            raise UnresolvedReference(name, node.location, site=context.describe())
        return self._binding(binding, node, context)

    def _binding(self, binding: Binding, use: Node, context: EvaluationContext) -> Any:
        if binding.init is None:
            if binding.kind in _UNINITIALIZED_KINDS:
                return None
            raise UnresolvedReference(
                binding.name,
                use.location,
                site=context.describe(),
                reason=f"{binding.kind.value} '{binding.name}' is not a compile-time constant",
            )
        key = id(binding)
        if key in self._resolving:
            raise UnresolvedReference(
                binding.name,
                use.location,
                site=context.describe(),
                reason=f"'{binding.name}' is defined in terms of itself",
            )
        self._resolving.add(key)
        try:
            return self.resolve(binding.init, context)
        finally:
            self._resolving.discard(key)

    # ------------------------------------------------------------------
    # Operator expressions

    def _operation(self, node: Node, table: Mapping[str, Any], context: EvaluationContext) -> Any:
        if node.kind is NodeKind.BINARY:
            try:
                operator = BinaryOperator(node.operator)
            except ValueError:
                raise UnsupportedExpression(
                    f"Operator {node.operator!r} can't be evaluated at compile time",
                    node.location,
                ) from None
            left = self._operation(node.left, table, context)
            if operator in _SHORT_CIRCUIT:
                return _short_circuit(
                    operator, left, lambda: self._operation(node.right, table, context)
                )
            return apply_binary(operator, left, self._operation(node.right, table, context))
        if node.kind is NodeKind.UNARY:
            return _apply_unary(node, self._operation(node.operand, table, context), context)
        if node.kind is NodeKind.IDENTIFIER:
            name = node.name or ""
            if name in table:
                return table[name]
            if name in _GLOBAL_CONSTANTS and (node.scope is None or node.scope.find_binding(name) is None):
                return _GLOBAL_CONSTANTS[name]
            raise UnresolvedReference(
                name,
                node.location,
                site=context.describe(),
                reason=f"can't seem to determine value of '{name}'",
            )
        return self.resolve(node, context)


def _table_scope(scope: Optional[Scope]) -> Optional[Scope]:
    """The innermost scope, or its parent when the innermost declares nothing."""
    if scope is None:
        return None
    if not scope.bindings and scope.parent is not None:
        return scope.parent
    return scope


def _short_circuit(operator: BinaryOperator, left: Any, right: Callable[[], Any]) -> Any:
    if operator is BinaryOperator.LOGICAL_AND:
        return right() if jsvalues.truthy(left) else left
    if operator is BinaryOperator.LOGICAL_OR:
        return left if jsvalues.truthy(left) else right()
    return right() if left is None else left


def _apply_unary(node: Node, value: Any, context: EvaluationContext) -> Any:
    operator = node.operator
    if operator == "-":
        return jsvalues.normalize_number(-float(jsvalues.to_number(value)))
    if operator == "+":
        return jsvalues.to_number(value)
    if operator == "!":
        return not jsvalues.truthy(value)
    if operator == "~":
        return ~jsvalues.to_int32(value)
    raise UnsupportedExpression(
        f"Operator {operator!r} can't be evaluated at compile time in {context.describe()}",
        node.location,
    )


def apply_binary(operator: BinaryOperator, left: Any, right: Any) -> Any:
    """Apply a non-short-circuit operator with JavaScript semantics."""
    if operator is BinaryOperator.ADD:
        left, right = jsvalues.to_primitive(left), jsvalues.to_primitive(right)
        if isinstance(left, str) or isinstance(right, str):
            return jsvalues.to_string(left) + jsvalues.to_string(right)
        return jsvalues.normalize_number(jsvalues.to_number(left) + jsvalues.to_number(right))
    if operator is BinaryOperator.EQUAL:
        return jsvalues.loose_equals(left, right)
    if operator is BinaryOperator.NOT_EQUAL:
        return not jsvalues.loose_equals(left, right)
    if operator is BinaryOperator.STRICT_EQUAL:
        return jsvalues.strict_equals(left, right)
    if operator is BinaryOperator.STRICT_NOT_EQUAL:
        return not jsvalues.strict_equals(left, right)
    if operator in _RELATIONAL:
        return _compare(operator, left, right)
    if operator in _BITWISE:
        return _BITWISE[operator](left, right)
    return jsvalues.normalize_number(
        _ARITHMETIC[operator](jsvalues.to_number(left), jsvalues.to_number(right))
    )


def _compare(operator: BinaryOperator, left: Any, right: Any) -> bool:
    left, right = jsvalues.to_primitive(left), jsvalues.to_primitive(right)
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = jsvalues.to_number(left), jsvalues.to_number(right)
        if math.isnan(left) or math.isnan(right):
            return False
    if operator is BinaryOperator.LESS:
        return left < right
    if operator is BinaryOperator.LESS_EQUAL:
        return left <= right
    if operator is BinaryOperator.GREATER:
        return left > right
    return left >= right


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1, right)
    return left / right


def _remainder(left: float, right: float) -> float:
    if right == 0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def _power(left: float, right: float) -> float:
    if math.isnan(right) or (abs(left) == 1 and math.isinf(right)):
        return math.nan
    if left == 0 and right < 0:
        odd = float(right).is_integer() and int(right) % 2 == 1
        return math.copysign(math.inf, left) if odd else math.inf
    try:
        return math.pow(left, right)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


_ARITHMETIC: Dict[BinaryOperator, Callable[[Any, Any], Any]] = {
    BinaryOperator.SUBTRACT: lambda a, b: a - b,
    BinaryOperator.MULTIPLY: lambda a, b: a * b,
    BinaryOperator.DIVIDE: _divide,
    BinaryOperator.REMAINDER: _remainder,
    BinaryOperator.EXPONENT: _power,
}

_RELATIONAL = frozenset(
    {
        BinaryOperator.LESS,
        BinaryOperator.LESS_EQUAL,
        BinaryOperator.GREATER,
        BinaryOperator.GREATER_EQUAL,
    }
)

_BITWISE: Dict[BinaryOperator, Callable[[Any, Any], int]] = {
    BinaryOperator.BIT_AND: lambda a, b: jsvalues.to_int32(jsvalues.to_int32(a) & jsvalues.to_int32(b)),
    BinaryOperator.BIT_OR: lambda a, b: jsvalues.to_int32(jsvalues.to_int32(a) | jsvalues.to_int32(b)),
    BinaryOperator.BIT_XOR: lambda a, b: jsvalues.to_int32(jsvalues.to_int32(a) ^ jsvalues.to_int32(b)),
    BinaryOperator.LEFT_SHIFT: lambda a, b: jsvalues.to_int32(
        jsvalues.to_int32(a) << (jsvalues.to_uint32(b) & 31)
    ),
    BinaryOperator.RIGHT_SHIFT: lambda a, b: jsvalues.to_int32(a) >> (jsvalues.to_uint32(b) & 31),
    BinaryOperator.UNSIGNED_RIGHT_SHIFT: lambda a, b: jsvalues.to_uint32(a)
    >> (jsvalues.to_uint32(b) & 31),
}


__all__ = [
    "BinaryOperator",
    "ConstantEvaluator",
    "EvaluationContext",
    "apply_binary",
]
