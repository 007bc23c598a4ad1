"""Tests for the compile-time constant evaluator."""

from __future__ import annotations

import math

import pytest

from nativec.errors import UnresolvedReference, UnsupportedExpression
from nativec.evaluator import BinaryOperator, ConstantEvaluator, EvaluationContext, apply_binary
from nativec.models import Location
from nativec.syntax import NodeKind


def _marker_argument(tree):
    """Return the first argument of the last top-level call statement."""
    statements = [
        node
        for node in tree.root.children
        if node.kind is NodeKind.EXPRESSION_STATEMENT and node.expression.kind is NodeKind.CALL
    ]
    statement = statements[-1]
    return statement.expression.arguments[0]


def _resolve(tree, *, mapping: bool = False):
    evaluator = ConstantEvaluator()
    context = EvaluationContext(filename="app.js", declaration="import", site=Location("app.js", 1, 0))
    argument = _marker_argument(tree)
    if mapping:
        return evaluator.resolve_mapping(argument, context)
    return evaluator.resolve(argument, context)


def test_resolves_literals_arrays_and_objects(parse_js) -> None:
    tree = parse_js('native({name: "Foo", args: [1, "two", [true]], nested: {ok: null}});')
    assert _resolve(tree) == {
        "name": "Foo",
        "args": [1, "two", [True]],
        "nested": {"ok": None},
    }


def test_duplicate_keys_keep_last_value(parse_js) -> None:
    assert _resolve(parse_js("native({a: 1, b: 2, a: 3});")) == {"a": 3, "b": 2}


def test_identifier_resolves_through_scope_chain(parse_js) -> None:
    tree = parse_js(
        """
        var base = "ui";
        var alias = base;
        function setup() {
          package(alias);
        }
        """
    )
    call = next(node for node in tree.root.walk() if node.kind is NodeKind.CALL)
    context = EvaluationContext("app.js", "package", call.location)
    assert ConstantEvaluator().resolve(call.arguments[0], context) == "ui"


def test_unbound_identifier_fails_with_location(parse_js) -> None:
    with pytest.raises(UnresolvedReference) as excinfo:
        _resolve(parse_js("import(missing);"))
    error = excinfo.value
    assert error.name == "missing"
    assert (error.file, error.line, error.column) == ("app.js", 1, 7)


def test_binary_expression_over_bound_variable(parse_js) -> None:
    assert _resolve(parse_js('var w = 10; import(("a" + w));')) == "a10"


def test_binary_expression_with_unbound_variable_names_it(parse_js) -> None:
    with pytest.raises(UnresolvedReference) as excinfo:
        _resolve(parse_js('import(("a" + w));'))
    assert excinfo.value.name == "w"
    assert "import" in str(excinfo.value)


def test_binary_expression_falls_back_to_enclosing_scope(parse_js) -> None:
    tree = parse_js(
        """
        var w = 2;
        if (true) {
          import("v" + w * 3);
        }
        """
    )
    call = next(node for node in tree.root.walk() if node.kind is NodeKind.CALL)
    context = EvaluationContext("app.js", "import", call.location)
    assert ConstantEvaluator().resolve(call.arguments[0], context) == "v6"


def test_binary_expression_only_sees_nearest_declaring_scope(parse_js) -> None:
    tree = parse_js(
        """
        var base = "lib/";
        function load() {
          var ext = ".js";
          import(base + ext);
        }
        """
    )
    call = next(node for node in tree.root.walk() if node.kind is NodeKind.CALL)
    context = EvaluationContext("app.js", "import", call.location)
    with pytest.raises(UnresolvedReference) as excinfo:
        ConstantEvaluator().resolve(call.arguments[0], context)
    assert excinfo.value.name == "base"


def test_short_circuit_skips_unevaluated_branch(parse_js) -> None:
    assert _resolve(parse_js('var on = false; import(on && unknown);')) is False
    assert _resolve(parse_js('var name = ""; import(name || "default");')) == "default"


def test_cyclic_initializers_fail(parse_js) -> None:
    with pytest.raises(UnresolvedReference):
        _resolve(parse_js("var a = b; var b = a; import(a);"))


def test_uninitialized_variable_is_null(parse_js) -> None:
    assert _resolve(parse_js("var later; import(later);")) is None


def test_parameters_are_not_constants(parse_js) -> None:
    tree = parse_js("function f(p) { import(p); }")
    call = next(node for node in tree.root.walk() if node.kind is NodeKind.CALL)
    context = EvaluationContext("app.js", "import", call.location)
    with pytest.raises(UnresolvedReference):
        ConstantEvaluator().resolve(call.arguments[0], context)


def test_runtime_expression_is_unsupported(parse_js) -> None:
    with pytest.raises(UnsupportedExpression):
        _resolve(parse_js("import(compute());"))


def test_resolve_mapping_coerces_arrays(parse_js) -> None:
    assert _resolve(parse_js('native(["a", "b"]);'), mapping=True) == {"0": "a", "1": "b"}


def test_resolve_mapping_rejects_scalars(parse_js) -> None:
    with pytest.raises(UnsupportedExpression):
        _resolve(parse_js('native("scalar");'), mapping=True)


def test_unary_operators(parse_js) -> None:
    assert _resolve(parse_js("import([-1, +'2', !0, ~5]);")) == [-1, 2, True, -6]


@pytest.mark.parametrize(
    ("operator", "left", "right", "expected"),
    [
        (BinaryOperator.ADD, "1", 2, "12"),
        (BinaryOperator.ADD, 1, 2, 3),
        (BinaryOperator.ADD, None, 1, 1),
        (BinaryOperator.ADD, True, 1, 2),
        (BinaryOperator.ADD, [1, 2], "", "1,2"),
        (BinaryOperator.ADD, 0.5, 0.5, 1),
        (BinaryOperator.SUBTRACT, "5", 2, 3),
        (BinaryOperator.MULTIPLY, "3", "4", 12),
        (BinaryOperator.DIVIDE, 7, 2, 3.5),
        (BinaryOperator.DIVIDE, 6, 3, 2),
        (BinaryOperator.REMAINDER, -7, 3, -1),
        (BinaryOperator.EXPONENT, 2, 10, 1024),
        (BinaryOperator.EQUAL, "1", 1, True),
        (BinaryOperator.STRICT_EQUAL, "1", 1, False),
        (BinaryOperator.STRICT_EQUAL, True, 1, False),
        (BinaryOperator.NOT_EQUAL, None, 0, True),
        (BinaryOperator.LESS, "a", "b", True),
        (BinaryOperator.GREATER_EQUAL, "10", 9, True),
        (BinaryOperator.BIT_OR, 5, 2, 7),
        (BinaryOperator.LEFT_SHIFT, 1, 31, -2147483648),
        (BinaryOperator.UNSIGNED_RIGHT_SHIFT, -1, 28, 15),
    ],
)
def test_apply_binary_follows_javascript_semantics(operator, left, right, expected) -> None:
    result = apply_binary(operator, left, right)
    assert result == expected
    assert type(result) is type(expected)


def test_division_by_zero() -> None:
    assert apply_binary(BinaryOperator.DIVIDE, 1, 0) == math.inf
    assert math.isnan(apply_binary(BinaryOperator.DIVIDE, 0, 0))
    assert apply_binary(BinaryOperator.EXPONENT, 0, -1) == math.inf
    assert math.isnan(apply_binary(BinaryOperator.REMAINDER, 5, 0))


def test_array_holes_resolve_to_null(parse_js) -> None:
    assert _resolve(parse_js("native([1,,2]);"), mapping=True) == {"0": 1, "1": None, "2": 2}
    assert _resolve(parse_js("import([,1]);")) == [None, 1]
    assert _resolve(parse_js("import([1, 2,]);")) == [1, 2]


def test_negative_zero_survives_until_division(parse_js) -> None:
    zero = _resolve(parse_js("import(-0);"))
    assert zero == 0 and math.copysign(1.0, zero) < 0
    assert _resolve(parse_js('import("a" + 1/-0);')) == "a-Infinity"
    assert _resolve(parse_js('import("a" + -0);')) == "a0"


def test_one_to_an_infinite_power_is_nan(parse_js) -> None:
    assert _resolve(parse_js('import("a" + (1 ** Infinity));')) == "aNaN"
    assert math.isnan(apply_binary(BinaryOperator.EXPONENT, 1, math.inf))
    assert math.isnan(apply_binary(BinaryOperator.EXPONENT, -1, -math.inf))
    assert math.isnan(apply_binary(BinaryOperator.EXPONENT, 2, math.nan))
    assert apply_binary(BinaryOperator.EXPONENT, math.nan, 0) == 1
