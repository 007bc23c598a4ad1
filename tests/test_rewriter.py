"""Tests for marker extraction and native call rewriting."""

from __future__ import annotations

import pytest

from nativec.errors import CompileError, UnresolvedReference
from nativec.models import SourceUnit
from nativec.rewriter import MarkerKind, MarkerRewriter
from nativec.syntax import render


def _rewrite(parse_js, code: str, **kwargs):
    unit = SourceUnit("app.js", "app")
    tree = parse_js(code)
    rewritten = MarkerRewriter(unit, **kwargs).rewrite(tree)
    return unit, render(rewritten), tree


def test_native_marker_is_extracted_and_removed(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, 'native({foo:"bar"});\nvar x = 1;')
    assert unit.declarations.natives == [{"foo": "bar"}]
    assert output == ";\nvar x = 1;"
    assert "native" not in output


def test_every_marker_kind_is_recorded(parse_js) -> None:
    unit, output, _ = _rewrite(
        parse_js,
        """
        package("com.example.app");
        class({name: "Button", native: "UIButton"});
        static("UIScreen");
        import("Foundation/Foundation.h");
        import("Foundation/Foundation.h");
        """,
    )
    decl = unit.declarations
    assert decl.package == "com.example.app"
    assert decl.classes == [{"name": "Button", "native": "UIButton"}]
    assert decl.statics == ["UIScreen"]
    assert decl.imports == ["Foundation/Foundation.h", "Foundation/Foundation.h"]
    assert output.split() == [";"] * 5


def test_marker_without_arguments_is_left_alone(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "native();")
    assert output == "native();"
    assert unit.declarations.natives == []
    assert unit.declarations.call_sites == []


@pytest.mark.parametrize(
    "code",
    [
        "function native(){ return 1; } native();",
        "function native(o){ return o; } native({a: 1});",
        "var native = function(v) {}; native('x');",
        "function wrap(native) { native({a: 1}); }",
    ],
)
def test_shadowed_marker_names_are_ordinary_code(parse_js, code: str) -> None:
    unit, output, _ = _rewrite(parse_js, code)
    assert output == code
    decl = unit.declarations
    assert decl.natives == [] and decl.statics == [] and decl.package is None
    assert decl.call_sites == []


def test_new_of_unbound_class_becomes_placeholder(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "var a = new Foo(1, 2);\nvar b = new Foo();")
    first, second = unit.declarations.instantiations
    assert first.class_name == second.class_name == "Foo"
    assert first.symbol != second.symbol
    assert output == f"var a = {first.symbol}();\nvar b = {second.symbol}();"
    assert first.location.line == 1 and second.location.line == 2


def test_new_of_bound_class_is_untouched(parse_js) -> None:
    code = "function Foo() {}\nvar a = new Foo();"
    unit, output, _ = _rewrite(parse_js, code)
    assert output == code
    assert unit.declarations.instantiations == []


def test_unbound_call_keeps_argument_text(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, 'bar(x+1, "s");')
    (site,) = unit.declarations.call_sites
    assert site.function_name == "bar"
    assert site.arguments == ["x+1", '"s"']
    assert output == f'{site.symbol}(x+1, "s");'


def test_nested_native_calls_number_outer_first(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "outer(inner(1), new Thing(2));")
    outer, inner = unit.declarations.call_sites
    (thing,) = unit.declarations.instantiations
    assert outer.function_name == "outer" and inner.function_name == "inner"
    assert outer.symbol == "__native_app_call_1"
    assert inner.symbol == "__native_app_call_2"
    assert thing.symbol == "__native_app_new_3"
    assert outer.arguments == ["__native_app_call_2(1)", "__native_app_new_3()"]
    assert output == "__native_app_call_1(__native_app_call_2(1), __native_app_new_3());"


def test_member_and_bound_calls_are_untouched(parse_js) -> None:
    code = "function local(v) { return v; }\nconsole.log(local(1));"
    unit, output, _ = _rewrite(parse_js, code)
    assert output == code
    assert unit.declarations.call_sites == []


def test_known_globals_are_not_rewritten(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "require('x'); setTimeout(run, 1);", known_globals={"require"})
    assert output.startswith("require('x');")
    assert [site.function_name for site in unit.declarations.call_sites] == ["setTimeout"]


def test_markers_inside_functions_are_extracted(parse_js) -> None:
    unit, output, _ = _rewrite(
        parse_js,
        """
        function setup() {
          var suffix = "Kit";
          import("UI" + suffix);
          if (ready) native({view: "main"});
        }
        """,
    )
    assert unit.declarations.imports == ["UIKit"]
    assert unit.declarations.natives == [{"view": "main"}]
    assert "if (ready) ;" in output


def test_unresolved_marker_argument_aborts(parse_js) -> None:
    with pytest.raises(UnresolvedReference) as excinfo:
        _rewrite(parse_js, "var ok = 1;\nstatic(missing);")
    assert excinfo.value.line == 2


def test_second_package_declaration_is_an_error(parse_js) -> None:
    with pytest.raises(CompileError):
        _rewrite(parse_js, 'package("a");\npackage("b");')


def test_rewrite_does_not_mutate_input_tree(parse_js) -> None:
    code = 'native({a: 1});\nfoo(1);\n'
    unit, output, tree = _rewrite(parse_js, code)
    assert render(tree) == code
    assert output != code


def test_rewrite_is_deterministic(parse_js) -> None:
    code = "a(new B(), c(d()));\nnew E();"
    _, first, _ = _rewrite(parse_js, code)
    _, second, _ = _rewrite(parse_js, code)
    assert first == second


def test_marker_kind_lookup() -> None:
    assert MarkerKind.from_name("native") is MarkerKind.NATIVE
    assert MarkerKind.from_name("natives") is None
    assert MarkerKind.from_name(None) is None


def test_optional_calls_are_not_rewritten(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "foo?.(1);")
    assert output == "foo?.(1);"
    assert unit.declarations.call_sites == []


def test_arguments_of_optional_calls_are_still_rewritten(parse_js) -> None:
    unit, output, _ = _rewrite(parse_js, "foo?.(bar(1));")
    assert output == "foo?.(__native_app_call_1(1));"
    assert [site.function_name for site in unit.declarations.call_sites] == ["bar"]
