"""Tree-sitter powered JavaScript parser producing the nativec node model."""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import tree_sitter_javascript
from tree_sitter import Language, Node as TSNode, Parser

from ..errors import ParseFailure
from ..jsvalues import normalize_number, number_to_string
from ..models import Location
from .nodes import Binding, BindingKind, Node, NodeKind, Scope, SyntaxTree

# Marker names that JavaScript reserves as keywords. `class(...)` in particular
# is not valid syntax, so the keyword is masked with a same-length identifier
# before the real parse and restored on the resulting identifier node.
_MASKED_KEYWORDS = frozenset({"class", "import", "static", "package"})
_MASK_CHAR = ord("$")

_FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
_DECLARATION_FUNCTION_TYPES = frozenset(
    {"function_declaration", "generator_function_declaration"}
)

_ESCAPE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[0-7]{1,3}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_LINE_CONTINUATIONS = frozenset({"\n", "\r\n", "\r", "\u2028", "\u2029"})
_SURROGATE_PAIR = re.compile("[\ud800-\udbff][\udc00-\udfff]")
_MAX_CODE_POINT = 0x10FFFF

_LANGUAGE: Optional[Language] = None


def _javascript() -> Language:
    global _LANGUAGE
    if _LANGUAGE is None:
        _LANGUAGE = Language(tree_sitter_javascript.language())
    return _LANGUAGE


class JavaScriptParser:
    """Parses JavaScript source into a :class:`SyntaxTree` with lexical scopes."""

    def __init__(self) -> None:
        self._parser: Optional[Parser] = None

    def parse(self, source: bytes, filename: str) -> SyntaxTree:
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseFailure(
                f"Source is not valid UTF-8 ({exc.reason})", Location(filename, 1, 0)
            ) from exc

        parser = self._get_parser()
        masked, restored = self._mask_marker_keywords(parser, source)
        tree = parser.parse(masked)
        if tree.root_node.has_error:
            raise self._syntax_error(tree.root_node, filename)

        builder = _TreeBuilder(source, filename, restored)
        return SyntaxTree(root=builder.build(tree.root_node), source=source, filename=filename)

    def _get_parser(self) -> Parser:
        if self._parser is None:
            self._parser = Parser(_javascript())
        return self._parser

    @staticmethod
    def _mask_marker_keywords(parser: Parser, source: bytes) -> Tuple[bytes, Dict[int, str]]:
        leaves = [leaf for leaf in _iter_leaves(parser.parse(source).root_node) if leaf.type != "comment"]
        masked = bytearray(source)
        restored: Dict[int, str] = {}
        for leaf, following in zip(leaves, leaves[1:]):
            if following.type != "(":
                continue
            word = source[leaf.start_byte : leaf.end_byte].decode("utf-8", errors="ignore")
            if word in _MASKED_KEYWORDS and leaf.type == word:
                masked[leaf.start_byte] = _MASK_CHAR
                restored[leaf.start_byte] = word
        return bytes(masked), restored

    @staticmethod
    def _syntax_error(root: TSNode, filename: str) -> ParseFailure:
        offender = _first_error(root) or root
        location = _location(offender, filename)
        if offender.is_missing:
            return ParseFailure(f"Missing {offender.type!r}", location)
        return ParseFailure("Unexpected token", location)


def _iter_leaves(node: TSNode) -> Iterator[TSNode]:
    if node.child_count == 0:
        yield node
        return
    for child in node.children:
        yield from _iter_leaves(child)


def _first_error(node: TSNode) -> Optional[TSNode]:
    if node.is_error or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def _location(node: TSNode, filename: str) -> Location:
    row, column = node.start_point
    return Location(file=filename, line=row + 1, column=column)


def _semantic_children(node: TSNode) -> List[TSNode]:
    return [child for child in node.named_children if child.type != "comment"]


class _TreeBuilder:
    """Converts one tree-sitter tree, declaring bindings into scopes as it goes."""

    def __init__(self, source: bytes, filename: str, restored: Dict[int, str]) -> None:
        self._source = source
        self._filename = filename
        self._restored = restored
        self._handlers: Dict[str, Callable[[TSNode, Scope], Node]] = {
            "program": self._program,
            "expression_statement": self._expression_statement,
            "empty_statement": self._leaf(NodeKind.EMPTY_STATEMENT),
            "call_expression": self._call,
            "new_expression": self._new,
            "arguments": self._arguments,
            "array": self._array,
            "object": self._object,
            "identifier": self._identifier,
            "import": self._identifier,
            "shorthand_property_identifier": self._identifier,
            "binary_expression": self._binary,
            "unary_expression": self._unary,
            "parenthesized_expression": self._parenthesized,
            "string": self._string,
            "template_string": self._template_string,
            "number": self._number,
            "true": self._constant(True),
            "false": self._constant(False),
            "null": self._constant(None),
            "undefined": self._constant(None),
            "variable_declaration": self._variable_declaration,
            "lexical_declaration": self._variable_declaration,
            "class_declaration": self._class_declaration,
            "statement_block": self._block,
            "for_statement": self._block,
            "for_in_statement": self._for_in,
            "catch_clause": self._catch,
            "import_statement": self._import,
        }
        for function_type in _FUNCTION_TYPES:
            self._handlers[function_type] = self._function

    def build(self, root: TSNode) -> Node:
        return self._convert(root, Scope("program"))

    # ------------------------------------------------------------------
    # Dispatch helpers

    def _convert(self, node: TSNode, scope: Scope) -> Node:
        handler = self._handlers.get(node.type)
        if handler is None:
            return self._generic(node, scope)
        return handler(node, scope)

    def _make(
        self,
        kind: NodeKind,
        node: TSNode,
        scope: Scope,
        children: Tuple[Node, ...] = (),
        **payload: object,
    ) -> Node:
        return Node(
            kind=kind,
            start=node.start_byte,
            end=node.end_byte,
            location=_location(node, self._filename),
            children=children,
            scope=scope,
            **payload,  # type: ignore[arg-type]
        )

    def _children(self, node: TSNode, scope: Scope) -> Tuple[Node, ...]:
        return tuple(self._convert(child, scope) for child in _semantic_children(node))

    def _generic(self, node: TSNode, scope: Scope) -> Node:
        return self._make(NodeKind.OTHER, node, scope, self._children(node, scope))

    def _text(self, node: TSNode) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _decode(self, node: TSNode, body: str) -> str:
        try:
            return _decode_string(body)
        except ValueError as exc:
            raise ParseFailure(str(exc), _location(node, self._filename)) from exc

    def _leaf(self, kind: NodeKind) -> Callable[[TSNode, Scope], Node]:
        def build(node: TSNode, scope: Scope) -> Node:
            return self._make(kind, node, scope)

        return build

    def _constant(self, value: object) -> Callable[[TSNode, Scope], Node]:
        def build(node: TSNode, scope: Scope) -> Node:
            return self._make(NodeKind.LITERAL, node, scope, value=value)

        return build

    def _declare(
        self, scope: Scope, name_node: TSNode, kind: BindingKind, init: Optional[Node] = None
    ) -> None:
        name = self._restored.get(name_node.start_byte, self._text(name_node))
        scope.declare(
            Binding(name=name, kind=kind, init=init, location=_location(name_node, self._filename))
        )

    def _declare_pattern(
        self, scope: Scope, pattern: Optional[TSNode], kind: BindingKind, init: Optional[Node] = None
    ) -> None:
        if pattern is None:
            return
        if pattern.type in {"identifier", "shorthand_property_identifier_pattern"}:
            self._declare(scope, pattern, kind, init)
            return
        # Destructured names have no single initializer expression.
        if pattern.type in {"assignment_pattern", "object_assignment_pattern"}:
            self._declare_pattern(scope, pattern.child_by_field_name("left"), kind)
        elif pattern.type == "pair_pattern":
            self._declare_pattern(scope, pattern.child_by_field_name("value"), kind)
        elif pattern.type in {"rest_pattern", "object_pattern", "array_pattern"}:
            for child in _semantic_children(pattern):
                self._declare_pattern(scope, child, kind)

    # ------------------------------------------------------------------
    # Statements

    def _program(self, node: TSNode, scope: Scope) -> Node:
        return self._make(NodeKind.PROGRAM, node, scope, self._children(node, scope))

    def _expression_statement(self, node: TSNode, scope: Scope) -> Node:
        return self._make(
            NodeKind.EXPRESSION_STATEMENT, node, scope, self._children(node, scope)
        )

    def _block(self, node: TSNode, scope: Scope) -> Node:
        return self._generic(node, Scope("block", scope))

    def _for_in(self, node: TSNode, scope: Scope) -> Node:
        inner = Scope("block", scope)
        kind_node = node.child_by_field_name("kind")
        if kind_node is not None:
            keyword = self._text(kind_node)
            target = scope.function_scope() if keyword == "var" else inner
            self._declare_pattern(target, node.child_by_field_name("left"), BindingKind(keyword))
        return self._generic(node, inner)

    def _catch(self, node: TSNode, scope: Scope) -> Node:
        inner = Scope("block", scope)
        self._declare_pattern(inner, node.child_by_field_name("parameter"), BindingKind.CATCH)
        children = []
        for child in _semantic_children(node):
            if child.type == "statement_block":
                children.append(self._generic(child, inner))
            else:
                children.append(self._convert(child, inner))
        return self._make(NodeKind.OTHER, node, scope, tuple(children))

    def _variable_declaration(self, node: TSNode, scope: Scope) -> Node:
        keyword = self._text(node.children[0]) if node.children else "var"
        kind = BindingKind(keyword) if keyword in {"let", "const"} else BindingKind.VAR
        target = scope.function_scope() if kind is BindingKind.VAR else scope
        children = []
        for child in _semantic_children(node):
            if child.type != "variable_declarator":
                children.append(self._convert(child, scope))
                continue
            name_node = child.child_by_field_name("name")
            value_node = child.child_by_field_name("value")
            value = self._convert(value_node, scope) if value_node is not None else None
            if name_node is not None and name_node.type == "identifier":
                self._declare(target, name_node, kind, value)
            else:
                self._declare_pattern(target, name_node, kind)
            parts = []
            if name_node is not None:
                parts.append(self._convert(name_node, scope))
            if value is not None:
                parts.append(value)
            children.append(self._make(NodeKind.OTHER, child, scope, tuple(parts)))
        return self._make(NodeKind.OTHER, node, scope, tuple(children))

    def _class_declaration(self, node: TSNode, scope: Scope) -> Node:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            self._declare(scope, name_node, BindingKind.CLASS)
        return self._generic(node, scope)

    def _import(self, node: TSNode, scope: Scope) -> Node:
        for clause in _semantic_children(node):
            if clause.type != "import_clause":
                continue
            for item in _semantic_children(clause):
                if item.type == "identifier":
                    self._declare(scope, item, BindingKind.IMPORT)
                elif item.type == "namespace_import":
                    for name_node in _semantic_children(item):
                        self._declare(scope, name_node, BindingKind.IMPORT)
                elif item.type == "named_imports":
                    for specifier in _semantic_children(item):
                        local = specifier.child_by_field_name(
                            "alias"
                        ) or specifier.child_by_field_name("name")
                        if local is not None and local.type == "identifier":
                            self._declare(scope, local, BindingKind.IMPORT)
        return self._generic(node, scope)

    def _function(self, node: TSNode, scope: Scope) -> Node:
        inner = Scope("function", scope)
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.type == "identifier":
            if node.type in _DECLARATION_FUNCTION_TYPES:
                self._declare(scope, name_node, BindingKind.FUNCTION)
            else:
                self._declare(inner, name_node, BindingKind.FUNCTION)

        parameter = node.child_by_field_name("parameter")
        if parameter is not None:
            self._declare_pattern(inner, parameter, BindingKind.PARAMETER)
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            for item in _semantic_children(parameters):
                self._declare_pattern(inner, item, BindingKind.PARAMETER)

        body = node.child_by_field_name("body")
        children = []
        for child in _semantic_children(node):
            if child == name_node and node.type == "method_definition":
                children.append(self._convert(child, scope))
            elif child == body and child.type == "statement_block":
                # Parameters and the body share one function scope.
                children.append(self._generic(child, inner))
            else:
                children.append(self._convert(child, inner))
        return self._make(NodeKind.OTHER, node, scope, tuple(children))

    # ------------------------------------------------------------------
    # Expressions

    def _call(self, node: TSNode, scope: Scope) -> Node:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None or arguments.type != "arguments":
            return self._generic(node, scope)
        if any(child.type in {"optional_chain", "?."} for child in node.children):
            # `f?.(...)` only runs when `f` exists, so it is never a native call.
            return self._generic(node, scope)
        return self._make(
            NodeKind.CALL,
            node,
            scope,
            (self._convert(function, scope), self._arguments(arguments, scope)),
        )

    def _new(self, node: TSNode, scope: Scope) -> Node:
        constructor = node.child_by_field_name("constructor")
        if constructor is None:
            return self._generic(node, scope)
        children = [self._convert(constructor, scope)]
        arguments = node.child_by_field_name("arguments")
        if arguments is not None:
            children.append(self._arguments(arguments, scope))
        return self._make(NodeKind.NEW, node, scope, tuple(children))

    def _arguments(self, node: TSNode, scope: Scope) -> Node:
        return self._make(NodeKind.ARGUMENTS, node, scope, self._children(node, scope))

    def _array(self, node: TSNode, scope: Scope) -> Node:
        elements: List[Node] = []
        expecting = True
        for child in node.children:
            if child.type in {"[", "]", "comment"}:
                continue
            if child.type == ",":
                if expecting:
                    # An elided element (`[1,,2]`) reads as null.
                    elements.append(self._hole(child, scope))
                expecting = True
                continue
            elements.append(self._convert(child, scope))
            expecting = False
        return self._make(NodeKind.ARRAY, node, scope, tuple(elements))

    def _hole(self, comma: TSNode, scope: Scope) -> Node:
        return Node(
            kind=NodeKind.LITERAL,
            start=comma.start_byte,
            end=comma.start_byte,
            location=_location(comma, self._filename),
            value=None,
            scope=scope,
        )

    def _object(self, node: TSNode, scope: Scope) -> Node:
        properties = []
        for child in _semantic_children(node):
            if child.type == "shorthand_property_identifier":
                identifier = self._identifier(child, scope)
                properties.append(
                    self._make(NodeKind.PROPERTY, child, scope, (identifier,), name=identifier.name)
                )
                continue
            if child.type == "pair":
                key = self._property_key(child.child_by_field_name("key"))
                value_node = child.child_by_field_name("value")
                if key is not None and value_node is not None:
                    properties.append(
                        self._make(
                            NodeKind.PROPERTY,
                            child,
                            scope,
                            (self._convert(value_node, scope),),
                            name=key,
                        )
                    )
                    continue
            properties.append(self._convert(child, scope))
        return self._make(NodeKind.OBJECT, node, scope, tuple(properties))

    def _property_key(self, key: Optional[TSNode]) -> Optional[str]:
        if key is None:
            return None
        if key.type == "property_identifier":
            return self._text(key)
        if key.type == "string":
            return self._decode(key, self._text(key)[1:-1])
        if key.type == "number":
            return number_to_string(_parse_number(self._text(key)))
        return None

    def _identifier(self, node: TSNode, scope: Scope) -> Node:
        name = self._restored.get(node.start_byte, self._text(node))
        return self._make(NodeKind.IDENTIFIER, node, scope, name=name)

    def _binary(self, node: TSNode, scope: Scope) -> Node:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        operator = node.child_by_field_name("operator")
        if left is None or right is None or operator is None:
            return self._generic(node, scope)
        return self._make(
            NodeKind.BINARY,
            node,
            scope,
            (self._convert(left, scope), self._convert(right, scope)),
            operator=operator.type,
        )

    def _unary(self, node: TSNode, scope: Scope) -> Node:
        argument = node.child_by_field_name("argument")
        operator = node.child_by_field_name("operator")
        if argument is None or operator is None:
            return self._generic(node, scope)
        return self._make(
            NodeKind.UNARY,
            node,
            scope,
            (self._convert(argument, scope),),
            operator=operator.type,
        )

    def _parenthesized(self, node: TSNode, scope: Scope) -> Node:
        inner = _semantic_children(node)
        if len(inner) != 1:
            return self._generic(node, scope)
        return self._convert(inner[0], scope)

    def _string(self, node: TSNode, scope: Scope) -> Node:
        return self._make(
            NodeKind.LITERAL, node, scope, value=self._decode(node, self._text(node)[1:-1])
        )

    def _template_string(self, node: TSNode, scope: Scope) -> Node:
        if any(child.type == "template_substitution" for child in node.named_children):
            return self._generic(node, scope)
        body = self._text(node)[1:-1]
        return self._make(NodeKind.LITERAL, node, scope, value=self._decode(node, body))

    def _number(self, node: TSNode, scope: Scope) -> Node:
        return self._make(NodeKind.LITERAL, node, scope, value=_parse_number(self._text(node)))


def _decode_string(body: str) -> str:
    """Decode the escape sequences of a JavaScript string literal body.

    Well-formed ``\\uXXXX`` surrogate pairs are joined; a lone surrogate is
    kept as is. Raises ``ValueError`` for a ``\\u{...}`` escape beyond U+10FFFF.
    """

    def replace(match: "re.Match[str]") -> str:
        escape = match.group(1)
        if escape.startswith("u{"):
            code_point = int(escape[2:-1], 16)
            if code_point > _MAX_CODE_POINT:
                raise ValueError(f"Undefined Unicode code-point \\{escape}")
            return chr(code_point)
        if escape[0] in "ux" and len(escape) > 1:
            return chr(int(escape[1:], 16))
        if escape in _LINE_CONTINUATIONS:
            return ""
        if escape[0] in "01234567":
            return chr(int(escape, 8))
        return _SIMPLE_ESCAPES.get(escape, escape)

    return _SURROGATE_PAIR.sub(_join_surrogates, _ESCAPE.sub(replace, body))


def _join_surrogates(match: "re.Match[str]") -> str:
    high, low = match.group(0)
    return chr(0x10000 + ((ord(high) - 0xD800) << 10) + (ord(low) - 0xDC00))


def _parse_number(text: str) -> object:
    literal = text.replace("_", "")
    if literal.endswith("n"):
        literal = literal[:-1]
    lowered = literal.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        return int(lowered, 0)
    if len(literal) > 1 and literal[0] == "0" and literal.isdigit():
        # Legacy octal unless a digit rules it out.
        return int(literal, 8) if set(literal) <= set("01234567") else int(literal, 10)
    return normalize_number(float(literal))


__all__ = ["JavaScriptParser"]
