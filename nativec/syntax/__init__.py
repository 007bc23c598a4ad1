"""Syntax tree model, JavaScript parser and printer."""

from .nodes import Binding, BindingKind, Node, NodeKind, Scope, SyntaxTree, placeholder
from .parser import JavaScriptParser
from .printer import render, render_node

__all__ = [
    "Binding",
    "BindingKind",
    "JavaScriptParser",
    "Node",
    "NodeKind",
    "Scope",
    "SyntaxTree",
    "placeholder",
    "render",
    "render_node",
]
