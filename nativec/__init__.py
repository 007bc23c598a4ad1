"""Compiler frontend that extracts native binding markers from JavaScript sources."""

from .compiler import CompileResult, Compiler
from .config import CompilerConfig, load_config
from .errors import (
    BackendError,
    CompileError,
    ConfigurationError,
    NativecError,
    ParseFailure,
    UnresolvedReference,
)
from .models import SourceUnit

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "CompileError",
    "CompileResult",
    "Compiler",
    "CompilerConfig",
    "ConfigurationError",
    "NativecError",
    "ParseFailure",
    "SourceUnit",
    "UnresolvedReference",
    "load_config",
]
