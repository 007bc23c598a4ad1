"""Exception hierarchy for the nativec compiler frontend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .models import Location


class NativecError(RuntimeError):
    """Root of every error raised by nativec."""


class ConfigurationError(NativecError):
    """Raised when required compiler input is missing or invalid."""


class SourceReadError(NativecError):
    """Raised when a source file cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Couldn't read source file {path}: {reason}")
        self.path = path


class BackendError(NativecError):
    """Raised when the codegen backend reports a failure for the batch."""


class SourceUnitFrozen(NativecError):
    """Raised when declarations are added to a finished source unit."""


class CompileError(NativecError):
    """A fatal error for a single source file, carrying its location."""

    def __init__(self, message: str, location: Optional["Location"] = None) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format())

    @property
    def file(self) -> Optional[str]:
        return self.location.file if self.location else None

    @property
    def line(self) -> Optional[int]:
        return self.location.line if self.location else None

    @property
    def column(self) -> Optional[int]:
        return self.location.column if self.location else None

    def _format(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} at {self.location}"


class UnresolvedReference(CompileError):
    """Raised when a name used by a marker argument has no discoverable binding."""

    def __init__(
        self,
        name: str,
        location: Optional["Location"] = None,
        *,
        site: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.name = name
        self.site = site
        detail = reason or f"Couldn't find variable named: {name}"
        if site:
            detail = f"{detail} (while resolving {site})"
        super().__init__(detail, location)


class UnsupportedExpression(CompileError):
    """Raised when a marker argument is not a compile-time constant."""


class ParseFailure(CompileError):
    """Raised when the parser cannot produce a syntax tree for a file."""


__all__ = [
    "BackendError",
    "CompileError",
    "ConfigurationError",
    "NativecError",
    "ParseFailure",
    "SourceReadError",
    "SourceUnitFrozen",
    "UnresolvedReference",
    "UnsupportedExpression",
]
