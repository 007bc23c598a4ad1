"""Core data models shared across nativec components."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import CompileError, SourceUnitFrozen

_FORMAT_VERSION = 1
_IDENTIFIER_UNSAFE = re.compile(r"[^A-Za-z0-9_$]")

DEFAULT_SYMBOL_PREFIX = "__native"


@dataclass(frozen=True)
class Location:
    """Position of a node in a source file (1-based line, 0-based column)."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file} on {self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Location":
        return cls(
            file=str(payload["file"]),
            line=int(payload["line"]),
            column=int(payload["column"]),
        )


@dataclass
class Instantiation:
    """A `new Name(...)` site rewritten to a generated symbol."""

    symbol: str
    class_name: str
    location: Location


@dataclass
class CallSite:
    """An unbound `name(...)` call rewritten to a generated symbol."""

    symbol: str
    function_name: str
    arguments: List[str]
    location: Location


@dataclass
class Artifact:
    """A file under the output root that a unit caused to be written."""

    path: str
    digest: str


@dataclass
class Declarations:
    """Structured declarations extracted from one source file, in source order."""

    package: Optional[Any] = None
    classes: List[Any] = field(default_factory=list)
    statics: List[Any] = field(default_factory=list)
    natives: List[Dict[str, Any]] = field(default_factory=list)
    imports: List[Any] = field(default_factory=list)
    instantiations: List[Instantiation] = field(default_factory=list)
    call_sites: List[CallSite] = field(default_factory=list)


def digest_bytes(data: bytes) -> str:
    """Return the content digest used for cache keys and artifacts."""
    return hashlib.sha256(data).hexdigest()


def digest_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class SourceUnit:
    """Per-file accumulator of native binding declarations.

    The rewriter is the only writer while a file is being processed. Once
    :meth:`finish` has been called the declarations are frozen; artifacts may
    still be registered afterwards since backends write their output later.
    """

    def __init__(
        self,
        original_path: str,
        normalized_id: str,
        content_hash: str = "",
        *,
        symbol_prefix: str = DEFAULT_SYMBOL_PREFIX,
    ) -> None:
        self.original_path = original_path
        self.normalized_id = normalized_id
        self.content_hash = content_hash
        self.symbol_prefix = symbol_prefix
        self.declarations = Declarations()
        self.artifacts: List[Artifact] = []
        self.cached = False
        self.output: Optional[str] = None
        self._finished = False
        self._symbol_counter = 0

    # ------------------------------------------------------------------
    # Declarations

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def namespace(self) -> str:
        """Identifier-safe form of the normalized id used in generated symbols."""
        return _IDENTIFIER_UNSAFE.sub("_", self.normalized_id)

    def process_package(self, value: Any, location: Location) -> None:
        self._ensure_open()
        if self.declarations.package is not None:
            raise CompileError(
                f"package already declared as {self.declarations.package!r}", location
            )
        self.declarations.package = value

    def process_class(self, value: Any, location: Location) -> None:
        self._ensure_open()
        self.declarations.classes.append(value)

    def process_static(self, value: Any, location: Location) -> None:
        self._ensure_open()
        self.declarations.statics.append(value)

    def process_native(self, value: Dict[str, Any], location: Location) -> None:
        self._ensure_open()
        self.declarations.natives.append(value)

    def process_import(self, value: Any, location: Location) -> None:
        # Repeated imports are kept; backends may depend on their position.
        self._ensure_open()
        self.declarations.imports.append(value)

    def process_new_class(self, class_name: str, location: Location) -> str:
        self._ensure_open()
        symbol = self._next_symbol("new")
        self.declarations.instantiations.append(
            Instantiation(symbol=symbol, class_name=class_name, location=location)
        )
        return symbol

    def process_function(
        self, function_name: str, arguments: List[str], location: Location
    ) -> str:
        self._ensure_open()
        symbol = self._next_symbol("call")
        self.declarations.call_sites.append(
            CallSite(
                symbol=symbol,
                function_name=function_name,
                arguments=list(arguments),
                location=location,
            )
        )
        return symbol

    def finish(self, output: str) -> None:
        """Freeze the unit once its rewritten source text is known."""
        self.output = output
        self._finished = True

    # ------------------------------------------------------------------
    # Artifacts and cache validity

    def record_artifact(self, output_root: Path, path: Path) -> Artifact:
        """Remember that ``path`` (under ``output_root``) was written for this unit."""
        relative = path.resolve().relative_to(output_root.resolve()).as_posix()
        artifact = Artifact(path=relative, digest=digest_file(path))
        self.artifacts = [item for item in self.artifacts if item.path != relative]
        self.artifacts.append(artifact)
        return artifact

    def is_cacheable(self, output_root: Path) -> bool:
        """Return True when every artifact this unit produced is still intact."""
        if not self._finished:
            return False
        for artifact in self.artifacts:
            target = output_root / artifact.path
            if not target.is_file():
                return False
            if digest_file(target) != artifact.digest:
                return False
        return True

    # ------------------------------------------------------------------
    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        decl = self.declarations
        return {
            "format": _FORMAT_VERSION,
            "path": self.original_path,
            "id": self.normalized_id,
            "hash": self.content_hash,
            "symbolPrefix": self.symbol_prefix,
            "finished": self._finished,
            "symbolCounter": self._symbol_counter,
            "package": decl.package,
            "classes": list(decl.classes),
            "statics": list(decl.statics),
            "natives": list(decl.natives),
            "imports": list(decl.imports),
            "instantiations": [
                {
                    "symbol": item.symbol,
                    "className": item.class_name,
                    "location": item.location.to_dict(),
                }
                for item in decl.instantiations
            ],
            "callSites": [
                {
                    "symbol": item.symbol,
                    "functionName": item.function_name,
                    "arguments": list(item.arguments),
                    "location": item.location.to_dict(),
                }
                for item in decl.call_sites
            ],
            "artifacts": [
                {"path": item.path, "digest": item.digest} for item in self.artifacts
            ],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SourceUnit":
        """Rebuild a unit from :meth:`to_dict` output.

        Raises ``ValueError`` for payloads written by another format version or
        missing required keys; callers treat that as a cache miss.
        """
        if not isinstance(payload, dict) or payload.get("format") != _FORMAT_VERSION:
            raise ValueError("unsupported source unit format")
        try:
            unit = cls(
                str(payload["path"]),
                str(payload["id"]),
                str(payload["hash"]),
                symbol_prefix=str(payload.get("symbolPrefix", DEFAULT_SYMBOL_PREFIX)),
            )
            decl = unit.declarations
            decl.package = payload.get("package")
            decl.classes = list(payload.get("classes", []))
            decl.statics = list(payload.get("statics", []))
            decl.natives = [dict(item) for item in payload.get("natives", [])]
            decl.imports = list(payload.get("imports", []))
            decl.instantiations = [
                Instantiation(
                    symbol=str(item["symbol"]),
                    class_name=str(item["className"]),
                    location=Location.from_dict(item["location"]),
                )
                for item in payload.get("instantiations", [])
            ]
            decl.call_sites = [
                CallSite(
                    symbol=str(item["symbol"]),
                    function_name=str(item["functionName"]),
                    arguments=[str(arg) for arg in item["arguments"]],
                    location=Location.from_dict(item["location"]),
                )
                for item in payload.get("callSites", [])
            ]
            unit.artifacts = [
                Artifact(path=str(item["path"]), digest=str(item["digest"]))
                for item in payload.get("artifacts", [])
            ]
            unit._symbol_counter = int(payload.get("symbolCounter", 0))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"malformed source unit payload: {exc}") from exc
        unit._finished = bool(payload.get("finished", False))
        return unit

    # ------------------------------------------------------------------
    # Internal helpers

    def _ensure_open(self) -> None:
        if self._finished:
            raise SourceUnitFrozen(
                f"source unit {self.normalized_id} is finished; declarations are read-only"
            )

    def _next_symbol(self, kind: str) -> str:
        self._symbol_counter += 1
        return f"{self.symbol_prefix}_{self.namespace}_{kind}_{self._symbol_counter}"

    def __repr__(self) -> str:
        return (
            f"SourceUnit(id={self.normalized_id!r}, path={self.original_path!r}, "
            f"cached={self.cached})"
        )


__all__ = [
    "Artifact",
    "CallSite",
    "Declarations",
    "DEFAULT_SYMBOL_PREFIX",
    "Instantiation",
    "Location",
    "SourceUnit",
    "digest_bytes",
    "digest_file",
]
