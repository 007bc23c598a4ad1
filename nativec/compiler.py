"""Compilation driver: enumerate, consult the cache, rewrite, hand off to a backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .backends import Backend, load_backend
from .config import CompilerConfig
from .discovery import SourceFile, discover_sources
from .errors import BackendError, ConfigurationError, SourceReadError
from .logging import get_logger
from .models import SourceUnit, digest_bytes
from .rewriter import MarkerRewriter
from .stores import CACHE_FILENAME, SourceCache
from .syntax import JavaScriptParser, render


@dataclass
class CompileResult:
    """Outcome of a compile run."""

    units: List[SourceUnit] = field(default_factory=list)
    compiled: List[str] = field(default_factory=list)
    cached: List[str] = field(default_factory=list)
    changed: Optional[str] = None
    cache_written: bool = False


class Compiler:
    """Coordinates one batch compile of a source tree.

    Files are processed one at a time in enumeration order. The backend only
    sees units once every file has been reused from the cache or rewritten.
    """

    def __init__(
        self,
        config: CompilerConfig,
        *,
        backend: Backend | None = None,
        parser: JavaScriptParser | None = None,
    ) -> None:
        self.config = config
        self._backend = backend
        self.parser = parser or JavaScriptParser()
        self.logger = get_logger("compiler")

    def run(self) -> CompileResult:
        config = self.config
        config.validate()
        assert config.src is not None and config.dest is not None

        sources = self._discover(config.src, config.dest)
        if not sources:
            raise ConfigurationError(f"No source files found at {config.src}")
        self.logger.debug("Discovered %d source files under %s", len(sources), config.src)

        backend = self._backend or load_backend(config.platform, config)
        config.dest.mkdir(parents=True, exist_ok=True)
        srcdir = config.srcdir
        cache = SourceCache(srcdir / CACHE_FILENAME)
        result = CompileResult()

        for source in sources:
            unit = self._process(source, cache)
            result.units.append(unit)
            (result.cached if unit.cached else result.compiled).append(unit.normalized_id)
        cache.prune(unit.normalized_id for unit in result.units)

        for unit in result.units:
            backend.add_source(unit)

        outcome: dict[str, object] = {}

        def _on_generated(error: Optional[BaseException], changed: Optional[str]) -> None:
            outcome["error"] = error
            outcome["changed"] = changed

        backend.generate(_on_generated)
        if "error" not in outcome:
            raise BackendError(f"Backend '{config.platform}' never reported completion")
        error = outcome["error"]
        if error is not None:
            raise BackendError(f"Backend '{config.platform}' failed: {error}") from error  # type: ignore[misc]

        changed = outcome.get("changed")
        result.changed = str(changed) if changed else None
        if result.changed:
            # Only a run that generated something may rewrite the cache table.
            result.cache_written = cache.flush()
        self.logger.info(
            "Compiled %d file(s), reused %d from cache",
            len(result.compiled),
            len(result.cached),
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    def _discover(self, src: Path, dest: Path) -> List[SourceFile]:
        sources = discover_sources(
            src,
            extensions=self.config.extensions,
            exclude_paths=self.config.exclude_paths,
        )
        dest_root = dest.resolve()
        sources = [source for source in sources if not source.path.resolve().is_relative_to(dest_root)]

        # An id names the output file, the cache entry and the symbol namespace.
        seen: Dict[str, SourceFile] = {}
        for source in sources:
            other = seen.setdefault(source.normalized_id, source)
            if other is not source:
                raise ConfigurationError(
                    f"Source files {other.relative_path} and {source.relative_path} "
                    f"both compile to id '{source.normalized_id}'; rename one of them"
                )
        return sources

    def _process(self, source: SourceFile, cache: SourceCache) -> SourceUnit:
        config = self.config
        assert config.dest is not None
        try:
            raw = source.path.read_bytes()
        except OSError as exc:
            raise SourceReadError(str(source.path), exc.strerror or str(exc)) from exc
        content_hash = digest_bytes(raw)

        if not config.force:
            entry = cache.lookup(source.normalized_id)
            cached = cache.reusable_unit(entry, content_hash, config.dest)
            if cached is not None:
                cached.cached = True
                self.logger.debug("Found unchanged source file %s", source.relative_path)
                return cached

        self.logger.debug("Compiling %s", source.relative_path)
        unit = SourceUnit(
            source.relative_path,
            source.normalized_id,
            content_hash,
            symbol_prefix=config.symbol_prefix,
        )
        tree = self.parser.parse(raw, str(source.path))
        rewriter = MarkerRewriter(unit, known_globals=set(config.known_globals))
        output = render(rewriter.rewrite(tree))

        output_path = config.srcdir / f"{source.normalized_id}.js"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output, encoding="utf-8")
        unit.finish(output)
        unit.record_artifact(config.dest, output_path)
        self.logger.debug("Wrote output JS at %s", output_path)

        cache.record(source.normalized_id, content_hash, unit)
        return unit


__all__ = ["CompileResult", "Compiler"]
