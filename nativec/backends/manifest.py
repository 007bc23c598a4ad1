"""Reference backend that writes each unit's declarations as JSON manifests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from ..config import CompilerConfig
from ..logging import get_logger
from ..models import SourceUnit
from .base import Backend, GenerateCallback

_INDEX_FILENAME = "index.json"


class ManifestBackend(Backend):
    """Writes ``<dest>/<manifest_dir>/<id>.json`` per recompiled unit plus an index."""

    name = "manifest"

    def __init__(self, config: CompilerConfig) -> None:
        super().__init__(config)
        self.logger = get_logger("backends.manifest")
        self._units: List[SourceUnit] = []

    @property
    def output_root(self) -> Path:
        assert self.config.dest is not None
        return self.config.dest

    @property
    def manifest_dir(self) -> Path:
        return self.output_root / str(self.config.options.get("manifest_dir", "manifest"))

    def add_source(self, unit: SourceUnit) -> None:
        self._units.append(unit)

    def generate(self, callback: GenerateCallback) -> None:
        changed = [unit for unit in self._units if not unit.cached]
        if not changed:
            self.logger.debug("All %d units cached; nothing to generate", len(self._units))
            callback(None, None)
            return
        try:
            self.manifest_dir.mkdir(parents=True, exist_ok=True)
            for unit in changed:
                path = self.manifest_dir / f"{unit.normalized_id}.json"
                path.write_text(_dump(_unit_manifest(unit)), encoding="utf-8")
                unit.record_artifact(self.output_root, path)
                self.logger.debug("Wrote manifest %s", path)
            index_path = self.manifest_dir / _INDEX_FILENAME
            index = {
                "units": [
                    {"id": unit.normalized_id, "path": unit.original_path, "cached": unit.cached}
                    for unit in self._units
                ]
            }
            index_path.write_text(_dump(index), encoding="utf-8")
        except OSError as exc:
            callback(exc, None)
            return
        callback(None, str(index_path))


def _unit_manifest(unit: SourceUnit) -> Dict[str, Any]:
    decl = unit.declarations
    return {
        "id": unit.normalized_id,
        "source": unit.original_path,
        "package": decl.package,
        "classes": decl.classes,
        "statics": decl.statics,
        "natives": decl.natives,
        "imports": decl.imports,
        "instantiations": [
            {"symbol": item.symbol, "className": item.class_name, "line": item.location.line}
            for item in decl.instantiations
        ],
        "callSites": [
            {
                "symbol": item.symbol,
                "functionName": item.function_name,
                "arguments": item.arguments,
                "line": item.location.line,
            }
            for item in decl.call_sites
        ],
    }


def _dump(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


__all__ = ["ManifestBackend"]
