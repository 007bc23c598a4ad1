"""Persistent, content-addressed cache of processed source units."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..logging import get_logger
from ..models import SourceUnit

CACHE_FILENAME = ".srccache.json"


@dataclass
class CacheEntry:
    """A persisted ``{sourceHash, sourcefile}`` pair for one normalized file id."""

    normalized_id: str
    content_hash: str
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"sourceHash": self.content_hash, "sourcefile": self.payload}


class SourceCache:
    """Maps normalized file ids to their last content hash and source unit.

    The table is read once when constructed and written at most once by
    :meth:`flush`, and only when a file was recompiled during the run.
    """

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, CacheEntry] = {}
        self._units: Dict[str, SourceUnit] = {}
        self._recompiled = False
        self.logger = get_logger("cache")
        if self._path is not None:
            self._load(self._path)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def dirty(self) -> bool:
        return self._recompiled

    def __contains__(self, normalized_id: object) -> bool:
        return normalized_id in self._entries or normalized_id in self._units

    def lookup(self, normalized_id: str) -> Optional[CacheEntry]:
        return self._entries.get(normalized_id)

    def should_reuse(
        self, entry: Optional[CacheEntry], current_hash: str, output_root: Path
    ) -> bool:
        return self.reusable_unit(entry, current_hash, output_root) is not None

    def reusable_unit(
        self, entry: Optional[CacheEntry], current_hash: str, output_root: Path
    ) -> Optional[SourceUnit]:
        """Return the cached unit when it can stand in for recompiling the file.

        The stored hash must match ``current_hash`` and every artifact the unit
        produced under ``output_root`` must still be intact.
        """
        if entry is None or entry.content_hash != current_hash:
            return None
        try:
            unit = SourceUnit.from_dict(entry.payload)
        except ValueError as exc:
            self.logger.debug("Discarding cache entry %s: %s", entry.normalized_id, exc)
            return None
        if not unit.is_cacheable(output_root):
            self.logger.debug(
                "Cache entry %s has missing or modified artifacts", entry.normalized_id
            )
            return None
        return unit

    def record(self, normalized_id: str, content_hash: str, unit: SourceUnit) -> None:
        """Remember a freshly compiled unit; serialized when the cache is flushed."""
        self._entries.pop(normalized_id, None)
        self._units[normalized_id] = unit
        unit.content_hash = content_hash
        self._recompiled = True

    def prune(self, ids_to_keep: Iterable[str]) -> None:
        keep = set(ids_to_keep)
        for key in [key for key in self._entries if key not in keep]:
            self._entries.pop(key, None)
        for key in [key for key in self._units if key not in keep]:
            self._units.pop(key, None)

    def flush(self) -> bool:
        """Write the table to disk if anything was recompiled; return True when written."""
        if not self._recompiled or self._path is None:
            return False
        table: Dict[str, Dict[str, Any]] = {
            key: entry.to_dict() for key, entry in self._entries.items()
        }
        for key, unit in self._units.items():
            table[key] = {"sourceHash": unit.content_hash, "sourcefile": unit.to_dict()}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(table, indent="\t", sort_keys=True), encoding="utf-8"
        )
        self.logger.debug("Wrote %d cache entries to %s", len(table), self._path)
        self._recompiled = False
        return True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.logger.warning("Ignoring unreadable cache %s: %s", path, exc)
            return
        if not isinstance(data, dict):
            self.logger.warning("Ignoring cache %s: expected a mapping", path)
            return
        for key, raw in data.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            source_hash = raw.get("sourceHash")
            payload = raw.get("sourcefile")
            if not isinstance(source_hash, str) or not isinstance(payload, dict):
                continue
            self._entries[key] = CacheEntry(
                normalized_id=key, content_hash=source_hash, payload=payload
            )
        self._recompiled = False


__all__ = ["CACHE_FILENAME", "CacheEntry", "SourceCache"]
