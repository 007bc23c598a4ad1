"""Source enumeration and file identity helpers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".idea",
    ".vscode",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

_INVALID_ID_CHARS = re.compile(r"[\s\-/]")
_SOURCE_SUFFIX = re.compile(r"\.js$")


@dataclass(frozen=True)
class SourceFile:
    """An input file and the identity it is compiled and cached under."""

    path: Path
    relative_path: str
    normalized_id: str


def normalize_id(relative_path: str) -> str:
    """Turn a source-relative path into the id used for cache keys and symbols."""
    posix = relative_path.replace("\\", "/").lstrip("/")
    return _SOURCE_SUFFIX.sub("", _INVALID_ID_CHARS.sub("_", posix))


def discover_sources(
    src: Path,
    *,
    extensions: Sequence[str] = (".js",),
    exclude_paths: Sequence[str] = (),
) -> List[SourceFile]:
    """Return input files under ``src`` in a stable, sorted order.

    ``src`` may be a single file, which is returned regardless of its suffix.
    """
    if src.is_file():
        relative = src.name
        return [SourceFile(path=src, relative_path=relative, normalized_id=normalize_id(relative))]

    root = src.resolve()
    suffixes = {ext.lower() for ext in extensions}
    files: List[SourceFile] = []
    for path in _iter_files(root, exclude_paths):
        if suffixes and path.suffix.lower() not in suffixes:
            continue
        relative = path.relative_to(root).as_posix()
        files.append(SourceFile(path=path, relative_path=relative, normalized_id=normalize_id(relative)))
    return files


def _excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    for pattern in patterns:
        if fnmatchcase(rel_path, pattern):
            return True
        if "/" not in pattern and any(fnmatchcase(part, pattern) for part in rel_path.split("/")):
            return True
    return False


def _iter_files(root: Path, exclude_paths: Sequence[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _excluded(rel_path, exclude_paths):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _excluded(rel_path, exclude_paths):
                continue
            yield current_dir / filename


__all__ = ["SourceFile", "discover_sources", "normalize_id"]
