"""Codegen backend implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List

from ..config import CompilerConfig
from ..errors import ConfigurationError
from .base import Backend, GenerateCallback
from .manifest import ManifestBackend

_ENTRY_POINT_GROUP = "nativec.backends"

BackendFactory = Callable[[CompilerConfig], Backend]

_BUILTIN_FACTORIES: Dict[str, BackendFactory] = {
    "manifest": ManifestBackend,
}


def available_backends() -> List[str]:
    """Return the names of built-in and installed backends, sorted."""
    names = set(_BUILTIN_FACTORIES)
    names.update(entry.name.lower() for entry in _iter_entry_points())
    return sorted(names)


def load_backend(name: str, config: CompilerConfig) -> Backend:
    """Instantiate the backend registered as ``name`` for ``config``."""
    key = name.lower()
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is None:
        for entry in _iter_entry_points():
            if entry.name.lower() != key:
                continue
            try:
                factory = entry.load()
            except Exception as exc:  # pragma: no cover - broken plugin
                raise ConfigurationError(f"Failed to load backend entry point '{name}': {exc}") from exc
            break
    if factory is None:
        raise ConfigurationError(
            f"Unknown platform '{name}'. Available: {', '.join(available_backends())}"
        )
    instance = factory(config)
    if not isinstance(instance, Backend):
        raise ConfigurationError(f"Backend factory for '{name}' did not return a Backend instance")
    return instance


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "Backend",
    "GenerateCallback",
    "ManifestBackend",
    "available_backends",
    "load_backend",
]
