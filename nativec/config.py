"""Configuration loading for nativec (.nativec.yml plus command-line overrides)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigurationError
from .models import DEFAULT_SYMBOL_PREFIX

CONFIG_FILENAME = ".nativec.yml"
DEFAULT_PLATFORM = "manifest"


@dataclass
class CompilerConfig:
    """Effective settings for one compile run."""

    src: Optional[Path] = None
    dest: Optional[Path] = None
    platform: str = DEFAULT_PLATFORM
    force: bool = False
    debug: bool = False
    symbol_prefix: str = DEFAULT_SYMBOL_PREFIX
    known_globals: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=lambda: [".js"])
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def srcdir(self) -> Path:
        """Directory under ``dest`` that holds rewritten sources and the cache."""
        if self.dest is None:
            raise ConfigurationError("Missing required option --dest")
        return self.dest / "src"

    def validate(self) -> None:
        if self.src is None:
            raise ConfigurationError(
                "Missing required option --src which should specify the directory where files should be compiled"
            )
        if self.dest is None:
            raise ConfigurationError(
                "Missing required option --dest which should specify the directory where files will be generated"
            )
        if not self.src.exists():
            raise ConfigurationError(f"Source path not found: {self.src}")
        if not self.platform:
            raise ConfigurationError("Missing required option --platform")

    def merged(self, overrides: Mapping[str, Any]) -> "CompilerConfig":
        """Return a copy where every non-``None`` override replaces the current value."""
        values = {item.name: getattr(self, item.name) for item in fields(self)}
        for key, value in overrides.items():
            if value is None or key not in values:
                continue
            values[key] = value
        return CompilerConfig(**values)


def load_config(config_path: Path | None, *, search_dir: Path | None = None) -> CompilerConfig:
    """Load settings from ``config_path`` or a ``.nativec.yml`` in ``search_dir``.

    A missing file yields defaults. Relative ``src``/``dest`` entries resolve
    against the directory holding the file.
    """
    config_file = _resolve_config_path(config_path, search_dir)
    if config_file is None or not config_file.exists():
        if config_path is not None:
            raise ConfigurationError(f"Config file not found: {config_path}")
        return CompilerConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file.name} must contain a mapping at the root")

    root = config_file.parent.resolve()
    config = CompilerConfig()
    src = _as_str(data.get("src"))
    dest = _as_str(data.get("dest"))
    if src:
        config.src = root / src
    if dest:
        config.dest = root / dest
    config.platform = _as_str(data.get("platform")) or DEFAULT_PLATFORM
    config.force = _as_bool(data.get("force")) or False
    config.debug = _as_bool(data.get("debug")) or False
    config.symbol_prefix = _as_str(data.get("symbol_prefix")) or DEFAULT_SYMBOL_PREFIX
    config.known_globals = _as_str_list(data.get("known_globals"))
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))
    extensions = _as_str_list(data.get("extensions"))
    if extensions:
        config.extensions = [ext if ext.startswith(".") else f".{ext}" for ext in extensions]
    options = data.get("options")
    if options is not None and not isinstance(options, dict):
        raise ConfigurationError("options must be a mapping of backend settings")
    config.options = dict(options or {})
    return config


def _resolve_config_path(config_path: Path | None, search_dir: Path | None) -> Optional[Path]:
    if config_path is not None:
        config_path = config_path.expanduser()
        if config_path.is_dir():
            return (config_path / CONFIG_FILENAME).resolve()
        return config_path.resolve()
    if search_dir is None:
        return None
    search_dir = search_dir.expanduser()
    if search_dir.is_file():
        search_dir = search_dir.parent
    return (search_dir / CONFIG_FILENAME).resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "CompilerConfig", "DEFAULT_PLATFORM", "load_config"]
