"""Tests for source enumeration."""

from __future__ import annotations

from pathlib import Path

import pytest

from nativec.discovery import discover_sources, normalize_id


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.mark.parametrize(
    ("relative", "expected"),
    [
        ("app.js", "app"),
        ("views/main view.js", "views_main_view"),
        ("lib/my-module.js", "lib_my_module"),
        ("lib\\win.js", "lib_win"),
        ("data.json", "data.json"),
    ],
)
def test_normalize_id(relative: str, expected: str) -> None:
    assert normalize_id(relative) == expected


def test_discover_sources_is_sorted_and_filtered(tmp_path: Path) -> None:
    _write(tmp_path / "b.js")
    _write(tmp_path / "a.js")
    _write(tmp_path / "lib" / "util.js")
    _write(tmp_path / "README.md")
    _write(tmp_path / "node_modules" / "dep" / "index.js")
    _write(tmp_path / ".git" / "hooks.js")

    sources = discover_sources(tmp_path)

    assert [source.relative_path for source in sources] == ["a.js", "b.js", "lib/util.js"]
    assert [source.normalized_id for source in sources] == ["a", "b", "lib_util"]
    assert all(source.path.is_absolute() for source in sources)


def test_discover_sources_honours_exclude_patterns(tmp_path: Path) -> None:
    _write(tmp_path / "app.js")
    _write(tmp_path / "app.min.js")
    _write(tmp_path / "vendor" / "lib.js")
    _write(tmp_path / "gen" / "out.js")

    sources = discover_sources(tmp_path, exclude_paths=["*.min.js", "vendor", "gen/*"])

    assert [source.relative_path for source in sources] == ["app.js"]


def test_discover_sources_uses_configured_extensions(tmp_path: Path) -> None:
    _write(tmp_path / "a.js")
    _write(tmp_path / "b.JSX")

    sources = discover_sources(tmp_path, extensions=[".jsx"])

    assert [source.relative_path for source in sources] == ["b.JSX"]


def test_single_file_source(tmp_path: Path) -> None:
    target = tmp_path / "main.js"
    _write(target)

    (source,) = discover_sources(target)

    assert source.path == target
    assert source.relative_path == "main.js"
    assert source.normalized_id == "main"
