from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Callable, Iterator

import pytest

from nativec.syntax import JavaScriptParser, SyntaxTree
from tests._fixtures.source_tree import SourceTreeBuilder


@pytest.fixture
def source_tree(tmp_path: Path) -> SourceTreeBuilder:
    """Provide a source tree builder rooted at the pytest tmp_path."""
    return SourceTreeBuilder(tmp_path)


@pytest.fixture
def parse_js() -> Callable[..., SyntaxTree]:
    """Parse a dedented JavaScript snippet as ``app.js``."""
    parser = JavaScriptParser()

    def _parse(code: str, filename: str = "app.js") -> SyntaxTree:
        source = textwrap.dedent(code).lstrip("\n")
        return parser.parse(source.encode("utf-8"), filename)

    return _parse


@pytest.fixture(autouse=True)
def reset_nativec_logger() -> Iterator[None]:
    """Undo handlers installed by CLI runs so caplog keeps seeing records."""
    yield
    logger = logging.getLogger("nativec")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
