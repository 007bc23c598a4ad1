"""Base classes for per-platform codegen backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..config import CompilerConfig
from ..models import SourceUnit

GenerateCallback = Callable[[Optional[BaseException], Optional[str]], None]


class Backend(ABC):
    """Contract for backends that turn source units into platform glue code."""

    name = "backend"

    def __init__(self, config: CompilerConfig) -> None:
        self.config = config

    @abstractmethod
    def add_source(self, unit: SourceUnit) -> None:
        """Receive one processed or cached unit, in enumeration order."""

    @abstractmethod
    def generate(self, callback: GenerateCallback) -> None:
        """Emit output for every unit added so far.

        ``callback(error, changed)`` is invoked exactly once. ``changed`` names
        what was (re)generated and is empty when nothing had to be written.
        """
