"""Base classes for analyzer plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Sequence, Tuple

from ..models import ArchitectureLayer, ModuleGraph, PackageConfig


@dataclass(frozen=True)
class AnalysisContext:
    """Everything an analyzer may read during a run. Nothing in it is mutated."""

    graph: ModuleGraph
    package: PackageConfig
    entry_paths: FrozenSet[str] = frozenset()
    entry_conditions: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    manifest: Mapping[str, Any] = field(default_factory=dict)
    most_imported_limit: int = 10
    layers: Optional[Sequence[ArchitectureLayer]] = None


class Analyzer(ABC):
    """Contract for analyzers that derive one section of the repository analysis."""

    #: Section names this analyzer contributes to the final report.
    sections: Tuple[str, ...] = ()

    def supports(self, context: AnalysisContext) -> bool:
        """Return True when this analyzer should run for the repository."""
        return True

    @abstractmethod
    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        """Return a mapping of section name to result object."""


def require_graph(graph: object) -> ModuleGraph | Mapping:
    """Reject graphs that are not mappings; these are caller bugs, not bad data."""
    if graph is None:
        raise TypeError("module graph is required, got None")
    if not isinstance(graph, Mapping):
        raise TypeError(f"module graph must be a mapping, got {type(graph).__name__}")
    return graph


def relative_path_of(graph: Mapping, key: str) -> str:
    node = graph.get(key)
    return node.relative_path if node is not None else key


__all__ = ["AnalysisContext", "Analyzer", "relative_path_of", "require_graph"]
