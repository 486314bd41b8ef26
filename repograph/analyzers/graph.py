"""Graph algorithms over the module graph: cycles, unused exports and file classes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import AbstractSet, Any, Dict, Iterator, List, Set, Tuple

from .base import AnalysisContext, Analyzer, require_graph
from ..models import AnalysisInsights, MostImportedFile, UnusedExport, is_namespace_identifier

_ORPHAN_EXEMPT_ROLES = {"entry", "test", "config"}
_DONE = object()


def find_circular_dependencies(graph: Mapping) -> List[List[str]]:
    """Report one cycle per back edge found by a depth-first walk.

    Each cycle is the slice of the current DFS path from the first occurrence
    of the revisited file to the file that closes the loop, in traversal order.
    Every file is tried as a root so disconnected components are covered.
    """
    require_graph(graph)
    cycles: List[List[str]] = []
    visited: Set[str] = set()

    for root in graph:
        if root in visited:
            continue
        visited.add(root)
        path: List[str] = [root]
        position: Dict[str, int] = {root: 0}
        stack: List[Iterator[str]] = [iter(graph[root].imports.internal)]

        while stack:
            target = next(stack[-1], _DONE)
            if target is _DONE:
                stack.pop()
                del position[path.pop()]
                continue
            if target not in graph:
                continue
            if target in position:
                cycle = path[position[target]:]
                cycles.append([graph[key].relative_path for key in cycle])
            elif target not in visited:
                visited.add(target)
                position[target] = len(path)
                path.append(target)
                stack.append(iter(graph[target].imports.internal))

    return cycles


def build_imported_identifier_index(graph: Mapping) -> Dict[str, Set[str]]:
    """Map each imported file to every identifier other files import from it.

    A namespace import counts as importing every export of the target.
    """
    require_graph(graph)
    index: Dict[str, Set[str]] = {}
    for node in graph.values():
        for target, records in node.imports.internal.items():
            names = index.setdefault(target, set())
            for record in records:
                if record.is_namespace and target in graph:
                    names.update(export.name for export in graph[target].exports)
                names.update(
                    identifier
                    for identifier in record.identifiers
                    if not is_namespace_identifier(identifier)
                )
    return index


def find_unused_exports(graph: Mapping, entry_paths: AbstractSet[str]) -> List[UnusedExport]:
    """Return original exports that no other file imports by name.

    Entry files and barrels are exempt. A file whose ``default`` is imported
    anywhere counts all of its exports as used.
    """
    require_graph(graph)
    index = build_imported_identifier_index(graph)
    unused: List[UnusedExport] = []

    for key, node in graph.items():
        if key in entry_paths or node.role == "barrel":
            continue
        used = index.get(key, set())
        for export in node.exports:
            if export.is_reexport:
                continue
            if export.name not in used and "default" not in used:
                unused.append(
                    UnusedExport(file=node.relative_path, export=export.name, kind=export.kind)
                )
    return unused


def find_barrel_files(graph: Mapping) -> List[str]:
    require_graph(graph)
    return [node.relative_path for node in graph.values() if node.role == "barrel"]


def find_orphan_files(graph: Mapping, entry_paths: AbstractSet[str]) -> List[str]:
    """Files nothing imports that are neither entry points, tests nor config."""
    require_graph(graph)
    return [
        node.relative_path
        for key, node in graph.items()
        if not node.imported_by
        and key not in entry_paths
        and node.role not in _ORPHAN_EXEMPT_ROLES
    ]


def find_type_only_files(graph: Mapping) -> List[str]:
    """Files whose every export is a type, an interface or a re-export."""
    require_graph(graph)
    type_only: List[str] = []
    for node in graph.values():
        if not node.exports:
            continue
        has_value_export = any(
            not export.is_type_kind and not export.is_reexport for export in node.exports
        )
        if not has_value_export:
            type_only.append(node.relative_path)
    return type_only


def find_most_imported_files(graph: Mapping, limit: int = 10) -> List[MostImportedFile]:
    """Files ranked by inbound references; ties are ordered by relative path."""
    require_graph(graph)
    ranked = sorted(
        (
            MostImportedFile(file=node.relative_path, imported_by_count=len(node.imported_by))
            for node in graph.values()
            if node.imported_by
        ),
        key=lambda item: (-item.imported_by_count, item.file),
    )
    return ranked[: max(limit, 0)]


def find_largest_files(graph: Mapping, limit: int = 10) -> List[str]:
    """Files ranked by export count; ties are ordered by relative path."""
    require_graph(graph)
    ranked = sorted(graph.values(), key=lambda node: (-len(node.exports), node.relative_path))
    return [node.relative_path for node in ranked[: max(limit, 0)]]


def build_insights(
    graph: Mapping,
    entry_paths: AbstractSet[str],
    most_imported_limit: int = 10,
) -> AnalysisInsights:
    """Run every graph classification and bundle the results."""
    cycles: Tuple[Tuple[str, ...], ...] = tuple(
        tuple(cycle) for cycle in find_circular_dependencies(graph)
    )
    return AnalysisInsights(
        unused_exports=tuple(find_unused_exports(graph, entry_paths)),
        circular_dependencies=cycles,
        barrel_files=tuple(find_barrel_files(graph)),
        largest_files=tuple(find_largest_files(graph)),
        most_imported=tuple(find_most_imported_files(graph, most_imported_limit)),
        orphan_files=tuple(find_orphan_files(graph, entry_paths)),
        type_only_files=tuple(find_type_only_files(graph)),
    )


class GraphAnalyzer(Analyzer):
    """Cycles, unused exports and barrel/orphan/type-only/most-imported files."""

    sections = ("insights",)

    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        return {
            "insights": build_insights(
                context.graph,
                context.entry_paths,
                most_imported_limit=context.most_imported_limit,
            )
        }


__all__ = [
    "GraphAnalyzer",
    "build_imported_identifier_index",
    "build_insights",
    "find_barrel_files",
    "find_circular_dependencies",
    "find_largest_files",
    "find_most_imported_files",
    "find_orphan_files",
    "find_type_only_files",
    "find_unused_exports",
]
