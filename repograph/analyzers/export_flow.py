"""Export flow tracer: how each exported symbol reaches the package's entry points."""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import AbstractSet, Any, Deque, Dict, List, Optional, Set

from .base import AnalysisContext, Analyzer, require_graph
from ..models import ExportFlow, ExportRecord, FileNode

_RELEASE_TAGS = ("internal", "alpha", "beta", "public")


def extract_release_tag(doc: Optional[str]) -> Optional[str]:
    """Return the release tag named in a doc comment (``@internal`` wins over ``@public``)."""
    if not doc:
        return None
    for tag in _RELEASE_TAGS:
        if f"@{tag}" in doc:
            return tag
    return None


def _reexports_from(importer: FileNode, source: str, name: str) -> bool:
    """True when ``importer`` re-exports ``name`` that it takes from ``source``."""
    if not any(export.name == name and export.is_reexport for export in importer.exports):
        return False
    return any(
        record.is_namespace or name in record.identifiers
        for record in importer.imports.internal.get(source, ())
    )


def trace_export_flow(
    graph: Mapping,
    defining_file: str,
    export: ExportRecord,
    entry_files: AbstractSet[str],
    entry_conditions: Optional[Mapping[str, Any]] = None,
) -> ExportFlow:
    """Breadth-first walk from a definition through re-exporting importers.

    Every entry file reached is recorded. The chain is the intermediate files on
    the first (shortest) path to an entry, ordered from the definition outwards.
    """
    name = export.name
    parents: Dict[str, Optional[str]] = {defining_file: None}
    queue: Deque[str] = deque([defining_file])
    public_from: List[str] = []
    chain: Optional[List[str]] = None
    conditions: Dict[str, None] = {}

    while queue:
        current = queue.popleft()
        node = graph[current]
        if current in entry_files:
            public_from.append(node.relative_path)
            for condition in (entry_conditions or {}).get(current, ()):
                conditions.setdefault(condition, None)
            if chain is None:
                chain = _intermediates(graph, parents, current)
        for importer in sorted(node.imported_by):
            if importer in parents or importer not in graph:
                continue
            if _reexports_from(graph[importer], current, name):
                parents[importer] = current
                queue.append(importer)

    return ExportFlow(
        exported_name=name,
        export_kind=export.kind,
        defining_file=graph[defining_file].relative_path,
        re_export_chain=tuple(chain or ()),
        public_from_entry_points=tuple(public_from),
        conditions=tuple(conditions),
        release_tag=extract_release_tag(export.doc),
    )


def _intermediates(graph: Mapping, parents: Mapping[str, Optional[str]], end: str) -> List[str]:
    hops: List[str] = []
    current = parents[end]
    while current is not None and parents[current] is not None:
        hops.append(graph[current].relative_path)
        current = parents[current]
    hops.reverse()
    return hops


def build_export_flows(
    graph: Mapping,
    entry_paths: AbstractSet[str],
    entry_conditions: Optional[Mapping[str, Any]] = None,
) -> Dict[str, ExportFlow]:
    """Trace every original export in the graph, keyed by export name.

    Internal-only symbols are kept with empty entry lists. When two files define
    the same name, a public flow replaces an internal one; otherwise the first
    definition in graph order wins.
    """
    require_graph(graph)
    entry_files = {key for key, node in graph.items() if key in entry_paths or node.role == "entry"}
    flows: Dict[str, ExportFlow] = {}

    for key, node in graph.items():
        for export in node.exports:
            if export.is_reexport:
                continue
            flow = trace_export_flow(graph, key, export, entry_files, entry_conditions)
            existing = flows.get(export.name)
            if existing is None or (flow.is_public and not existing.is_public):
                flows[export.name] = flow
    return flows


def find_original_source(graph: Mapping, file: str, name: str) -> Optional[str]:
    """Follow re-exports of ``name`` from ``file`` back to the defining file."""
    require_graph(graph)
    visited: Set[str] = set()
    pending: List[str] = [file]
    while pending:
        current = pending.pop()
        if current in visited or current not in graph:
            continue
        visited.add(current)
        node = graph[current]
        export = next((item for item in node.exports if item.name == name), None)
        if export is None:
            continue
        if not export.is_reexport:
            return current
        for source, records in reversed(list(node.imports.internal.items())):
            if any(record.is_namespace or name in record.identifiers for record in records):
                pending.append(source)
    return None


class ExportFlowAnalyzer(Analyzer):
    """Export provenance for every definition in the graph."""

    sections = ("exportFlows",)

    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        return {
            "exportFlows": build_export_flows(
                context.graph, context.entry_paths, context.entry_conditions
            )
        }


__all__ = [
    "ExportFlowAnalyzer",
    "build_export_flows",
    "extract_release_tag",
    "find_original_source",
    "trace_export_flow",
]
