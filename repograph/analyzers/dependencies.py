"""Dependency analyzer: internal edges and declared-vs-used external packages."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List

from .base import AnalysisContext, Analyzer, relative_path_of, require_graph
from ..models import (
    DependencyAnalysis,
    DependencyEdge,
    DependencyInfo,
    DependencyUsage,
    DependencyUsageLocation,
    ExternalDependency,
)

# Node.js core modules. Checked after the ``node:`` scheme and any subpath are removed.
BUILTIN_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

_DEV_ROLES = {"test", "config"}


def is_builtin_module(name: str) -> bool:
    """Return True for platform built-ins, with or without a ``scheme:`` prefix."""
    bare = name.split(":", 1)[1] if ":" in name else name
    bare = bare.split("/", 1)[0]
    return bare in BUILTIN_MODULES


def build_internal_dependencies(graph: Mapping) -> List[DependencyEdge]:
    """Return one edge per (importer, imported file), aggregating its import records."""
    require_graph(graph)
    edges: List[DependencyEdge] = []
    for node in graph.values():
        for target, records in node.imports.internal.items():
            identifiers = [ident for record in records for ident in record.identifiers]
            edges.append(
                DependencyEdge(
                    from_file=node.relative_path,
                    to_file=relative_path_of(graph, target),
                    import_count=len(records),
                    identifiers=tuple(identifiers),
                )
            )
    return edges


def build_external_dependencies(
    graph: Mapping, declared: DependencyInfo
) -> List[ExternalDependency]:
    """Return every referenced external package with the files that import it."""
    require_graph(graph)
    usage: Dict[str, Dict[str, str]] = {}
    for node in graph.values():
        for package in sorted(node.imports.external):
            usage.setdefault(package, {})[node.relative_path] = node.role

    declared_names = declared.all
    return [
        ExternalDependency(
            name=package,
            used_by=tuple(users),
            is_declared=package in declared_names,
            is_dev_only=all(role in _DEV_ROLES for role in users.values()),
        )
        for package, users in usage.items()
    ]


def analyze_dependencies(graph: Mapping, declared: DependencyInfo) -> DependencyAnalysis:
    """Compare declared dependencies with the external imports found in the graph."""
    require_graph(graph)
    used: Dict[str, None] = {}
    used_in_tests: Dict[str, None] = {}
    used_in_prod: Dict[str, None] = {}

    for node in graph.values():
        for package in sorted(node.imports.external):
            used.setdefault(package, None)
            if node.role == "test":
                used_in_tests.setdefault(package, None)
            else:
                used_in_prod.setdefault(package, None)

    candidates = dict.fromkeys((*declared.production, *declared.development))
    unused = [name for name in candidates if name not in used]

    declared_names = declared.all
    unlisted = [
        name for name in used if name not in declared_names and not is_builtin_module(name)
    ]

    misplaced = [
        name
        for name in declared.production
        if name in used_in_tests and name not in used_in_prod
    ]

    return DependencyAnalysis(
        declared=declared,
        used_production=tuple(used_in_prod),
        used_development=tuple(used_in_tests),
        unused=tuple(unused),
        unlisted=tuple(unlisted),
        misplaced=tuple(misplaced),
    )


def declared_as(package: str, declared: DependencyInfo) -> str:
    if package in declared.production:
        return "production"
    if package in declared.development:
        return "development"
    if package in declared.peer:
        return "peer"
    return "unlisted"


def analyze_detailed_dependency_usage(
    graph: Mapping, declared: DependencyInfo
) -> Dict[str, DependencyUsage]:
    """Per package, every file that imports it and how it is declared."""
    require_graph(graph)
    locations: Dict[str, List[DependencyUsageLocation]] = {}
    for node in graph.values():
        for package in sorted(node.imports.external):
            locations.setdefault(package, []).append(DependencyUsageLocation(file=node.relative_path))

    return {
        package: DependencyUsage(
            package=package,
            declared_as=declared_as(package, declared),
            usage_locations=tuple(items),
        )
        for package, items in locations.items()
    }


class DependencyAnalyzer(Analyzer):
    """Declared-vs-used comparison plus per-package usage details."""

    sections = ("dependencies", "dependencyUsage", "externalDependencies", "internalDependencies")

    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        declared = context.package.dependencies
        return {
            "dependencies": analyze_dependencies(context.graph, declared),
            "dependencyUsage": analyze_detailed_dependency_usage(context.graph, declared),
            "externalDependencies": build_external_dependencies(context.graph, declared),
            "internalDependencies": build_internal_dependencies(context.graph),
        }


__all__ = [
    "BUILTIN_MODULES",
    "DependencyAnalyzer",
    "analyze_dependencies",
    "analyze_detailed_dependency_usage",
    "build_external_dependencies",
    "build_internal_dependencies",
    "declared_as",
    "is_builtin_module",
]
