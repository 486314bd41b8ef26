"""Architecture detector: repository pattern, layer assignment and layer violations."""

from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from .base import AnalysisContext, Analyzer, require_graph
from ..models import ArchitectureAnalysis, ArchitectureLayer, LayerViolation

DEFAULT_LAYERS: Tuple[ArchitectureLayer, ...] = (
    ArchitectureLayer(
        name="presentation",
        path_patterns=("**/components/**", "**/pages/**", "**/views/**", "**/ui/**"),
        allowed_dependency_layers=("domain", "infrastructure", "shared"),
        description="UI layer - components, pages, views",
    ),
    ArchitectureLayer(
        name="domain",
        path_patterns=("**/domain/**", "**/models/**", "**/entities/**", "**/core/**"),
        allowed_dependency_layers=("shared",),
        description="Business logic - domain models, entities",
    ),
    ArchitectureLayer(
        name="infrastructure",
        path_patterns=("**/services/**", "**/api/**", "**/repositories/**", "**/adapters/**"),
        allowed_dependency_layers=("domain", "shared"),
        description="External services - APIs, repositories",
    ),
    ArchitectureLayer(
        name="shared",
        path_patterns=("**/utils/**", "**/helpers/**", "**/lib/**", "**/types/**", "**/common/**"),
        allowed_dependency_layers=(),
        description="Shared utilities - types, helpers",
    ),
)

PATTERN_DESCRIPTIONS: Dict[str, str] = {
    "layered": (
        "The codebase follows a layered architecture with distinct layers for "
        "presentation, domain, infrastructure, and shared utilities."
    ),
    "feature-based": (
        "The codebase is organized by features/modules, with each feature containing "
        "its own components, services, and types."
    ),
    "flat": "The codebase has a flat structure with minimal directory nesting.",
    "monorepo": "The codebase is a monorepo with multiple packages or applications.",
    "unknown": "The architecture pattern could not be automatically detected.",
}

_FLAT_MAX_DEPTH = 3


def normalise_path(path: str) -> str:
    """Lower-case, forward-slash form used by every path heuristic here."""
    normalised = path.replace("\\", "/").lower()
    while normalised.startswith("./"):
        normalised = normalised[2:]
    return normalised.lstrip("/")


@lru_cache(maxsize=256)
def compile_pattern(glob: str) -> Pattern[str]:
    """Translate a layer glob into an anchored, case-insensitive regex.

    ``**/`` matches zero or more directories, ``**`` any characters, ``*`` any
    characters except ``/`` and ``?`` a single non-separator character.
    """
    parts: List[str] = []
    index = 0
    while index < len(glob):
        if glob.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif glob.startswith("**", index):
            parts.append(".*")
            index += 2
        elif glob[index] == "*":
            parts.append("[^/]*")
            index += 1
        elif glob[index] == "?":
            parts.append("[^/]")
            index += 1
        else:
            parts.append(re.escape(glob[index]))
            index += 1
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE)


def matches_pattern(path: str, glob: str) -> bool:
    return compile_pattern(normalise_path(glob)).match(normalise_path(path)) is not None


def detect_architecture_pattern(graph: Mapping) -> str:
    """Classify the repository layout; the first matching rule wins."""
    require_graph(graph)
    paths = [normalise_path(node.relative_path) for node in graph.values()]
    if not paths:
        return "unknown"

    directories = [set(path.split("/")[:-1]) for path in paths]

    if any(dirs & {"packages", "apps"} for dirs in directories):
        return "monorepo"

    if any(dirs & {"features", "modules"} for dirs in directories):
        return "feature-based"

    has_components = any("components" in dirs for dirs in directories)
    has_services = any("services" in dirs for dirs in directories)
    has_utils = any("utils" in dirs for dirs in directories)
    if has_components and (has_services or has_utils):
        return "layered"

    segments = [path.split("/") for path in paths]
    roots = {parts[0] for parts in segments if len(parts) > 1}
    all_rooted = all(len(parts) > 1 for parts in segments)
    if all_rooted and len(roots) == 1 and max(len(parts) for parts in segments) <= _FLAT_MAX_DEPTH:
        return "flat"

    return "unknown"


def assign_layers(graph: Mapping, layers: Sequence[ArchitectureLayer]) -> Dict[str, str]:
    """Map file identity to the first layer, in declaration order, whose patterns match."""
    require_graph(graph)
    assignment: Dict[str, str] = {}
    for key, node in graph.items():
        for layer in layers:
            if any(matches_pattern(node.relative_path, glob) for glob in layer.path_patterns):
                assignment[key] = layer.name
                break
    return assignment


def find_layer_violations(
    graph: Mapping,
    layers: Sequence[ArchitectureLayer],
    assignment: Optional[Mapping[str, str]] = None,
) -> List[LayerViolation]:
    """Internal edges whose target layer is outside the source layer's allowed set."""
    require_graph(graph)
    if assignment is None:
        assignment = assign_layers(graph, layers)
    allowed = {layer.name: {layer.name, *layer.allowed_dependency_layers} for layer in layers}

    violations: List[LayerViolation] = []
    for key, node in graph.items():
        from_layer = assignment.get(key)
        if from_layer is None:
            continue
        for target in node.imports.internal:
            to_layer = assignment.get(target)
            if to_layer is None or target not in graph:
                continue
            if to_layer not in allowed[from_layer]:
                violations.append(
                    LayerViolation(
                        from_file=node.relative_path,
                        to_file=graph[target].relative_path,
                        from_layer=from_layer,
                        to_layer=to_layer,
                    )
                )
    return violations


def detect_architecture(
    graph: Mapping, layers: Sequence[ArchitectureLayer] = DEFAULT_LAYERS
) -> ArchitectureAnalysis:
    """Detect the layout pattern, populate layers and list violations.

    Only layers that received at least one file are reported.
    """
    require_graph(graph)
    pattern = detect_architecture_pattern(graph)
    assignment = assign_layers(graph, layers)
    violations = find_layer_violations(graph, layers, assignment)

    populated: List[ArchitectureLayer] = []
    for layer in layers:
        files = tuple(
            graph[key].relative_path for key, name in assignment.items() if name == layer.name
        )
        if not files:
            continue
        violated_by: Dict[str, None] = {}
        for violation in violations:
            if violation.to_layer == layer.name:
                violated_by.setdefault(violation.from_file, None)
        populated.append(
            ArchitectureLayer(
                name=layer.name,
                path_patterns=tuple(layer.path_patterns),
                allowed_dependency_layers=tuple(layer.allowed_dependency_layers),
                description=layer.description,
                files=files,
                violated_by=tuple(violated_by),
            )
        )

    return ArchitectureAnalysis(
        pattern=pattern,
        layers=tuple(populated),
        violations=tuple(violations),
    )


class ArchitectureAnalyzer(Analyzer):
    """Pattern classification and layer checks using configured or default layers."""

    sections = ("architecture",)

    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        layers = context.layers if context.layers else DEFAULT_LAYERS
        return {"architecture": detect_architecture(context.graph, layers)}


__all__ = [
    "ArchitectureAnalyzer",
    "DEFAULT_LAYERS",
    "PATTERN_DESCRIPTIONS",
    "assign_layers",
    "compile_pattern",
    "detect_architecture",
    "detect_architecture_pattern",
    "find_layer_violations",
    "matches_pattern",
    "normalise_path",
]
