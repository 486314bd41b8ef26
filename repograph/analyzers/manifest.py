"""Manifest analyzer: entry points, declared dependencies and the exports map."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .base import AnalysisContext, Analyzer
from ..models import (
    DependencyInfo,
    EntryPoints,
    ExportsCondition,
    ExportsMapAnalysis,
    ExportsPath,
    PackageConfig,
)


def load_package_json(root: Path) -> Dict[str, Any]:
    """Return the parsed package.json under ``root``.

    Raises FileNotFoundError when the file is absent. Content that is not a
    JSON object yields an empty mapping so downstream analysis degrades to
    empty results.
    """
    package_json = root / "package.json"
    if not package_json.exists():
        raise FileNotFoundError(f"No package.json found at {root}")
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    if isinstance(data, dict):
        return data
    return {}


# ---------------------------------------------------------------------------
# Entry points


def get_entry_points(manifest: object) -> EntryPoints:
    """Collect every file specifier that forms the manifest's public surface."""
    data = _as_dict(manifest)
    entries: List[str] = []
    negated: Set[str] = set()

    main = _as_str(data.get("main"))
    module = _as_str(data.get("module"))
    types = _as_str(data.get("types"))
    typings = _as_str(data.get("typings"))
    for value in (main, module, types, typings):
        if value:
            entries.append(value)

    bin_map = _normalise_bin(data.get("bin"), _as_str(data.get("name")))
    entries.extend(bin_map.values())

    exports_field = data.get("exports")
    exports_map: Dict[str, str] = {}
    if exports_field is not None:
        export_entries: List[str] = []
        _collect_export_entries(exports_field, export_entries, negated)
        entries.extend(export_entries)
        for key, value in _export_subpaths(exports_field):
            first = _first_entry(value)
            if first is not None:
                exports_map[key] = first

    return EntryPoints(
        main=main,
        module=module,
        types=types or typings,
        bin=MappingProxyType(bin_map),
        exports=MappingProxyType(exports_map),
        all=frozenset(entry for entry in entries if not entry.startswith("!")),
        negated=frozenset(negated),
    )


def _collect_export_entries(value: object, entries: List[str], negated: Set[str]) -> None:
    if isinstance(value, str):
        if value.startswith("!"):
            negated.add(value)
        else:
            entries.append(value)
        return

    if isinstance(value, list):
        for item in value:
            _collect_export_entries(item, entries, negated)
        return

    if isinstance(value, Mapping):
        for key, item in value.items():
            if item is None:
                # null hides the subpath on purpose
                negated.add(f"!{key}")
            else:
                _collect_export_entries(item, entries, negated)


def _export_subpaths(exports_field: object) -> List[Tuple[str, object]]:
    """Split the exports field into ``(subpath, value)`` pairs."""
    if isinstance(exports_field, (str, list)):
        return [(".", exports_field)]
    if isinstance(exports_field, Mapping):
        keys = [str(key) for key in exports_field]
        if keys and all(key.startswith(".") for key in keys):
            return [(str(key), value) for key, value in exports_field.items()]
        return [(".", exports_field)]
    return []


def _first_entry(value: object) -> Optional[str]:
    if isinstance(value, str):
        return None if value.startswith("!") else value
    if isinstance(value, list):
        for item in value:
            found = _first_entry(item)
            if found is not None:
                return found
        return None
    if isinstance(value, Mapping):
        for item in value.values():
            if item is None:
                continue
            found = _first_entry(item)
            if found is not None:
                return found
    return None


def _normalise_bin(value: object, package_name: Optional[str]) -> Dict[str, str]:
    if isinstance(value, str) and value:
        return {package_name or "default": value}
    if isinstance(value, Mapping):
        return {
            str(name): path
            for name, path in value.items()
            if isinstance(path, str) and path
        }
    return {}


# ---------------------------------------------------------------------------
# Dependencies and package metadata


def get_dependencies(manifest: object) -> DependencyInfo:
    """Read the production, development and peer dependency names."""
    data = _as_dict(manifest)
    return DependencyInfo(
        production=tuple(_as_dict(data.get("dependencies")).keys()),
        development=tuple(_as_dict(data.get("devDependencies")).keys()),
        peer=tuple(_as_dict(data.get("peerDependencies")).keys()),
    )


def analyze_package(manifest: object, fallback_name: str = "package") -> PackageConfig:
    """Normalise a parsed manifest into a :class:`PackageConfig`."""
    data = _as_dict(manifest)
    scripts = {
        str(name): command
        for name, command in _as_dict(data.get("scripts")).items()
        if isinstance(command, str)
    }
    return PackageConfig(
        name=_as_str(data.get("name")) or fallback_name,
        version=_as_str(data.get("version")) or "0.0.0",
        description=_as_str(data.get("description")),
        entry_points=get_entry_points(data),
        dependencies=get_dependencies(data),
        scripts=MappingProxyType(scripts),
        workspaces=_get_workspaces(data.get("workspaces")),
        repository=_get_repository_url(data.get("repository")),
        keywords=tuple(_as_str_list(data.get("keywords"))),
    )


def is_monorepo(manifest: object) -> bool:
    """A package is a monorepo root when it declares workspaces."""
    return bool(_as_dict(manifest).get("workspaces"))


def _get_workspaces(value: object) -> Optional[Tuple[str, ...]]:
    if isinstance(value, list):
        return tuple(_as_str_list(value))
    if isinstance(value, Mapping):
        packages = value.get("packages")
        if isinstance(packages, list):
            return tuple(_as_str_list(packages))
    return None


def _get_repository_url(value: object) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return _as_str(value.get("url"))
    return None


# ---------------------------------------------------------------------------
# Exports map


def analyze_exports_map(manifest: object, graph: Mapping | None = None) -> ExportsMapAnalysis:
    """Describe the exports field and, given a graph, which files it leaves internal."""
    data = _as_dict(manifest)
    exports_field = data.get("exports")
    relative_paths = [node.relative_path for node in graph.values()] if graph is not None else []

    if exports_field is None:
        return ExportsMapAnalysis(internal_only=tuple(relative_paths))

    paths: List[ExportsPath] = []
    wildcards: List[str] = []
    for key, value in _export_subpaths(exports_field):
        if value is None:
            continue
        if "*" in key:
            wildcards.append(key)
            continue
        paths.append(ExportsPath(path=key, conditions=tuple(_flatten_conditions(value))))

    targets = {
        _strip_dot_slash(condition.target)
        for path in paths
        for condition in path.conditions
    }
    internal_only = tuple(
        relative for relative in relative_paths if not _is_exposed(relative, targets)
    )
    return ExportsMapAnalysis(
        paths=tuple(paths),
        wildcards=tuple(wildcards),
        internal_only=internal_only,
    )


def entry_conditions_by_target(analysis: ExportsMapAnalysis) -> Dict[str, Tuple[str, ...]]:
    """Map each normalised export target to the conditions that expose it."""
    result: Dict[str, List[str]] = {}
    for path in analysis.paths:
        for condition in path.conditions:
            target = _strip_dot_slash(condition.target)
            names = result.setdefault(target, [])
            if condition.condition not in names:
                names.append(condition.condition)
    return {target: tuple(names) for target, names in result.items()}


def _flatten_conditions(value: object, condition: str = "default") -> Iterable[ExportsCondition]:
    if isinstance(value, str):
        if not value.startswith("!"):
            yield ExportsCondition(condition=condition, target=value)
        return
    if isinstance(value, list):
        first = next((item for item in value if isinstance(item, str)), None)
        if first is not None and not first.startswith("!"):
            yield ExportsCondition(condition=condition, target=first)
        return
    if isinstance(value, Mapping):
        for name, item in value.items():
            if item is None:
                continue
            yield from _flatten_conditions(item, str(name))


def _is_exposed(relative: str, targets: Set[str]) -> bool:
    normalised = _strip_dot_slash(relative.replace("\\", "/"))
    if normalised in targets:
        return True
    for suffix in (".ts", ".tsx"):
        if normalised.endswith(suffix):
            stem = normalised[: -len(suffix)]
            if f"{stem}.js" in targets or f"{stem}.d.ts" in targets:
                return True
    return False


def _strip_dot_slash(value: str) -> str:
    return value[2:] if value.startswith("./") else value


# ---------------------------------------------------------------------------
# Plugin wrapper


class ManifestAnalyzer(Analyzer):
    """Reports the exports-map breakdown for the analysed package."""

    sections = ("exportsMap",)

    def analyze(self, context: AnalysisContext) -> Dict[str, Any]:
        return {"exportsMap": analyze_exports_map(context.manifest, context.graph)}


def _as_dict(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, Sequence) and not isinstance(value, str):
        return [item for item in value if isinstance(item, str)]
    return []


__all__ = [
    "ManifestAnalyzer",
    "analyze_exports_map",
    "analyze_package",
    "entry_conditions_by_target",
    "get_dependencies",
    "get_entry_points",
    "is_monorepo",
    "load_package_json",
]
