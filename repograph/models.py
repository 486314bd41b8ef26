"""Core data models shared across repograph components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

FILE_ROLES: Tuple[str, ...] = (
    "entry",
    "config",
    "test",
    "util",
    "component",
    "service",
    "type",
    "barrel",
    "unknown",
)

SYMBOL_KINDS: Tuple[str, ...] = (
    "function",
    "class",
    "interface",
    "type",
    "enum",
    "const",
    "variable",
    "unknown",
)


@dataclass(frozen=True)
class Position:
    """Line/column location inside a source file."""

    line: int = 0
    column: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column}


@dataclass(frozen=True)
class ImportRecord:
    """A single import statement that resolved to another file in the graph."""

    specifier: str
    resolved_path: str
    identifiers: Tuple[str, ...] = ()
    is_type_only: bool = False
    is_dynamic: bool = False
    position: Position = field(default_factory=Position)

    @property
    def is_namespace(self) -> bool:
        return any(is_namespace_identifier(ident) for ident in self.identifiers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specifier": self.specifier,
            "resolvedPath": self.resolved_path,
            "identifiers": list(self.identifiers),
            "isTypeOnly": self.is_type_only,
            "isDynamic": self.is_dynamic,
            "position": self.position.to_dict(),
        }


@dataclass(frozen=True)
class MemberInfo:
    """Member of an aggregate export (class method, enum member, ...)."""

    name: str
    kind: str = "unknown"
    is_private: bool = False
    is_static: bool = False
    signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind,
            "isPrivate": self.is_private,
            "isStatic": self.is_static,
            "signature": self.signature,
        }


@dataclass(frozen=True)
class ExportRecord:
    """An exported symbol as reported by the source parser."""

    name: str
    kind: str = "unknown"
    is_default: bool = False
    is_reexport: bool = False
    members: Optional[Tuple[MemberInfo, ...]] = None
    doc: Optional[str] = None
    signature: Optional[str] = None
    position: Position = field(default_factory=Position)

    @property
    def is_type_kind(self) -> bool:
        return self.kind in {"type", "interface"}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.kind,
            "isDefault": self.is_default,
            "isReExport": self.is_reexport,
            "position": self.position.to_dict(),
        }
        if self.members is not None:
            data["members"] = [member.to_dict() for member in self.members]
        if self.doc is not None:
            data["jsDoc"] = self.doc
        if self.signature is not None:
            data["signature"] = self.signature
        return data


@dataclass(frozen=True)
class FileImports:
    """Imports of one file split by resolution outcome."""

    internal: Mapping[str, Tuple[ImportRecord, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    external: frozenset = frozenset()
    unresolved: frozenset = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.internal, MappingProxyType):
            frozen = {key: tuple(records) for key, records in self.internal.items()}
            object.__setattr__(self, "internal", MappingProxyType(frozen))
        object.__setattr__(self, "external", frozenset(self.external))
        object.__setattr__(self, "unresolved", frozenset(self.unresolved))


@dataclass(frozen=True)
class FileNode:
    """Per-file record in the module graph.

    ``imported_by`` is a back-reference set only; it is derived by
    :meth:`ModuleGraph.build` and should not be supplied by parsers.
    """

    path: str
    relative_path: str
    imports: FileImports = field(default_factory=FileImports)
    exports: Tuple[ExportRecord, ...] = ()
    imported_by: frozenset = frozenset()
    role: str = "unknown"

    def __post_init__(self) -> None:
        object.__setattr__(self, "exports", tuple(self.exports))
        object.__setattr__(self, "imported_by", frozenset(self.imported_by))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "relativePath": self.relative_path,
            "role": self.role,
            "imports": {
                "internal": {
                    target: [record.to_dict() for record in records]
                    for target, records in self.imports.internal.items()
                },
                "external": sorted(self.imports.external),
                "unresolved": sorted(self.imports.unresolved),
            },
            "exports": [export.to_dict() for export in self.exports],
            "importedBy": sorted(self.imported_by),
        }


class ModuleGraph(Mapping):
    """Read-only mapping from file identity to :class:`FileNode`.

    Cross references are stored as keys into the same mapping. The graph is
    immutable once built, so independent analyses may share it freely.
    """

    __slots__ = ("_nodes",)

    def __init__(self, nodes: Mapping[str, FileNode] | None = None) -> None:
        self._nodes: Dict[str, FileNode] = dict(nodes or {})

    @classmethod
    def build(cls, nodes: Iterable[FileNode]) -> "ModuleGraph":
        """Create a graph from parser records, deriving ``imported_by``."""
        ordered: Dict[str, FileNode] = {}
        for node in nodes:
            ordered[node.path] = node

        back_refs: Dict[str, List[str]] = {key: [] for key in ordered}
        for key, node in ordered.items():
            for target in node.imports.internal:
                if target in back_refs:
                    back_refs[target].append(key)

        built = {
            key: FileNode(
                path=node.path,
                relative_path=node.relative_path,
                imports=node.imports,
                exports=node.exports,
                imported_by=frozenset(back_refs[key]),
                role=node.role,
            )
            for key, node in ordered.items()
        }
        return cls(built)

    def __getitem__(self, key: str) -> FileNode:
        return self._nodes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"ModuleGraph({len(self._nodes)} files)"

    def relative(self, key: str) -> str:
        """Return the relative path for ``key``, or ``key`` when it is not a node."""
        node = self._nodes.get(key)
        return node.relative_path if node is not None else key


# ---------------------------------------------------------------------------
# Manifest models


@dataclass(frozen=True)
class DependencyInfo:
    """Declared dependency sets from the manifest."""

    production: Tuple[str, ...] = ()
    development: Tuple[str, ...] = ()
    peer: Tuple[str, ...] = ()

    @property
    def all(self) -> frozenset:
        return frozenset(self.production) | frozenset(self.development) | frozenset(self.peer)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "production": list(self.production),
            "development": list(self.development),
            "peer": list(self.peer),
        }


@dataclass(frozen=True)
class EntryPoints:
    """Files that make up the manifest's public surface."""

    main: Optional[str] = None
    module: Optional[str] = None
    types: Optional[str] = None
    bin: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    exports: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    all: frozenset = frozenset()
    negated: frozenset = frozenset()

    def is_negated(self, key: str) -> bool:
        """Return True when ``key`` was explicitly hidden in the exports map."""
        name = key if key.startswith("!") else f"!{key}"
        return name in self.negated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "main": self.main,
            "module": self.module,
            "types": self.types,
            "bin": dict(self.bin),
            "exports": dict(self.exports),
            "all": sorted(self.all),
            "negated": sorted(self.negated),
        }


@dataclass(frozen=True)
class PackageConfig:
    """Normalized package manifest."""

    name: str
    version: str
    entry_points: EntryPoints
    dependencies: DependencyInfo
    description: Optional[str] = None
    scripts: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    workspaces: Optional[Tuple[str, ...]] = None
    repository: Optional[str] = None
    keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "entryPoints": self.entry_points.to_dict(),
            "dependencies": self.dependencies.to_dict(),
            "scripts": dict(self.scripts),
            "workspaces": list(self.workspaces) if self.workspaces is not None else None,
            "repository": self.repository,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class ExportsCondition:
    condition: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        return {"condition": self.condition, "target": self.target}


@dataclass(frozen=True)
class ExportsPath:
    path: str
    conditions: Tuple[ExportsCondition, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "conditions": [c.to_dict() for c in self.conditions]}


@dataclass(frozen=True)
class ExportsMapAnalysis:
    """Breakdown of the manifest ``exports`` field."""

    paths: Tuple[ExportsPath, ...] = ()
    wildcards: Tuple[str, ...] = ()
    internal_only: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paths": [path.to_dict() for path in self.paths],
            "wildcards": list(self.wildcards),
            "internalOnly": list(self.internal_only),
        }


# ---------------------------------------------------------------------------
# Dependency analysis models


@dataclass(frozen=True)
class DependencyEdge:
    """Aggregated internal dependency between two files."""

    from_file: str
    to_file: str
    import_count: int
    identifiers: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_file,
            "to": self.to_file,
            "importCount": self.import_count,
            "identifiers": list(self.identifiers),
        }


@dataclass(frozen=True)
class ExternalDependency:
    name: str
    used_by: Tuple[str, ...]
    is_declared: bool
    is_dev_only: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "usedBy": list(self.used_by),
            "isDeclared": self.is_declared,
            "isDevOnly": self.is_dev_only,
        }


@dataclass(frozen=True)
class DependencyAnalysis:
    """Declared vs used comparison of external packages."""

    declared: DependencyInfo
    used_production: Tuple[str, ...] = ()
    used_development: Tuple[str, ...] = ()
    unused: Tuple[str, ...] = ()
    unlisted: Tuple[str, ...] = ()
    misplaced: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "declared": self.declared.to_dict(),
            "used": {
                "production": list(self.used_production),
                "development": list(self.used_development),
            },
            "unused": list(self.unused),
            "unlisted": list(self.unlisted),
            "misplaced": list(self.misplaced),
        }


@dataclass(frozen=True)
class DependencyUsageLocation:
    file: str
    symbols: Tuple[str, ...] = ()
    is_namespace: bool = False
    is_default: bool = False
    is_type_only: bool = False
    is_dynamic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "symbols": list(self.symbols),
            "isNamespace": self.is_namespace,
            "isDefault": self.is_default,
            "isTypeOnly": self.is_type_only,
            "isDynamic": self.is_dynamic,
        }


@dataclass(frozen=True)
class DependencyUsage:
    """Where and how one external package is imported."""

    package: str
    declared_as: str
    usage_locations: Tuple[DependencyUsageLocation, ...] = ()

    @property
    def total_imports(self) -> int:
        return len(self.usage_locations)

    @property
    def unique_symbols(self) -> List[str]:
        seen: Dict[str, None] = {}
        for location in self.usage_locations:
            for symbol in location.symbols:
                seen.setdefault(symbol, None)
        return list(seen)

    @property
    def files_used_in(self) -> int:
        return len({location.file for location in self.usage_locations})

    @property
    def type_only_count(self) -> int:
        return sum(1 for location in self.usage_locations if location.is_type_only)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "declaredAs": self.declared_as,
            "usageLocations": [location.to_dict() for location in self.usage_locations],
            "stats": {
                "totalImports": self.total_imports,
                "uniqueSymbols": self.unique_symbols,
                "filesUsedIn": self.files_used_in,
                "typeOnlyCount": self.type_only_count,
            },
        }


# ---------------------------------------------------------------------------
# Graph insight models


@dataclass(frozen=True)
class UnusedExport:
    file: str
    export: str
    kind: str

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.file, "export": self.export, "type": self.kind}


@dataclass(frozen=True)
class MostImportedFile:
    file: str
    imported_by_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "importedByCount": self.imported_by_count}


@dataclass(frozen=True)
class AnalysisInsights:
    unused_exports: Tuple[UnusedExport, ...] = ()
    circular_dependencies: Tuple[Tuple[str, ...], ...] = ()
    barrel_files: Tuple[str, ...] = ()
    largest_files: Tuple[str, ...] = ()
    most_imported: Tuple[MostImportedFile, ...] = ()
    orphan_files: Tuple[str, ...] = ()
    type_only_files: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unusedExports": [item.to_dict() for item in self.unused_exports],
            "circularDependencies": [list(cycle) for cycle in self.circular_dependencies],
            "barrelFiles": list(self.barrel_files),
            "largestFiles": list(self.largest_files),
            "mostImported": [item.to_dict() for item in self.most_imported],
            "orphanFiles": list(self.orphan_files),
            "typeOnlyFiles": list(self.type_only_files),
        }


# ---------------------------------------------------------------------------
# Architecture models


@dataclass(frozen=True)
class ArchitectureLayer:
    """Named layer with glob patterns and the layers it may depend on."""

    name: str
    path_patterns: Tuple[str, ...]
    allowed_dependency_layers: Tuple[str, ...] = ()
    description: str = ""
    files: Tuple[str, ...] = ()
    violated_by: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "paths": list(self.path_patterns),
            "dependsOn": list(self.allowed_dependency_layers),
            "files": list(self.files),
            "violatedBy": list(self.violated_by),
        }


@dataclass(frozen=True)
class LayerViolation:
    from_file: str
    to_file: str
    from_layer: str
    to_layer: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "from": self.from_file,
            "to": self.to_file,
            "fromLayer": self.from_layer,
            "toLayer": self.to_layer,
        }


@dataclass(frozen=True)
class ArchitectureAnalysis:
    pattern: str
    layers: Tuple[ArchitectureLayer, ...] = ()
    violations: Tuple[LayerViolation, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "layers": [layer.to_dict() for layer in self.layers],
            "violations": [violation.to_dict() for violation in self.violations],
        }


# ---------------------------------------------------------------------------
# Export flow models


@dataclass(frozen=True)
class ExportFlow:
    """Provenance of one exported symbol from definition to public entry points."""

    exported_name: str
    export_kind: str
    defining_file: str
    re_export_chain: Tuple[str, ...] = ()
    public_from_entry_points: Tuple[str, ...] = ()
    conditions: Tuple[str, ...] = ()
    release_tag: Optional[str] = None

    @property
    def is_public(self) -> bool:
        return bool(self.public_from_entry_points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportedName": self.exported_name,
            "exportKind": self.export_kind,
            "definingFile": self.defining_file,
            "reExportChain": list(self.re_export_chain),
            "publicFromEntryPoints": list(self.public_from_entry_points),
            "conditions": list(self.conditions),
            "releaseTag": self.release_tag,
        }


# ---------------------------------------------------------------------------
# Assembled analysis


@dataclass(frozen=True)
class AnalysisMetadata:
    version: str
    generated_at: str
    repository_path: str
    duration_ms: int = 0
    analysis_type: str = "full"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "generatedAt": self.generated_at,
            "repositoryPath": self.repository_path,
            "analysisType": self.analysis_type,
            "duration": self.duration_ms,
        }


@dataclass(frozen=True)
class PublicApiEntry:
    """Original exports declared directly in one entry file."""

    entry_point: str
    exports: Tuple[ExportRecord, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryPoint": self.entry_point,
            "exports": [export.to_dict() for export in self.exports],
        }


@dataclass(frozen=True)
class ModuleGraphSummary:
    total_files: int
    total_imports: int
    total_exports: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalFiles": self.total_files,
            "totalImports": self.total_imports,
            "totalExports": self.total_exports,
        }


@dataclass(frozen=True)
class FileAnalysis:
    path: str
    relative_path: str
    role: str
    export_count: int
    import_count: int
    external_import_count: int
    is_barrel: bool
    is_entry_point: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "relativePath": self.relative_path,
            "role": self.role,
            "exportCount": self.export_count,
            "importCount": self.import_count,
            "externalImportCount": self.external_import_count,
            "isBarrel": self.is_barrel,
            "isEntryPoint": self.is_entry_point,
        }


@dataclass
class RepoAnalysis:
    """Everything one run produced.

    ``sections`` holds analyzer output keyed by section name (``insights``,
    ``architecture``, ...); analyzers that were disabled leave no key.
    """

    metadata: AnalysisMetadata
    package: PackageConfig
    public_api: List[PublicApiEntry]
    module_graph: ModuleGraphSummary
    files: List[FileAnalysis]
    sections: Dict[str, Any] = field(default_factory=dict)

    @property
    def dependencies(self) -> Optional[DependencyAnalysis]:
        return self.sections.get("dependencies")

    @property
    def insights(self) -> Optional[AnalysisInsights]:
        return self.sections.get("insights")

    @property
    def architecture(self) -> Optional[ArchitectureAnalysis]:
        return self.sections.get("architecture")

    @property
    def export_flows(self) -> Dict[str, ExportFlow]:
        return self.sections.get("exportFlows") or {}

    @property
    def dependency_usage(self) -> Dict[str, DependencyUsage]:
        return self.sections.get("dependencyUsage") or {}

    @property
    def exports_map(self) -> Optional[ExportsMapAnalysis]:
        return self.sections.get("exportsMap")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "package": self.package.to_dict(),
            "publicAPI": [entry.to_dict() for entry in self.public_api],
            "moduleGraph": self.module_graph.to_dict(),
            "files": [item.to_dict() for item in self.files],
        }
        for name, value in self.sections.items():
            data[name] = to_jsonable(value)
        return data


def to_jsonable(value: Any) -> Any:
    """Convert models, mappings and sequences into plain JSON types."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (frozenset, set)):
        return sorted(to_jsonable(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def is_namespace_identifier(identifier: str) -> bool:
    """Return True for ``* as X`` namespace imports and bare ``*`` star re-exports."""
    return identifier == "*" or identifier.startswith("* as ")


__all__ = [
    "AnalysisInsights",
    "AnalysisMetadata",
    "ArchitectureAnalysis",
    "ArchitectureLayer",
    "DependencyAnalysis",
    "DependencyEdge",
    "DependencyInfo",
    "DependencyUsage",
    "DependencyUsageLocation",
    "EntryPoints",
    "ExportFlow",
    "ExportRecord",
    "ExportsCondition",
    "ExportsMapAnalysis",
    "ExportsPath",
    "ExternalDependency",
    "FILE_ROLES",
    "FileAnalysis",
    "FileImports",
    "FileNode",
    "ImportRecord",
    "LayerViolation",
    "MemberInfo",
    "ModuleGraph",
    "ModuleGraphSummary",
    "MostImportedFile",
    "PackageConfig",
    "Position",
    "PublicApiEntry",
    "RepoAnalysis",
    "SYMBOL_KINDS",
    "UnusedExport",
    "is_namespace_identifier",
    "to_jsonable",
]
