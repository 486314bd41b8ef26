"""Load module-graph snapshots produced by a source parser."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .analyzers.roles import classify_role
from .models import (
    FILE_ROLES,
    ExportRecord,
    FileImports,
    FileNode,
    ImportRecord,
    MemberInfo,
    ModuleGraph,
    Position,
)

_SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
_OUTPUT_DIRS = {"dist", "build", "lib", "out"}
_COMPILED_SUFFIXES = (".d.ts", ".mjs", ".cjs", ".js")


class GraphSnapshotError(ValueError):
    """Raised when a graph snapshot does not follow the parser contract."""


def load_graph_file(path: Path) -> ModuleGraph:
    """Read a JSON snapshot from disk and build the graph."""
    if not path.exists():
        raise FileNotFoundError(f"Module graph snapshot not found at {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise GraphSnapshotError(f"Failed to parse {path.name}: {exc}") from exc
    return load_graph(payload)


def load_graph(payload: object, root: str | None = None) -> ModuleGraph:
    """Build a :class:`ModuleGraph` from a snapshot mapping.

    ``imported_by`` is always derived from the internal imports, never read
    from the snapshot, so the back references are symmetric by construction.
    """
    if not isinstance(payload, Mapping):
        raise GraphSnapshotError("Graph snapshot must be a JSON object")
    files = payload.get("files")
    if not isinstance(files, list):
        raise GraphSnapshotError("Graph snapshot must contain a 'files' list")
    snapshot_root = root or _optional_str(payload.get("root"))

    nodes = [_parse_file(entry, snapshot_root, index) for index, entry in enumerate(files)]
    return ModuleGraph.build(nodes)


def _parse_file(entry: object, root: Optional[str], index: int) -> FileNode:
    if not isinstance(entry, Mapping):
        raise GraphSnapshotError(f"files[{index}] must be an object")
    path = entry.get("path")
    if not isinstance(path, str) or not path:
        raise GraphSnapshotError(f"files[{index}] is missing 'path'")

    relative = _pick(entry, "relativePath", "relative_path")
    if not isinstance(relative, str) or not relative:
        relative = _relative_to_root(path, root)

    exports = tuple(
        _parse_export(item, path) for item in _as_list(entry.get("exports"), f"{path}: exports")
    )
    imports = _parse_imports(entry.get("imports"), path)

    role = entry.get("role")
    if role is None:
        role = classify_role(relative, exports)
    elif role not in FILE_ROLES:
        raise GraphSnapshotError(f"{path}: unknown role {role!r}")

    return FileNode(
        path=path,
        relative_path=relative.replace("\\", "/"),
        imports=imports,
        exports=exports,
        role=role,
    )


def _parse_imports(value: object, path: str) -> FileImports:
    if value is None:
        return FileImports()
    if not isinstance(value, Mapping):
        raise GraphSnapshotError(f"{path}: 'imports' must be an object")

    internal_raw = value.get("internal") or {}
    if not isinstance(internal_raw, Mapping):
        raise GraphSnapshotError(f"{path}: 'imports.internal' must map targets to records")
    internal: Dict[str, Tuple[ImportRecord, ...]] = {}
    for target, records in internal_raw.items():
        parsed = [
            _parse_import(record, str(target), path)
            for record in _as_list(records, f"{path}: imports.internal[{target}]")
        ]
        internal[str(target)] = tuple(parsed)

    return FileImports(
        internal=internal,
        external=frozenset(_as_str_list(value.get("external"), f"{path}: imports.external")),
        unresolved=frozenset(
            _as_str_list(value.get("unresolved"), f"{path}: imports.unresolved")
        ),
    )


def _parse_import(record: object, target: str, path: str) -> ImportRecord:
    if not isinstance(record, Mapping):
        raise GraphSnapshotError(f"{path}: import records must be objects")
    return ImportRecord(
        specifier=str(record.get("specifier") or target),
        resolved_path=str(_pick(record, "resolvedPath", "resolved_path") or target),
        identifiers=tuple(_as_str_list(record.get("identifiers"), f"{path}: identifiers")),
        is_type_only=bool(_pick(record, "isTypeOnly", "is_type_only")),
        is_dynamic=bool(_pick(record, "isDynamic", "is_dynamic")),
        position=_parse_position(record.get("position")),
    )


def _parse_export(record: object, path: str) -> ExportRecord:
    if not isinstance(record, Mapping):
        raise GraphSnapshotError(f"{path}: export records must be objects")
    name = record.get("name")
    if not isinstance(name, str) or not name:
        raise GraphSnapshotError(f"{path}: export record without a name")

    members_raw = record.get("members")
    members: Optional[Tuple[MemberInfo, ...]] = None
    if isinstance(members_raw, list):
        members = tuple(
            MemberInfo(
                name=str(member.get("name", "")),
                kind=str(_pick(member, "type", "kind") or "unknown"),
                is_private=bool(_pick(member, "isPrivate", "is_private")),
                is_static=bool(_pick(member, "isStatic", "is_static")),
                signature=_optional_str(member.get("signature")),
            )
            for member in members_raw
            if isinstance(member, Mapping)
        )

    return ExportRecord(
        name=name,
        kind=str(_pick(record, "type", "kind") or "unknown"),
        is_default=bool(_pick(record, "isDefault", "is_default")) or name == "default",
        is_reexport=bool(_pick(record, "isReExport", "is_reexport")),
        members=members,
        doc=_optional_str(_pick(record, "jsDoc", "doc")),
        signature=_optional_str(record.get("signature")),
        position=_parse_position(record.get("position")),
    )


def _parse_position(value: object) -> Position:
    if not isinstance(value, Mapping):
        return Position()
    line = value.get("line")
    column = value.get("column")
    return Position(
        line=line if isinstance(line, int) else 0,
        column=column if isinstance(column, int) else 0,
    )


# ---------------------------------------------------------------------------
# Entry resolution


def resolve_entry_file(graph: Mapping, specifier: str, root: str | None = None) -> Optional[str]:
    """Return the graph key a manifest entry specifier points at, if any.

    Probes the exact path, source extensions, ``index`` files and the
    ``dist|build|lib|out`` -> ``src`` rewrite used by compiled packages.
    """
    if not specifier or specifier.startswith("!"):
        return None
    if specifier in graph:
        return specifier

    by_relative = {_normalise(node.relative_path): key for key, node in graph.items()}
    target = specifier
    if root and os.path.isabs(specifier):
        target = _relative_to_root(specifier, root)

    for candidate in _candidates(_normalise(target)):
        key = by_relative.get(candidate)
        if key is not None:
            return key
    return None


def resolve_entry_files(
    graph: Mapping, specifiers: Iterable[str], root: str | None = None
) -> frozenset:
    """Resolve every specifier; unresolvable ones are skipped."""
    resolved = (resolve_entry_file(graph, specifier, root) for specifier in specifiers)
    return frozenset(key for key in resolved if key is not None)


def _candidates(spec: str) -> List[str]:
    bases = [spec]
    parts = spec.split("/")
    if len(parts) > 1 and parts[0] in _OUTPUT_DIRS:
        bases.append("/".join(["src", *parts[1:]]))

    candidates: List[str] = []
    for base in bases:
        candidates.append(base)
        stem = _strip_compiled_suffix(base)
        for extension in _SOURCE_EXTENSIONS:
            candidates.append(f"{stem}{extension}")
        for extension in _SOURCE_EXTENSIONS:
            candidates.append(f"{base}/index{extension}")
    return candidates


def _strip_compiled_suffix(spec: str) -> str:
    for suffix in _COMPILED_SUFFIXES:
        if spec.endswith(suffix):
            return spec[: -len(suffix)]
    return spec


def _normalise(path: str) -> str:
    normalised = path.replace("\\", "/")
    while normalised.startswith("./"):
        normalised = normalised[2:]
    return normalised.strip("/")


def _relative_to_root(path: str, root: Optional[str]) -> str:
    if root and os.path.isabs(path):
        try:
            return PurePosixPath(Path(path).relative_to(root).as_posix()).as_posix()
        except ValueError:
            return path
    return path


def _pick(record: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return None


def _optional_str(value: object) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_list(value: object, where: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise GraphSnapshotError(f"{where} must be a list")
    return value


def _as_str_list(value: object, where: str) -> List[str]:
    return [str(item) for item in _as_list(value, where)]


__all__ = [
    "GraphSnapshotError",
    "load_graph",
    "load_graph_file",
    "resolve_entry_file",
    "resolve_entry_files",
]
