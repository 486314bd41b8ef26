"""Pipeline orchestration: load inputs, run analyzers, assemble and write the analysis."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import __version__
from .analyzers import AnalysisContext, Analyzer, discover_analyzers
from .analyzers.manifest import (
    analyze_exports_map,
    analyze_package,
    entry_conditions_by_target,
    load_package_json,
)
from .config import RepographConfig, load_config
from .graph_loader import load_graph_file, resolve_entry_file, resolve_entry_files
from .logging import get_logger
from .models import (
    AnalysisMetadata,
    ArchitectureLayer,
    FileAnalysis,
    ModuleGraph,
    ModuleGraphSummary,
    PackageConfig,
    PublicApiEntry,
    RepoAnalysis,
)
from .report import write_reports


@dataclass
class AnalysisOutcome:
    """Result of a full CLI-style run."""

    analysis: RepoAnalysis
    report_paths: List[Path] = field(default_factory=list)


class Orchestrator:
    """Coordinates manifest loading, graph loading, analyzers and report writing."""

    def __init__(self, analyzers: Optional[Iterable[Analyzer]] = None) -> None:
        self._analyzer_overrides = list(analyzers) if analyzers is not None else None
        self.logger = get_logger("orchestrator")

    def run_analysis(
        self,
        path: str,
        *,
        graph_path: str | None = None,
        output_dir: str | None = None,
        formats: Sequence[str] | None = None,
        entry_paths: Sequence[str] = (),
        most_imported_limit: int | None = None,
    ) -> AnalysisOutcome:
        """Analyse the repository at ``path`` and write its reports."""
        repo_path = Path(path).expanduser().resolve()
        self.logger.info("Starting analysis of %s", repo_path)
        started = time.perf_counter()

        config = load_config(repo_path)
        manifest = load_package_json(repo_path)

        snapshot = Path(graph_path).expanduser().resolve() if graph_path else config.graph_path
        graph = load_graph_file(snapshot)
        self.logger.debug("Loaded %d files from %s", len(graph), snapshot)

        analysis = self.analyze(
            manifest,
            graph,
            root=str(repo_path),
            entry_paths=[*config.entry_paths, *entry_paths],
            most_imported_limit=(
                most_imported_limit
                if most_imported_limit is not None
                else config.insights.most_imported_limit
            ),
            layers=config.layers,
            analyzers=self._select_analyzers(config),
            started=started,
        )

        target_dir = Path(output_dir).expanduser().resolve() if output_dir else config.output_dir
        report_formats = list(formats) if formats else list(config.report.formats)
        report_paths = write_reports(analysis, target_dir, report_formats)
        self.logger.info("Wrote %d report files to %s", len(report_paths), target_dir)
        return AnalysisOutcome(analysis=analysis, report_paths=report_paths)

    def analyze(
        self,
        manifest: Mapping[str, Any],
        graph: ModuleGraph,
        *,
        root: str = ".",
        entry_paths: Sequence[str] = (),
        most_imported_limit: int = 10,
        layers: Optional[Sequence[ArchitectureLayer]] = None,
        analyzers: Optional[Sequence[Analyzer]] = None,
        started: float | None = None,
    ) -> RepoAnalysis:
        """Run the analyzers over an in-memory manifest and graph."""
        started = time.perf_counter() if started is None else started
        package = analyze_package(manifest, fallback_name=Path(root).name or "package")

        entry_ids = self._resolve_entries(graph, package, entry_paths, root)
        self.logger.info(
            "Analysing %d files with %d entry points", len(graph), len(entry_ids)
        )

        context = AnalysisContext(
            graph=graph,
            package=package,
            entry_paths=entry_ids,
            entry_conditions=self._entry_conditions(manifest, graph, root),
            manifest=manifest,
            most_imported_limit=most_imported_limit,
            layers=layers,
        )

        selected = list(analyzers) if analyzers is not None else self._select_analyzers(None)
        sections = self._execute_analyzers(context, selected)

        duration_ms = int((time.perf_counter() - started) * 1000)
        return RepoAnalysis(
            metadata=AnalysisMetadata(
                version=__version__,
                generated_at=datetime.now(UTC).isoformat(),
                repository_path=root,
                duration_ms=duration_ms,
            ),
            package=package,
            public_api=build_public_api(graph, entry_ids),
            module_graph=build_module_graph_summary(graph),
            files=build_file_analysis(graph, entry_ids),
            sections=sections,
        )

    def _select_analyzers(self, config: Optional[RepographConfig]) -> List[Analyzer]:
        if self._analyzer_overrides is not None:
            return list(self._analyzer_overrides)
        enabled = config.analyzers.enabled if config is not None else None
        return list(discover_analyzers(enabled or None))

    def _execute_analyzers(
        self, context: AnalysisContext, analyzers: Sequence[Analyzer]
    ) -> Dict[str, Any]:
        sections: Dict[str, Any] = {}
        for analyzer in analyzers:
            name = analyzer.__class__.__name__
            if not analyzer.supports(context):
                self.logger.debug("Skipping analyzer %s", name)
                continue
            self.logger.debug("Running analyzer %s", name)
            result = analyzer.analyze(context)
            for section, value in result.items():
                if section in sections:
                    self.logger.warning(
                        "Analyzer %s overrides section '%s'", name, section
                    )
                sections[section] = value
        return sections

    def _resolve_entries(
        self,
        graph: ModuleGraph,
        package: PackageConfig,
        extra: Sequence[str],
        root: str,
    ) -> FrozenSet[str]:
        manifest_entries = resolve_entry_files(graph, sorted(package.entry_points.all), root)
        caller_entries = resolve_entry_files(graph, extra, root)
        for specifier in extra:
            if resolve_entry_file(graph, specifier, root) is None:
                self.logger.warning("Entry path %s is not part of the module graph", specifier)
        role_entries = {key for key, node in graph.items() if node.role == "entry"}
        return frozenset(manifest_entries | caller_entries | role_entries)

    @staticmethod
    def _entry_conditions(
        manifest: Mapping[str, Any], graph: ModuleGraph, root: str
    ) -> Dict[str, Tuple[str, ...]]:
        exports_map = analyze_exports_map(manifest)
        conditions: Dict[str, List[str]] = {}
        for target, names in entry_conditions_by_target(exports_map).items():
            key = resolve_entry_file(graph, target, root)
            if key is None:
                continue
            merged = conditions.setdefault(key, [])
            merged.extend(name for name in names if name not in merged)
        return {key: tuple(names) for key, names in conditions.items()}


def build_public_api(graph: ModuleGraph, entry_ids: FrozenSet[str]) -> List[PublicApiEntry]:
    """Original (non re-export) exports of every entry file, in graph order."""
    return [
        PublicApiEntry(
            entry_point=node.relative_path,
            exports=tuple(export for export in node.exports if not export.is_reexport),
        )
        for key, node in graph.items()
        if key in entry_ids
    ]


def build_module_graph_summary(graph: ModuleGraph) -> ModuleGraphSummary:
    total_imports = 0
    total_exports = 0
    for node in graph.values():
        total_imports += len(node.imports.internal) + len(node.imports.external)
        total_exports += len(node.exports)
    return ModuleGraphSummary(
        total_files=len(graph),
        total_imports=total_imports,
        total_exports=total_exports,
    )


def build_file_analysis(graph: ModuleGraph, entry_ids: FrozenSet[str]) -> List[FileAnalysis]:
    return [
        FileAnalysis(
            path=key,
            relative_path=node.relative_path,
            role=node.role,
            export_count=len(node.exports),
            import_count=len(node.imports.internal),
            external_import_count=len(node.imports.external),
            is_barrel=node.role == "barrel",
            is_entry_point=key in entry_ids,
        )
        for key, node in graph.items()
    ]


__all__ = [
    "AnalysisOutcome",
    "Orchestrator",
    "build_file_analysis",
    "build_module_graph_summary",
    "build_public_api",
]
