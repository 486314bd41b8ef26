"""Render a :class:`RepoAnalysis` into JSON and Markdown report files."""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..analyzers.architecture import PATTERN_DESCRIPTIONS
from ..logging import get_logger
from ..models import ExportFlow, RepoAnalysis

ANALYSIS_JSON = "analysis.json"

# (file name, template, section the document needs or None when always written)
MARKDOWN_DOCUMENTS: Tuple[Tuple[str, str, Optional[str]], ...] = (
    ("ANALYSIS_SUMMARY.md", "summary.md.j2", None),
    ("PUBLIC_API.md", "public_api.md.j2", None),
    ("DEPENDENCIES.md", "dependencies.md.j2", "dependencies"),
    ("INSIGHTS.md", "insights.md.j2", "insights"),
    ("ARCHITECTURE.md", "architecture.md.j2", "architecture"),
    ("EXPORT_FLOWS.md", "export_flows.md.j2", "exportFlows"),
)

_UNUSED_EXPORT_LIMIT = 50
_EXTERNAL_TABLE_LIMIT = 30
_SCRIPT_LIMIT = 10
_SCRIPT_WIDTH = 50


class ReportBuilder:
    """Renders report documents from templates shipped with the package."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.env = self._create_env(templates_dir)
        self.logger = get_logger("report")

    def render_json(self, analysis: RepoAnalysis) -> str:
        return json.dumps(analysis.to_dict(), indent=2) + "\n"

    def render_markdown(self, analysis: RepoAnalysis) -> Dict[str, str]:
        """Return ``file name -> content`` for every applicable Markdown document."""
        context = self._build_context(analysis)
        documents: Dict[str, str] = {}
        for filename, template_name, section in MARKDOWN_DOCUMENTS:
            if section is not None and section not in analysis.sections:
                self.logger.debug("Skipping %s; section '%s' not produced", filename, section)
                continue
            template = self.env.get_template(template_name)
            documents[filename] = template.render(**context)
        return documents

    def write(self, analysis: RepoAnalysis, output_dir: Path, formats: Sequence[str]) -> List[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        written: List[Path] = []
        requested = {fmt.lower() for fmt in formats}
        unknown = requested - {"json", "markdown"}
        if unknown:
            raise ValueError(f"Unknown report formats: {', '.join(sorted(unknown))}")

        if "json" in requested:
            target = output_dir / ANALYSIS_JSON
            target.write_text(self.render_json(analysis), encoding="utf-8")
            written.append(target)

        if "markdown" in requested:
            for filename, content in self.render_markdown(analysis).items():
                target = output_dir / filename
                target.write_text(content, encoding="utf-8")
                written.append(target)

        for path in written:
            self.logger.debug("Wrote %s", path)
        return written

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    @staticmethod
    def _build_context(analysis: RepoAnalysis) -> Dict[str, Any]:
        package = analysis.package
        scripts = [
            (name, _shorten(command, _SCRIPT_WIDTH))
            for name, command in list(package.scripts.items())[:_SCRIPT_LIMIT]
        ]
        insights = analysis.insights
        architecture = analysis.architecture
        external = analysis.sections.get("externalDependencies") or []

        return {
            "analysis": analysis,
            "metadata": analysis.metadata,
            "package": package,
            "entry_points": sorted(package.entry_points.all),
            "scripts": scripts,
            "module_graph": analysis.module_graph,
            "public_api": analysis.public_api,
            "dependencies": analysis.dependencies,
            "dependency_usage": analysis.dependency_usage,
            "external_dependencies": list(external)[:_EXTERNAL_TABLE_LIMIT],
            "insights": insights,
            "unused_exports": list(insights.unused_exports[:_UNUSED_EXPORT_LIMIT]) if insights else [],
            "unused_overflow": (
                max(len(insights.unused_exports) - _UNUSED_EXPORT_LIMIT, 0) if insights else 0
            ),
            "architecture": architecture,
            "pattern_description": (
                PATTERN_DESCRIPTIONS.get(architecture.pattern, "") if architecture else ""
            ),
            "export_flows": analysis.export_flows,
            "flows_by_origin": group_flows_by_origin(analysis.export_flows),
            "reexported_count": sum(
                1 for flow in analysis.export_flows.values() if flow.re_export_chain
            ),
        }


def group_flows_by_origin(flows: Dict[str, ExportFlow]) -> "OrderedDict[str, List[ExportFlow]]":
    grouped: "OrderedDict[str, List[ExportFlow]]" = OrderedDict()
    for flow in flows.values():
        grouped.setdefault(flow.defining_file, []).append(flow)
    return grouped


def write_reports(
    analysis: RepoAnalysis, output_dir: Path, formats: Sequence[str] = ("json", "markdown")
) -> List[Path]:
    """Write the requested report formats and return the paths written."""
    return ReportBuilder().write(analysis, Path(output_dir), formats)


def _shorten(text: str, width: int) -> str:
    return text if len(text) <= width else f"{text[:width]}..."


__all__ = ["MARKDOWN_DOCUMENTS", "ReportBuilder", "group_flows_by_origin", "write_reports"]
