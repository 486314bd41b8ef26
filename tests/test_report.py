from __future__ import annotations

import json
from pathlib import Path

import pytest

from repograph.analyzers.graph import GraphAnalyzer
from repograph.analyzers.manifest import load_package_json
from repograph.graph_loader import load_graph_file
from repograph.orchestrator import Orchestrator
from repograph.report import ReportBuilder, group_flows_by_origin, write_reports
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def sample_analysis(repo_builder: RepoBuilder):
    repo_builder.sample()
    root = repo_builder.path()
    return Orchestrator().analyze(
        load_package_json(root),
        load_graph_file(root / ".repograph" / "graph.json"),
        root=str(root),
    )


def test_json_only_writes_analysis_json(sample_analysis, tmp_path: Path) -> None:
    written = write_reports(sample_analysis, tmp_path / "out", ["json"])

    assert written == [tmp_path / "out" / "analysis.json"]
    data = json.loads(written[0].read_text(encoding="utf-8"))
    assert data["package"]["name"] == "sample-lib"
    assert data["moduleGraph"]["totalFiles"] == 6
    assert data["insights"]["circularDependencies"] == [["src/utils/a.ts", "src/utils/b.ts"]]
    assert data["dependencies"]["unused"] == ["is-even"]
    assert data["exportFlows"]["Button"]["publicFromEntryPoints"] == ["src/index.ts"]
    assert data["publicAPI"][0]["entryPoint"] == "src/index.ts"


def test_markdown_writes_every_document(sample_analysis, tmp_path: Path) -> None:
    written = write_reports(sample_analysis, tmp_path, ["markdown"])

    assert sorted(path.name for path in written) == [
        "ANALYSIS_SUMMARY.md",
        "ARCHITECTURE.md",
        "DEPENDENCIES.md",
        "EXPORT_FLOWS.md",
        "INSIGHTS.md",
        "PUBLIC_API.md",
    ]
    summary = (tmp_path / "ANALYSIS_SUMMARY.md").read_text(encoding="utf-8")
    assert summary.startswith("# Repository Analysis: sample-lib")

    insights = (tmp_path / "INSIGHTS.md").read_text(encoding="utf-8")
    assert "src/utils/a.ts -> src/utils/b.ts" in insights
    assert "`unusedHelper` in `src/utils/format.ts`" in insights

    architecture = (tmp_path / "ARCHITECTURE.md").read_text(encoding="utf-8")
    assert "**Pattern:** layered" in architecture

    public_api = (tmp_path / "PUBLIC_API.md").read_text(encoding="utf-8")
    assert "### `VERSION`" in public_api
    assert "sample-lib@1.2.3" in public_api


def test_documents_for_missing_sections_are_skipped(repo_builder: RepoBuilder) -> None:
    graph = repo_builder.graph.file("src/a.ts", "a").build()
    analysis = Orchestrator(analyzers=[GraphAnalyzer()]).analyze({"name": "demo"}, graph)

    documents = ReportBuilder().render_markdown(analysis)

    assert set(documents) == {"ANALYSIS_SUMMARY.md", "PUBLIC_API.md", "INSIGHTS.md"}
    assert "_No circular dependencies detected_" in documents["INSIGHTS.md"]


def test_unknown_format_raises(sample_analysis, tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        write_reports(sample_analysis, tmp_path, ["json", "pdf"])
    assert not (tmp_path / "analysis.json").exists()


def test_group_flows_by_origin(sample_analysis) -> None:
    grouped = group_flows_by_origin(sample_analysis.export_flows)

    assert list(grouped["src/utils/format.ts"]) == [
        sample_analysis.export_flows["format"],
        sample_analysis.export_flows["unusedHelper"],
    ]
    assert [flow.exported_name for flow in grouped["src/index.ts"]] == ["VERSION"]
