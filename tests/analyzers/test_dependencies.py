"""Tests for internal edges and declared-vs-used dependency analysis."""

from __future__ import annotations

import pytest

from repograph.analyzers.dependencies import (
    analyze_dependencies,
    analyze_detailed_dependency_usage,
    build_external_dependencies,
    build_internal_dependencies,
    is_builtin_module,
)
from repograph.models import DependencyInfo


@pytest.fixture
def declared() -> DependencyInfo:
    return DependencyInfo(
        production=("left-pad", "is-even", "is-odd"),
        development=("vitest", "typescript"),
    )


@pytest.fixture
def graph(graph_builder):
    return (
        graph_builder.file("src/index.ts", external=["left-pad", "node:fs", "fs/promises"])
        .file("src/cli.ts", external=["chalk", "left-pad"])
        .file("src/__tests__/index.test.ts", external=["vitest", "is-odd"])
        .file("vitest.config.ts", external=["vitest"])
        .build()
    )


def test_declared_but_unreferenced_package_is_unused(graph, declared) -> None:
    analysis = analyze_dependencies(graph, declared)

    assert analysis.unused == ("is-even", "typescript")
    assert "left-pad" not in analysis.unused


def test_package_declared_twice_is_reported_unused_once(graph) -> None:
    declared = DependencyInfo(production=("react", "left-pad"), development=("react",))

    analysis = analyze_dependencies(graph, declared)

    assert analysis.unused == ("react",)


def test_undeclared_non_builtin_package_is_unlisted(graph, declared) -> None:
    analysis = analyze_dependencies(graph, declared)

    assert analysis.unlisted == ("chalk",)


def test_production_dependency_used_only_by_tests_is_misplaced(graph, declared) -> None:
    analysis = analyze_dependencies(graph, declared)

    assert analysis.misplaced == ("is-odd",)


def test_used_sets_split_by_test_role(graph, declared) -> None:
    analysis = analyze_dependencies(graph, declared)

    assert set(analysis.used_development) == {"vitest", "is-odd"}
    assert {"left-pad", "chalk", "vitest"} <= set(analysis.used_production)
    assert "is-odd" not in analysis.used_production


def test_left_pad_used_and_is_even_unused(graph_builder) -> None:
    graph = graph_builder.file("src/pad.ts", external=["left-pad"]).build()
    declared = DependencyInfo(production=("left-pad", "is-even"))

    analysis = analyze_dependencies(graph, declared)

    assert analysis.unused == ("is-even",)
    assert analysis.unlisted == ()
    assert analysis.misplaced == ()


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("fs", True),
        ("node:fs", True),
        ("fs/promises", True),
        ("node:fs/promises", True),
        ("diagnostics_channel", True),
        ("react", False),
        ("@scope/fs", False),
        ("test", False),
    ],
)
def test_is_builtin_module(name: str, expected: bool) -> None:
    assert is_builtin_module(name) is expected


def test_internal_dependencies_aggregate_records_per_target(graph_builder) -> None:
    graph = (
        graph_builder.file("src/a.ts")
        .file("src/b.ts", "x", "y")
        .imports("src/a.ts", "src/b.ts", "x")
        .imports("src/a.ts", "src/b.ts", "y")
        .build()
    )

    edges = build_internal_dependencies(graph)

    assert len(edges) == 1
    edge = edges[0]
    assert (edge.from_file, edge.to_file) == ("src/a.ts", "src/b.ts")
    assert edge.import_count == 2
    assert edge.identifiers == ("x", "y")


def test_internal_edge_to_file_outside_graph_keeps_raw_identity(graph_builder) -> None:
    graph = graph_builder.file("src/a.ts").imports("src/a.ts", "src/gone.ts", "z").build()

    edges = build_internal_dependencies(graph)

    assert edges[0].to_file == "/repo/src/gone.ts"
    assert graph["/repo/src/a.ts"].imported_by == frozenset()


def test_external_dependencies_flag_declared_and_dev_only(graph, declared) -> None:
    externals = {item.name: item for item in build_external_dependencies(graph, declared)}

    assert externals["vitest"].is_dev_only is True
    assert externals["vitest"].used_by == ("src/__tests__/index.test.ts", "vitest.config.ts")
    assert externals["left-pad"].is_dev_only is False
    assert externals["left-pad"].is_declared is True
    assert externals["chalk"].is_declared is False


def test_detailed_usage_reports_declaration_kind_and_stats(graph, declared) -> None:
    usage = analyze_detailed_dependency_usage(graph, declared)

    assert usage["left-pad"].declared_as == "production"
    assert usage["left-pad"].files_used_in == 2
    assert usage["vitest"].declared_as == "development"
    assert usage["chalk"].declared_as == "unlisted"
    assert usage["chalk"].to_dict()["stats"]["totalImports"] == 1


def test_none_graph_is_a_programming_error(declared) -> None:
    with pytest.raises(TypeError):
        analyze_dependencies(None, declared)
    with pytest.raises(TypeError):
        build_internal_dependencies(["not", "a", "graph"])
