"""Tests for architecture pattern detection and layer checks."""

from __future__ import annotations

import pytest

from repograph.analyzers.architecture import (
    ArchitectureAnalyzer,
    DEFAULT_LAYERS,
    assign_layers,
    compile_pattern,
    detect_architecture,
    detect_architecture_pattern,
    find_layer_violations,
    matches_pattern,
)
from repograph.analyzers.base import AnalysisContext
from repograph.analyzers.manifest import analyze_package
from repograph.models import ArchitectureLayer, LayerViolation


@pytest.mark.parametrize(
    ("glob", "path", "expected"),
    [
        ("**/components/**", "src/components/Button.tsx", True),
        ("**/components/**", "components/Button.tsx", True),
        ("**/components/**", "src/components/forms/Input.tsx", True),
        ("**/components/**", "src/componentsx/Button.tsx", False),
        ("**/components/**", "SRC/Components/Button.tsx", True),
        ("src/*.ts", "src/a.ts", True),
        ("src/*.ts", "src/nested/a.ts", False),
        ("src/?.ts", "src/a.ts", True),
        ("src/?.ts", "src/ab.ts", False),
        ("src/[x].ts", "src/[x].ts", True),
    ],
)
def test_matches_pattern(glob: str, path: str, expected: bool) -> None:
    assert matches_pattern(path, glob) is expected


def test_compile_pattern_is_anchored() -> None:
    pattern = compile_pattern("src/*.ts")

    assert pattern.match("src/a.ts")
    assert not pattern.match("lib/src/a.ts")
    assert not pattern.match("src/a.tsx")


@pytest.mark.parametrize(
    ("paths", "expected"),
    [
        (["packages/core/src/index.ts", "packages/cli/src/main.ts"], "monorepo"),
        (["apps/web/src/page.tsx"], "monorepo"),
        (["src/features/auth/login.ts", "src/index.ts"], "feature-based"),
        (["src/components/Button.tsx", "src/utils/format.ts"], "layered"),
        (["src/components/Button.tsx", "src/services/api.ts"], "layered"),
        (["src/a.ts", "src/b.ts", "src/sub/c.ts"], "flat"),
        (["index.ts", "src/a.ts"], "unknown"),
        (["src/a/b/c/d.ts"], "unknown"),
        (["src/a.ts", "lib/b.ts"], "unknown"),
    ],
)
def test_detect_architecture_pattern(graph_builder, paths, expected) -> None:
    for path in paths:
        graph_builder.file(path)

    assert detect_architecture_pattern(graph_builder.build()) == expected


def test_empty_graph_pattern_is_unknown() -> None:
    assert detect_architecture_pattern({}) == "unknown"


def test_package_named_directory_fragment_is_not_a_monorepo(graph_builder) -> None:
    graph = graph_builder.file("src/mypackages/a.ts").file("src/mypackages/b.ts").build()

    assert detect_architecture_pattern(graph) == "flat"


def test_shared_importing_presentation_is_a_violation(graph_builder) -> None:
    graph = (
        graph_builder.file("src/components/Button.tsx")
        .file("src/utils/format.ts")
        .imports("src/utils/format.ts", "src/components/Button.tsx", "Button")
        .imports("src/components/Button.tsx", "src/utils/format.ts", "format")
        .build()
    )

    violations = find_layer_violations(graph, DEFAULT_LAYERS)

    assert violations == [
        LayerViolation(
            from_file="src/utils/format.ts",
            to_file="src/components/Button.tsx",
            from_layer="shared",
            to_layer="presentation",
        )
    ]


def test_detect_architecture_reports_populated_layers_only(graph_builder) -> None:
    graph = (
        graph_builder.file("src/components/Button.tsx")
        .file("src/utils/format.ts")
        .file("src/helpers/clock.ts")
        .file("src/other.ts")
        .imports("src/utils/format.ts", "src/components/Button.tsx", "Button")
        .imports("src/helpers/clock.ts", "src/components/Button.tsx", "Button")
        .imports("src/utils/format.ts", "src/components/Button.tsx", "Icon")
        .build()
    )

    analysis = detect_architecture(graph)

    assert analysis.pattern == "layered"
    assert [layer.name for layer in analysis.layers] == ["presentation", "shared"]
    presentation, shared = analysis.layers
    assert presentation.files == ("src/components/Button.tsx",)
    assert presentation.violated_by == ("src/utils/format.ts", "src/helpers/clock.ts")
    assert shared.files == ("src/utils/format.ts", "src/helpers/clock.ts")
    assert shared.violated_by == ()
    assert len(analysis.violations) == 2


def test_first_matching_layer_wins(graph_builder) -> None:
    graph = graph_builder.file("src/components/utils/x.ts").build()

    assignment = assign_layers(graph, DEFAULT_LAYERS)

    assert assignment == {"/repo/src/components/utils/x.ts": "presentation"}


def test_same_layer_and_unlayered_edges_are_allowed(graph_builder) -> None:
    graph = (
        graph_builder.file("src/utils/a.ts")
        .file("src/utils/b.ts")
        .file("src/main.ts")
        .imports("src/utils/a.ts", "src/utils/b.ts", "b")
        .imports("src/utils/a.ts", "src/main.ts", "main")
        .build()
    )

    assert find_layer_violations(graph, DEFAULT_LAYERS) == []


def test_analyzer_uses_configured_layers(graph_builder) -> None:
    graph = (
        graph_builder.file("src/ui/panel.tsx")
        .file("src/core/engine.ts")
        .imports("src/core/engine.ts", "src/ui/panel.tsx", "Panel")
        .build()
    )
    layers = (
        ArchitectureLayer(name="ui", path_patterns=("**/ui/**",), allowed_dependency_layers=("core",)),
        ArchitectureLayer(name="core", path_patterns=("**/core/**",)),
    )
    context = AnalysisContext(graph=graph, package=analyze_package({}), layers=layers)

    result = ArchitectureAnalyzer().analyze(context)["architecture"]

    assert [layer.name for layer in result.layers] == ["ui", "core"]
    assert result.violations == (
        LayerViolation(
            from_file="src/core/engine.ts",
            to_file="src/ui/panel.tsx",
            from_layer="core",
            to_layer="ui",
        ),
    )
