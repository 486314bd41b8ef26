"""Tests for manifest parsing: entry points, dependencies and the exports map."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from repograph.analyzers.manifest import (
    analyze_exports_map,
    analyze_package,
    entry_conditions_by_target,
    get_dependencies,
    get_entry_points,
    is_monorepo,
    load_package_json,
)
from repograph.models import ExportsCondition


def test_null_export_is_recorded_as_negated_entry() -> None:
    manifest = {
        "exports": {
            ".": {"import": "./dist/index.mjs", "require": "./dist/index.cjs"},
            "./internal": None,
        }
    }

    entry_points = get_entry_points(manifest)

    assert "!./internal" in entry_points.negated
    assert entry_points.is_negated("./internal")
    assert "./internal" not in entry_points.all
    assert entry_points.all == {"./dist/index.mjs", "./dist/index.cjs"}
    assert dict(entry_points.exports) == {".": "./dist/index.mjs"}


def test_bang_prefixed_leaf_is_negated_not_dropped() -> None:
    entry_points = get_entry_points({"exports": ["./a.js", "!./secret.js"]})

    assert entry_points.all == {"./a.js"}
    assert entry_points.negated == {"!./secret.js"}
    assert dict(entry_points.exports) == {".": "./a.js"}


def test_main_module_types_and_typings_are_entries() -> None:
    entry_points = get_entry_points(
        {"main": "./lib/index.js", "module": "./lib/index.mjs", "typings": "./lib/index.d.ts"}
    )

    assert entry_points.main == "./lib/index.js"
    assert entry_points.module == "./lib/index.mjs"
    assert entry_points.types == "./lib/index.d.ts"
    assert entry_points.all == {"./lib/index.js", "./lib/index.mjs", "./lib/index.d.ts"}


@pytest.mark.parametrize(
    ("manifest", "expected"),
    [
        ({"name": "tool", "bin": "./bin/cli.js"}, {"tool": "./bin/cli.js"}),
        ({"bin": "./bin/cli.js"}, {"default": "./bin/cli.js"}),
        ({"bin": {"tool": "./bin/cli.js", "broken": 3}}, {"tool": "./bin/cli.js"}),
    ],
)
def test_bin_field_normalises_to_mapping(manifest, expected) -> None:
    entry_points = get_entry_points(manifest)

    assert dict(entry_points.bin) == expected
    assert "./bin/cli.js" in entry_points.all


def test_get_dependencies_reads_each_field() -> None:
    deps = get_dependencies(
        {
            "dependencies": {"left-pad": "^1.0.0"},
            "devDependencies": {"vitest": "^1.0.0"},
            "peerDependencies": {"react": ">=18"},
        }
    )

    assert deps.production == ("left-pad",)
    assert deps.development == ("vitest",)
    assert deps.peer == ("react",)
    assert deps.all == {"left-pad", "vitest", "react"}


def test_analyze_package_fills_defaults_and_normalises_fields() -> None:
    package = analyze_package(
        {
            "description": "demo",
            "workspaces": {"packages": ["packages/*"]},
            "repository": {"type": "git", "url": "https://example.com/demo.git"},
            "scripts": {"build": "tsc", "bad": 1},
            "keywords": ["a", 2, "b"],
        },
        fallback_name="demo-dir",
    )

    assert package.name == "demo-dir"
    assert package.version == "0.0.0"
    assert package.workspaces == ("packages/*",)
    assert package.repository == "https://example.com/demo.git"
    assert dict(package.scripts) == {"build": "tsc"}
    assert package.keywords == ("a", "b")


def test_malformed_manifest_degrades_to_empty_results() -> None:
    package = analyze_package(["not", "a", "mapping"])

    assert package.name == "package"
    assert package.entry_points.all == frozenset()
    assert package.dependencies.all == frozenset()
    assert get_dependencies({"dependencies": "oops"}).production == ()


def test_is_monorepo() -> None:
    assert is_monorepo({"workspaces": ["packages/*"]})
    assert not is_monorepo({"name": "single"})


def test_exports_map_lists_paths_wildcards_and_internal_files(graph_builder) -> None:
    manifest = {
        "exports": {
            ".": {"types": "./lib/index.d.ts", "import": "./lib/index.js"},
            "./utils": "./lib/utils.js",
            "./features/*": "./lib/features/*.js",
            "./internal": None,
        }
    }
    graph = (
        graph_builder.file("lib/index.ts")
        .file("lib/utils.ts")
        .file("lib/secret.ts")
        .build()
    )

    analysis = analyze_exports_map(manifest, graph)

    assert [path.path for path in analysis.paths] == [".", "./utils"]
    assert analysis.paths[0].conditions == (
        ExportsCondition(condition="types", target="./lib/index.d.ts"),
        ExportsCondition(condition="import", target="./lib/index.js"),
    )
    assert analysis.paths[1].conditions == (
        ExportsCondition(condition="default", target="./lib/utils.js"),
    )
    assert analysis.wildcards == ("./features/*",)
    assert analysis.internal_only == ("lib/secret.ts",)


def test_exports_map_without_exports_field_marks_everything_internal(graph_builder) -> None:
    graph = graph_builder.file("src/a.ts").build()

    analysis = analyze_exports_map({"name": "x"}, graph)

    assert analysis.paths == ()
    assert analysis.internal_only == ("src/a.ts",)


def test_entry_conditions_by_target_groups_condition_names() -> None:
    analysis = analyze_exports_map(
        {"exports": {".": {"import": "./lib/index.js", "default": "./lib/index.js"}}}
    )

    assert entry_conditions_by_target(analysis) == {"lib/index.js": ("import", "default")}


def test_load_package_json(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_package_json(tmp_path)

    (tmp_path / "package.json").write_text("{not json", encoding="utf-8")
    assert load_package_json(tmp_path) == {}

    (tmp_path / "package.json").write_text(json.dumps({"name": "demo"}), encoding="utf-8")
    assert load_package_json(tmp_path) == {"name": "demo"}
