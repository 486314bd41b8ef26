"""Tests for analyzer discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from repograph.analyzers import Analyzer, discover_analyzers
from repograph.analyzers.graph import GraphAnalyzer


class DummyAnalyzer(Analyzer):
    """Test analyzer used for plugin discovery validation."""

    sections = ("dummy",)

    def analyze(self, context):  # pragma: no cover - unused
        return {"dummy": True}


def test_discover_analyzers_returns_builtin_analyzers() -> None:
    analyzers = discover_analyzers()
    classes = {type(analyzer) for analyzer in analyzers}
    assert GraphAnalyzer in classes
    assert len(analyzers) >= 5  # manifest, dependencies, graph, architecture, export_flows


def test_discover_analyzers_respects_enabled_filter() -> None:
    analyzers = discover_analyzers(["graph"])
    assert len(analyzers) == 1
    assert isinstance(analyzers[0], GraphAnalyzer)


def test_discover_analyzers_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(
        name="dummy",
        load=lambda: DummyAnalyzer,
    )

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "repograph.analyzers":
                return self
            return []

    monkeypatch.setattr(
        "repograph.analyzers.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    analyzers = discover_analyzers(["dummy"])
    assert len(analyzers) == 1
    assert isinstance(analyzers[0], DummyAnalyzer)


def test_discover_analyzers_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        discover_analyzers(["does-not-exist"])
