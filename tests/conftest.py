from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.graph_builder import GraphBuilder
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def graph_builder() -> GraphBuilder:
    """Provide a fresh module graph builder rooted at /repo."""
    return GraphBuilder()


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)
