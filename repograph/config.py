"""Configuration loading for repograph (.repograph.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from .models import ArchitectureLayer

CONFIG_FILENAME = ".repograph.yml"
DEFAULT_GRAPH_PATH = ".repograph/graph.json"
DEFAULT_OUTPUT_DIR = ".repograph/report"
REPORT_FORMATS: Tuple[str, ...] = ("json", "markdown")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AnalyzerConfig:
    """Analyzer enablement. An empty list runs every analyzer."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class InsightsConfig:
    most_imported_limit: int = 10


@dataclass
class ReportConfig:
    """Where and how reports are written."""

    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    formats: List[str] = field(default_factory=lambda: list(REPORT_FORMATS))


@dataclass
class RepographConfig:
    """Represents the high-level settings defined in .repograph.yml."""

    root: Path
    graph: Path = Path(DEFAULT_GRAPH_PATH)
    entry_paths: List[str] = field(default_factory=list)
    analyzers: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    insights: InsightsConfig = field(default_factory=InsightsConfig)
    layers: Optional[Tuple[ArchitectureLayer, ...]] = None
    report: ReportConfig = field(default_factory=ReportConfig)

    @property
    def graph_path(self) -> Path:
        return self.graph if self.graph.is_absolute() else self.root / self.graph

    @property
    def output_dir(self) -> Path:
        output = self.report.output_dir
        return output if output.is_absolute() else self.root / output


def load_config(config_path: Path) -> RepographConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RepographConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = RepographConfig(root=root)

    graph = _as_str(data.get("graph"))
    if graph:
        config.graph = Path(graph)

    config.entry_paths = _as_str_list(data.get("entry_paths"))

    analyzer_data = _as_dict(data.get("analyzers"))
    if analyzer_data:
        config.analyzers.enabled = _as_str_list(analyzer_data.get("enabled"))

    insights_data = _as_dict(data.get("insights"))
    limit = _as_int(insights_data.get("most_imported_limit"))
    if limit is not None and limit >= 0:
        config.insights.most_imported_limit = limit

    architecture_data = _as_dict(data.get("architecture"))
    layers = _parse_layers(architecture_data.get("layers"))
    if layers:
        config.layers = layers

    report_data = _as_dict(data.get("report"))
    output_dir = _as_str(report_data.get("output_dir"))
    if output_dir:
        config.report.output_dir = Path(output_dir)
    formats = [fmt.lower() for fmt in _as_str_list(report_data.get("formats"))]
    formats = [fmt for fmt in formats if fmt in REPORT_FORMATS]
    if formats:
        config.report.formats = formats

    return config


def _parse_layers(value: Any) -> Tuple[ArchitectureLayer, ...]:
    if not isinstance(value, list):
        return ()
    layers: List[ArchitectureLayer] = []
    for item in value:
        entry = _as_dict(item)
        name = _as_str(entry.get("name"))
        patterns = _as_str_list(entry.get("paths"))
        if not name or not patterns:
            continue
        layers.append(
            ArchitectureLayer(
                name=name,
                path_patterns=tuple(patterns),
                allowed_dependency_layers=tuple(_as_str_list(entry.get("depends_on"))),
                description=_as_str(entry.get("description")) or "",
            )
        )
    return tuple(layers)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnalyzerConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "InsightsConfig",
    "ReportConfig",
    "RepographConfig",
    "load_config",
]
