"""Dependency and architecture analysis for JavaScript/TypeScript packages."""

__version__ = "0.1.0"

__all__ = ["__version__"]
