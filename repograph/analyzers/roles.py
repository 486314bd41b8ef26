"""Path heuristics that classify a file's role in the codebase."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Sequence

from ..models import ExportRecord

_CONFIG_NAMES = {"tsconfig.json", "jest.config.ts", "vitest.config.ts"}
_INDEX_NAMES = {"index.ts", "index.js"}
_RC_FILE = re.compile(r"^\.[\w-]*rc(?:\.[\w]+)*$")


def classify_role(path: str, exports: Sequence[ExportRecord] = (), is_entry: bool = False) -> str:
    """Return the role tag for ``path``.

    Rules are checked in order: entry, config, test, type, barrel, util,
    component, service. Anything else is ``unknown``.
    """
    normalised = "/" + path.replace("\\", "/").lower().lstrip("/")
    file_name = PurePosixPath(normalised).name

    if is_entry:
        return "entry"

    if ".config." in file_name or _RC_FILE.match(file_name) or file_name in _CONFIG_NAMES:
        return "config"

    if (
        ".test." in file_name
        or ".spec." in file_name
        or "__tests__" in normalised
        or "/test/" in normalised
        or "/tests/" in normalised
    ):
        return "test"

    if file_name.endswith(".d.ts") or "/types/" in normalised:
        return "type"

    if file_name in _INDEX_NAMES and exports:
        reexports = sum(1 for export in exports if export.is_reexport)
        if reexports > len(exports) * 0.5:
            return "barrel"

    if any(segment in normalised for segment in ("/utils/", "/util/", "/helpers/", "/lib/")):
        return "util"

    if "/components/" in normalised or file_name.endswith((".tsx", ".vue")):
        return "component"

    if "/services/" in normalised or "/service/" in normalised or "service." in file_name:
        return "service"

    return "unknown"


__all__ = ["classify_role"]
