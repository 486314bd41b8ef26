"""FastAPI application entrypoint for repograph service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import ConfigError
from ..graph_loader import GraphSnapshotError, load_graph
from ..orchestrator import AnalysisOutcome, Orchestrator


class AnalyzeRequest(BaseModel):
    manifest: Dict[str, Any] = Field(default_factory=dict)
    graph: Dict[str, Any]
    root: str = "."
    entry_paths: List[str] = Field(default_factory=list)
    most_imported_limit: int = Field(default=10, ge=0)


class AnalyzePathRequest(BaseModel):
    path: str
    graph_path: Optional[str] = None
    output_dir: Optional[str] = None
    formats: Optional[List[str]] = None
    entry_paths: List[str] = Field(default_factory=list)
    most_imported_limit: Optional[int] = Field(default=None, ge=0)


class AnalyzePathResponse(BaseModel):
    status: str
    report_paths: List[str]
    analysis: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing repograph analyses."""

    app = FastAPI(title="repograph service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        def _run() -> Dict[str, Any]:
            graph = load_graph(payload.graph, root=payload.root)
            analysis = orchestrator.analyze(
                payload.manifest,
                graph,
                root=payload.root,
                entry_paths=payload.entry_paths,
                most_imported_limit=payload.most_imported_limit,
            )
            return analysis.to_dict()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run)

    @app.post("/analyze/path", response_model=AnalyzePathResponse)
    async def analyze_path(
        payload: AnalyzePathRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnalyzePathResponse:
        def _run() -> AnalysisOutcome:
            return orchestrator.run_analysis(
                payload.path,
                graph_path=payload.graph_path,
                output_dir=payload.output_dir,
                formats=payload.formats,
                entry_paths=payload.entry_paths,
                most_imported_limit=payload.most_imported_limit,
            )

        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, _run)
        return AnalyzePathResponse(
            status="ok",
            report_paths=[str(path) for path in outcome.report_paths],
            analysis=outcome.analysis.to_dict(),
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(GraphSnapshotError)
    async def snapshot_error_handler(_: Any, exc: GraphSnapshotError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)
