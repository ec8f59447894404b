"""FastAPI application exposing the story index to a development server."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..errors import AggregateIndexingError
from ..generator import StoryIndexGenerator
from ..logging import get_logger

logger = get_logger("service")


class InvalidateRequest(BaseModel):
    specifier: int
    import_path: str
    removed: bool = False


class StatusResponse(BaseModel):
    status: str


def create_app(generator_factory: Callable[[], StoryIndexGenerator]) -> FastAPI:
    """Create the FastAPI application serving ``/index.json`` for one generator."""

    app = FastAPI(title="storyindex", version="1.0.0")
    # One generator per app: its caches are what make repeated requests cheap.
    generator = generator_factory()

    @app.get("/health", response_model=StatusResponse)
    async def health() -> StatusResponse:
        return StatusResponse(status="ok")

    @app.get("/index.json")
    async def index_json() -> Dict[str, Any]:
        index = await generator.get_index()
        return index.to_dict()

    @app.post("/invalidate", response_model=StatusResponse)
    async def invalidate(payload: InvalidateRequest) -> StatusResponse:
        if not 0 <= payload.specifier < len(generator.specifiers):
            raise HTTPException(status_code=404, detail=f"Unknown specifier {payload.specifier}")
        specifier = generator.specifiers[payload.specifier]
        generator.invalidate(specifier, payload.import_path, payload.removed)
        logger.debug(
            "Invalidated %s (removed=%s)", payload.import_path, payload.removed
        )
        return StatusResponse(status="ok")

    @app.exception_handler(AggregateIndexingError)
    async def indexing_error_handler(_: Any, exc: AggregateIndexingError) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "errors": [
                    {"message": error.message, "importPaths": error.import_paths}
                    for error in exc.errors
                ],
            },
        )

    return app


def run_service(path: str = ".", host: str = "127.0.0.1", port: int = 6006) -> None:  # pragma: no cover - integration path
    config = load_config(Path(path))
    app = create_app(lambda: StoryIndexGenerator.from_config(config))
    uvicorn.run(app, host=host, port=port)
