from __future__ import annotations

import argparse
import random
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import uvicorn
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..canvas import render_map
from ..config import Config, load_config
from ..dungeon import parse_layout
from ..errors import GeneratorError, GeneratorNotFound
from ..generators import GeneratorSource, discover_generators
from ..logs import configure_logging

logger = structlog.get_logger()

RESERVED_QUERY_KEYS = {"seed", "generator"}


class GeneratorCatalog:
    def __init__(self, config: Config) -> None:
        self._config = config

    def list(self) -> Dict[str, Path]:
        return discover_generators(self._config.generators.directory, self._config.generators.extensions)

    def load(self, name: str, seed: Optional[int] = None) -> GeneratorSource:
        path = self.list().get(name)
        if path is None:
            raise GeneratorNotFound(f"Unknown generator '{name}'.")
        return GeneratorSource.load_generator_source(path, rng=random.Random(seed))


def create_app(config: Config) -> FastAPI:
    catalog = GeneratorCatalog(config)

    app = FastAPI(title="DM Binder", version="0.1.0")

    @app.get("/api/generators")
    async def list_generators() -> JSONResponse:
        return JSONResponse({name: str(path) for name, path in sorted(catalog.list().items())})

    @app.get("/api/generators/{name}", response_class=PlainTextResponse)
    async def generate(name: str, request: Request, seed: Optional[int] = None, generator: Optional[str] = None) -> PlainTextResponse:
        args = {key: value for key, value in request.query_params.items() if key not in RESERVED_QUERY_KEYS}
        try:
            source = catalog.load(name, seed=seed)
            if generator:
                source = source.select(generator)
            content = source.generate_content(args)
        except GeneratorNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (GeneratorError, ValueError) as exc:
            logger.warning("generation_failed", generator=name, error=str(exc))
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return PlainTextResponse(content)

    @app.post("/api/map")
    async def render(
        layout: Dict[str, Any] = Body(...),
        style: Optional[str] = None,
        cell_size: Optional[int] = None,
        html: bool = False,
    ) -> Response:
        try:
            parsed = parse_layout(layout)
            canvas_config = config.canvas.canvas_config(parsed.width, parsed.height, style=style, cell_size=cell_size)
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        output = render_map(parsed, canvas_config, html=html)
        return Response(content=output, media_type="text/html" if html else "image/svg+xml")

    return app


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the DM Binder generator service.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a dmbinder.toml settings file.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    args = parser.parse_args(argv)

    config = load_config(args.config.resolve() if args.config else None)
    configure_logging(config.logging.level, config.logging.format)
    app = create_app(config)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
