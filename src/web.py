# ABOUTME: ASGI web entry point exposing the dust views as JSON endpoints.
# ABOUTME: Thin FastAPI routes that parse query params and delegate to DustService.

import logging
import os
import re
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import TypeAdapter

from src.cache import ResultCache
from src.config import Settings, configure_logging
from src.deps import DustDeps, create_http_client
from src.dust_service import DustService, InvalidRequestError, make_window
from src.models import MapPoint, Observation, Report, Summary, WindRoseBin

logger = logging.getLogger(__name__)

_observations = TypeAdapter(list[Observation])
_map_points = TypeAdapter(list[MapPoint])
_wind_rose = TypeAdapter(list[WindRoseBin])
_summary = TypeAdapter(Summary)
_report = TypeAdapter(Report)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_hours(raw: str | None, default: int) -> int:
    """Lenient hour parsing: reads a leading integer, so "36.5" and "12h" give 36 and 12.

    Anything without a leading integer, or non-positive, falls back to the default.
    """
    if raw is None:
        return default
    match = _LEADING_INT.match(raw)
    if match is None:
        return default
    hours = int(match.group(1))
    return hours if hours > 0 else default


def build_service(settings: Settings) -> DustService:
    deps = DustDeps(http_client=create_http_client(settings), settings=settings)
    return DustService(deps, ResultCache(ttl_seconds=settings.cache_ttl_seconds))


async def _respond(
    adapter: TypeAdapter,
    call: Callable[[], Awaitable[Any]],
    failure: str,
) -> Response:
    """Run a service call and serialize it; NaN values come out as null."""
    try:
        result = await call()
    except InvalidRequestError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception:
        logger.exception(failure)
        return JSONResponse({"error": failure}, status_code=500)
    return Response(content=adapter.dump_json(result), media_type="application/json")


def create_app(service: DustService | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        owned = app.state.service is None
        if owned:
            app.state.service = build_service(settings)
        yield
        if owned:
            await app.state.service.deps.http_client.aclose()
            app.state.service = None

    app = FastAPI(title="Dust Dashboard", lifespan=lifespan)
    app.state.service = service

    def window_from(request: Request):
        q = request.query_params
        return make_window(parse_hours(q.get("hours"), settings.default_hours), q.get("start"), q.get("end"))

    @app.get("/api/dust/all")
    async def all_data(request: Request) -> Response:
        svc = request.app.state.service
        return await _respond(
            _observations, lambda: svc.all_observations(window_from(request)), "Failed to fetch dust data"
        )

    @app.get("/api/dust/summary")
    async def summary(request: Request) -> Response:
        svc = request.app.state.service
        return await _respond(_summary, lambda: svc.summary(window_from(request)), "Failed to generate summary")

    @app.get("/api/dust/map")
    async def map_data(request: Request) -> Response:
        svc = request.app.state.service
        return await _respond(_map_points, lambda: svc.map_points(window_from(request)), "Failed to generate map data")

    @app.get("/api/dust/windrose")
    async def wind_rose(request: Request) -> Response:
        svc = request.app.state.service
        station = request.query_params.get("station")
        return await _respond(
            _wind_rose,
            lambda: svc.wind_rose(window_from(request), station),
            "Failed to generate wind rose data",
        )

    @app.get("/api/dust/report")
    async def report(request: Request) -> Response:
        svc = request.app.state.service
        return await _respond(
            _report, lambda: svc.report(request.query_params.get("date")), "Failed to generate report"
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "3000")))
