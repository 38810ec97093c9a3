"""HTTP surface: the streaming chat endpoint and a health check."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from mojo.config import Settings
from mojo.errors import ErrorCode, MojoError, ValidationError
from mojo.fanout import FanOutExecutor
from mojo.images import ImageLinkValidator
from mojo.llm.base import LLMProvider
from mojo.llm.openrouter import OpenRouterProvider
from mojo.modes import ModeRegistry
from mojo.models import SessionEvent
from mojo.orchestrator import SessionOrchestrator
from mojo.providers.exa import ExaClient
from mojo.providers.flights import AviationStackClient
from mojo.providers.maps import GoogleMapsClient, MapboxClient
from mojo.providers.media import TmdbClient, YouTubeDetailsClient
from mojo.providers.retrieval import FirecrawlClient
from mojo.providers.sandbox import SandboxClient
from mojo.providers.search import DuckDuckGoClient, TavilyClient
from mojo.providers.tripadvisor import TripAdvisorClient
from mojo.providers.weather import OpenWeatherClient
from mojo.schemas import ChatRequest
from mojo.tools.code_tools import CodeInterpreterTool, CurrencyConverterTool, StockChartTool
from mojo.tools.flight_tool import TrackFlightTool
from mojo.tools.media_tools import TmdbSearchTool, TrendingTool
from mojo.tools.place_tools import FindPlaceTool, NearbySearchTool, TextSearchTool
from mojo.tools.registry import ToolRegistry
from mojo.tools.research_tools import AcademicSearchTool, RetrieveTool, YouTubeSearchTool
from mojo.tools.weather_tool import WeatherTool
from mojo.tools.web_search_tool import WebSearchTool

LOGGER = logging.getLogger(__name__)


def build_registry(settings: Settings) -> ToolRegistry:
    """Wire every provider client into its tools."""

    timeout = settings.request_timeout_seconds
    fanout = FanOutExecutor(settings.fanout_max_concurrency)
    images = ImageLinkValidator(settings.image_probe_timeout_seconds)
    if settings.search_backend == "duckduckgo":
        backend: TavilyClient | DuckDuckGoClient = DuckDuckGoClient(timeout_seconds=timeout)
    else:
        backend = TavilyClient(settings.tavily_api_key, timeout_seconds=timeout)
    exa = ExaClient(settings.exa_api_key, timeout_seconds=timeout)
    tmdb = TmdbClient(settings.tmdb_api_key, timeout_seconds=timeout)
    google = GoogleMapsClient(settings.google_maps_api_key, timeout_seconds=timeout)
    mapbox = MapboxClient(settings.mapbox_access_token, timeout_seconds=timeout)
    sandbox = SandboxClient(
        settings.sandbox_timeout_seconds, settings.sandbox_memory_mb, python_executable=settings.sandbox_python or None
    )

    registry = ToolRegistry()
    for tool in (
        WebSearchTool(backend, fanout, images),
        AcademicSearchTool(exa),
        YouTubeSearchTool(exa, YouTubeDetailsClient(settings.yt_endpoint, timeout_seconds=timeout), fanout),
        RetrieveTool(FirecrawlClient(settings.firecrawl_api_key, timeout_seconds=timeout)),
        WeatherTool(OpenWeatherClient(settings.openweather_api_key, timeout_seconds=timeout)),
        FindPlaceTool(google, mapbox, fanout),
        TextSearchTool(mapbox),
        NearbySearchTool(TripAdvisorClient(settings.tripadvisor_api_key, timeout_seconds=timeout), google, fanout),
        TrackFlightTool(AviationStackClient(settings.aviation_stack_api_key, timeout_seconds=timeout)),
        TmdbSearchTool(tmdb),
        TrendingTool(tmdb, "movie"),
        TrendingTool(tmdb, "tv"),
        CodeInterpreterTool(sandbox),
        StockChartTool(sandbox),
        CurrencyConverterTool(sandbox),
    ):
        registry.register(tool)
    return registry


def sse_format(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


def error_response(code: ErrorCode, message: str, status: int, request_id: str) -> JSONResponse:
    """JSON error envelope returned when a request fails before streaming."""

    return JSONResponse(
        status_code=status,
        content={
            "error": message,
            "code": code.value,
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
        },
        headers={
            "X-Error-Code": code.value,
            "X-Request-ID": request_id,
            "Cache-Control": "no-store, must-revalidate",
        },
    )


def create_app(
    settings: Settings,
    *,
    llm: Optional[LLMProvider] = None,
    registry: Optional[ToolRegistry] = None,
    modes: Optional[ModeRegistry] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info(
            "Mojo Search ready: model=%s backend=%s modes=%s",
            settings.openrouter_model,
            settings.search_backend,
            ", ".join(app.state.modes.modes()),
        )
        yield
        LOGGER.info("Mojo Search shutdown complete")

    app = FastAPI(title="Mojo Search", lifespan=lifespan)
    app.state.settings = settings
    app.state.llm = llm or OpenRouterProvider(settings)
    app.state.registry = registry or build_registry(settings)
    app.state.modes = modes or ModeRegistry.default(app.state.registry)
    app.state.orchestrator = SessionOrchestrator(
        app.state.llm,
        app.state.registry,
        app.state.modes,
        max_steps=settings.max_steps,
        turn_timeout_seconds=settings.turn_timeout_seconds,
    )

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return {"status": "ok", "modes": request.app.state.modes.modes()}

    @app.post("/chat")
    async def chat(request: Request):
        request_id = str(uuid.uuid4())
        try:
            try:
                body = await request.json()
            except ValueError as exc:
                raise ValidationError("Request body must be valid JSON") from exc
            try:
                chat_request = ChatRequest.model_validate(body)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid request: {exc.errors(include_url=False)}") from exc

            stop = asyncio.Event()
            events = request.app.state.orchestrator.run(chat_request, stop)
            # Pull the first event here so setup failures still get the JSON envelope.
            first: SessionEvent | None = await anext(events, None)
        except MojoError as exc:
            LOGGER.warning("Request %s failed: %s", request_id, exc)
            return error_response(exc.code, exc.message, exc.status, request_id)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Request %s failed unexpectedly", request_id)
            return error_response(ErrorCode.INTERNAL_SERVER_ERROR, "Internal server error", 500, request_id)

        LOGGER.info("Chat request %s: mode=%s messages=%d", request_id, chat_request.mode, len(chat_request.messages))
        return StreamingResponse(
            _stream(first, events, stop, request_id),
            media_type="text/event-stream",
            headers={"X-Request-ID": request_id, "Cache-Control": "no-cache"},
        )

    return app


async def _stream(
    first: SessionEvent | None,
    events: AsyncIterator[SessionEvent],
    stop: asyncio.Event,
    request_id: str,
) -> AsyncIterator[str]:
    try:
        if first is not None:
            yield sse_format(first.to_dict())
        async for event in events:
            yield sse_format(event.to_dict())
    except MojoError as exc:
        LOGGER.warning("Stream %s failed: %s", request_id, exc)
        yield sse_format({"type": "error", "code": exc.code.value, "message": exc.message})
    except Exception:  # noqa: BLE001
        LOGGER.exception("Stream %s failed unexpectedly", request_id)
        yield sse_format(
            {"type": "error", "code": ErrorCode.INTERNAL_SERVER_ERROR.value, "message": "Internal server error"}
        )
    finally:
        stop.set()
        await events.aclose()  # type: ignore[attr-defined]
