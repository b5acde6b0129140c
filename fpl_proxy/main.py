"""
FPL Proxy - FastAPI application
Proxies the Fantasy Premier League API with caching and source fallback
"""
import logging
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from fpl_proxy import __version__
from fpl_proxy.errors import PipelineError
from fpl_proxy.pipeline import FetchPipeline, build_pipeline
from fpl_proxy.resources import ResourceFamily
from config.settings import settings

load_dotenv()

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger("fpl_proxy")

# Version tracking
APP_VERSION = f"v{__version__}"
APP_NAME = "Fantasy PL Proxy"

# Browsers may cache successful responses for 5 minutes
SUCCESS_CACHE_CONTROL = "public, max-age=300"

app = FastAPI(
    title=APP_NAME,
    description="Cached, fallback-aware proxy for the Fantasy Premier League API",
    version=APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.state.pipeline = build_pipeline(settings)


async def get_pipeline(request: Request) -> FetchPipeline:
    """The process-wide pipeline, held on app state."""
    return request.app.state.pipeline


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "timestamp": _timestamp()},
    )


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.error(f"Request error on {request.url.path}: {exc.message}")
    return _error_response(exc.http_status, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return _error_response(422, f"Invalid request: {problems}")


async def _serve(pipeline: FetchPipeline, family: ResourceFamily, **params) -> Response:
    """Fetch through the pipeline and return the upstream body verbatim."""
    payload = await pipeline.fetch_async(family, params)
    return Response(
        content=payload.body,
        media_type=payload.content_type,
        headers={"cache-control": SUCCESS_CACHE_CONTROL},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "OK",
        "service": APP_NAME,
        "timestamp": _timestamp(),
    }


@app.get("/version")
async def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
async def cache_stats(pipeline: FetchPipeline = Depends(get_pipeline)):
    """Get cache statistics."""
    return pipeline.get_stats()


# ===== GAME DATA =====

@app.get("/bootstrap-static")
async def bootstrap_static(pipeline: FetchPipeline = Depends(get_pipeline)):
    """Players, teams and gameweeks for the season."""
    return await _serve(pipeline, ResourceFamily.BOOTSTRAP)


@app.get("/fixtures")
async def fixtures(pipeline: FetchPipeline = Depends(get_pipeline)):
    return await _serve(pipeline, ResourceFamily.FIXTURES)


@app.get("/element-summary/{player_id}")
async def element_summary(
    player_id: int = Path(..., ge=1, description="Player (element) ID"),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.ELEMENT_SUMMARY, player_id=player_id)


@app.get("/live-event/{gw}")
async def live_event(
    gw: int = Path(..., ge=1, le=38, description="Gameweek"),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    """Live points for every player in a gameweek."""
    return await _serve(pipeline, ResourceFamily.LIVE_EVENT, gw=gw)


# ===== MANAGERS =====

@app.get("/picks/{manager_id}/{gw}")
async def picks(
    manager_id: int = Path(..., ge=1),
    gw: int = Path(..., ge=1, le=38),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.PICKS, manager_id=manager_id, gw=gw)


@app.get("/manager/{manager_id}")
async def manager_info(
    manager_id: int = Path(..., ge=1),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.MANAGER, manager_id=manager_id)


@app.get("/manager/{manager_id}/transfers")
async def manager_transfers(
    manager_id: int = Path(..., ge=1),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.MANAGER_TRANSFERS, manager_id=manager_id)


@app.get("/manager/{manager_id}/history")
async def manager_history(
    manager_id: int = Path(..., ge=1),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.MANAGER_HISTORY, manager_id=manager_id)


# ===== LEAGUES =====

@app.get("/league/mon/{league_id}/{phase}")
async def league_standings_by_phase(
    league_id: int = Path(..., ge=1),
    phase: int = Path(..., ge=1, description="Phase (month) of the season"),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.LEAGUE_BY_PHASE, league_id=league_id, phase=phase)


@app.get("/league/{league_id}/{page}")
async def league_standings(
    league_id: int = Path(..., ge=1),
    page: int = Path(..., ge=1),
    pipeline: FetchPipeline = Depends(get_pipeline),
):
    return await _serve(pipeline, ResourceFamily.LEAGUE, league_id=league_id, page=page)
