"""
HTTP surface for the Quantum dashboard.

    uvicorn app:app --port 3001

create_app() wires a blob store and a QuantumCache into a FastAPI app. The
cache refresh timer runs for the lifetime of the app.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .cache import QuantumCache
from .config import Settings, get_settings
from .dashboard import get_available_filters, get_live_view, get_trend, get_unit_rows
from .errors import InvalidRequestError, QuantumDashboardError, UpstreamUnavailableError
from .loaders import BlobStore, LocalBlobStore, SupabaseBlobStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> BlobStore:
    """Local directory when QUANTUM_DATA_DIR is set, Supabase Storage otherwise."""
    if settings.data_dir is not None:
        logger.info("Reading unit exports from %s", settings.data_dir)
        return LocalBlobStore(settings.data_dir)
    return SupabaseBlobStore(
        settings.supabase_url,
        settings.supabase_key,
        bucket=settings.bucket,
        timeout=settings.download_timeout,
    )


def build_router(cache: QuantumCache, store: BlobStore) -> APIRouter:
    router = APIRouter(prefix="/api/quantum")

    @router.get("/live")
    def live(
        date: str | None = Query(None),
        shift: str | None = Query(None),
        unit: str | None = Query(None),
        machine: str | None = Query(None),
        mode: str | None = Query(None),
    ) -> list[dict]:
        return get_live_view(cache, date=date, shift=shift, unit=unit, machine=machine, mode=mode)

    @router.get("/available-filters")
    def available_filters(unit: str | None = Query(None)) -> dict:
        return get_available_filters(cache, unit)

    @router.get("/data/{unit}")
    def unit_data(unit: str) -> list[dict]:
        return get_unit_rows(store, unit)

    @router.get("/trend")
    def trend(
        group: str | None = Query(None),
        first_column: str | None = Query(None, alias="firstColumn"),
        parameter: str | None = Query(None),
        unit: str | None = Query(None),
        filter_values: list[str] | None = Query(None, alias="filterValues"),
    ) -> dict:
        return get_trend(cache, group, first_column, parameter, unit, filter_values)

    @router.get("/status")
    def status() -> dict:
        return cache.status()

    @router.post("/refresh")
    def refresh() -> dict:
        report = cache.refresh()
        return report.to_dict() if report else {}

    return router


def create_app(
    settings: Settings | None = None,
    store: BlobStore | None = None,
    cache: QuantumCache | None = None,
    schedule: bool = True,
) -> FastAPI:
    """Build the application.

    Parameters
    ----------
    settings : Defaults to get_settings().
    store : Blob store; built from settings when omitted.
    cache : Cache; built over ``store`` when omitted.
    schedule : Start the periodic refresh on startup.
    """
    settings = settings or get_settings()
    store = store or build_store(settings)
    cache = cache or QuantumCache(
        store,
        stale_after=timedelta(minutes=settings.stale_after_minutes),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if schedule:
            cache.start(settings.refresh_minutes * 60)
        yield
        cache.stop()

    app = FastAPI(title="Quantum Dashboard API", version=__version__, lifespan=lifespan)
    app.state.cache = cache
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_unavailable(request: Request, exc: UpstreamUnavailableError) -> JSONResponse:
        logger.error("%s %s: %s", request.method, request.url.path, exc.to_dict())
        return JSONResponse(status_code=503, content={"error": exc.message})

    @app.exception_handler(QuantumDashboardError)
    async def dashboard_error(request: Request, exc: QuantumDashboardError) -> JSONResponse:
        logger.error("%s %s: %s", request.method, request.url.path, exc.to_dict())
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(build_router(cache, store))
    return app
