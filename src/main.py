from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.headways import router as headways_router
from src.adapters.api.dependencies import (
    build_gtfs_repository,
    build_poller,
    get_headway_view_service,
)
from src.adapters.api.schemas.headways import HealthSchema
from src.adapters.settings import HeadwayRuntimeConfig, env_bool
from src.app.ports.output import IGtfsRepository, IRealtimeFeedProvider
from src.app.services.headway_poller import HeadwayPoller
from src.app.services.headway_state import HeadwayState
from src.app.services.headway_view_service import HeadwayViewService
from src.domain.exceptions import GtfsLoadError

logger = logging.getLogger("uvicorn.error")


async def bootstrap(
    state: HeadwayState,
    config: HeadwayRuntimeConfig,
    repository: IGtfsRepository | None = None,
    feed_provider: IRealtimeFeedProvider | None = None,
) -> HeadwayPoller | None:
    """Load the static feed off the event loop, then start polling.

    A failed load leaves the state "not loaded" with `load_error` set and no
    poller running; only /api/health stays useful.
    """

    repository = repository or build_gtfs_repository(config)
    try:
        state.store = await asyncio.to_thread(repository.load_store)
    except GtfsLoadError as exc:
        state.load_error = str(exc) or exc.__class__.__name__
        logger.exception("Loading static GTFS failed")
        return None

    logger.info("GTFS store ready (%d routes)", len(state.store.routes_by_id))
    poller = build_poller(state, config, feed_provider)
    poller.start()
    return poller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = HeadwayRuntimeConfig.from_env()
    state: HeadwayState = app.state.headway_state
    state.max_consecutive_failures = config.max_consecutive_failures

    # Serve /api/health while the (large) static feed loads.
    startup = asyncio.create_task(bootstrap(state, config))
    try:
        yield
    finally:
        if not startup.done():
            startup.cancel()
            with suppress(asyncio.CancelledError):
                await startup
        elif startup.exception() is None:
            poller = startup.result()
            if poller is not None:
                await poller.stop()


app = FastAPI(title="Headway Monitor", lifespan=lifespan)
app.state.headway_state = HeadwayState()
app.state.headway_view = HeadwayViewService(app.state.headway_state)
app.include_router(headways_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the dashboard can display them."""

    logger.exception("Unhandled exception", extra={"path": str(request.url.path)})

    if env_bool("HEADWAY_REVEAL_ERRORS") or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/api/health", response_model=HealthSchema)
def health(
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> HealthSchema:
    return HealthSchema.model_validate(service.health())
