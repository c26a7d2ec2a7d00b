"""FastAPI application factory."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from orderflow import __version__
from orderflow.api.rest import router as api_router
from orderflow.api.settings import ApiSettings, settings
from orderflow.engine.callbacks import expire_callbacks
from orderflow.orders.resources import OrderResources, get_resources, init_resources


async def sweep_expired_callbacks(interval: float) -> None:
    """Expire past-due callback waits every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await expire_callbacks(storage=get_resources().config.get_journal())
        except Exception as e:
            logger.exception("Callback sweep failed", error=str(e))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()))
        message = f"Invalid request: {location}: {errors[0].get('msg')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(
    api_settings: Optional[ApiSettings] = None,
    resources: Optional[OrderResources] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        api_settings: HTTP settings (defaults to ORDERFLOW_API_* environment).
        resources: Prebuilt order resources; built from the configuration
            at startup when omitted.
    """
    api_settings = api_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if resources is not None:
            active = init_resources(
                store=resources.store,
                publisher=resources.publisher,
                config=resources.config,
            )
        else:
            active = init_resources()

        sweeper: Optional[asyncio.Task[None]] = None
        if api_settings.sweep_interval > 0:
            sweeper = asyncio.create_task(sweep_expired_callbacks(api_settings.sweep_interval))

        logger.info(
            "orderflow API started",
            sweep_interval=api_settings.sweep_interval,
            capacity_ceiling=active.config.capacity_ceiling,
        )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                try:
                    await sweeper
                except asyncio.CancelledError:
                    pass
            await active.publisher.close()
            logger.info("orderflow API stopped")

    app = FastAPI(
        title="orderflow API",
        description="Bar ordering on durable workflows",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        debug=api_settings.debug,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include API routes
    app.include_router(api_router)

    return app
