import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from .api import monitors, system, websockets
from .dependencies import (
    get_event_bus,
    get_presentation_event_handlers,
    get_scan_coordinator,
    get_settings,
    get_websocket_manager,
)
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    setup_logging(settings)

    logging.info("Cache Monitor starting up...")
    logging.info(f"Config directory: {settings.config_path}")

    websocket_manager = get_websocket_manager()
    websocket_manager.start_sender_task()
    await get_presentation_event_handlers().register(get_event_bus())

    coordinator = get_scan_coordinator()
    await coordinator.start(run_immediately=settings.run_initial_sweep)
    logging.info("Background sweep startet som background task")

    yield

    logging.info("Cache Monitor shutting down...")
    await coordinator.stop()
    await websocket_manager.stop_sender_task()
    logging.info("Alle background tasks stoppet")


app = FastAPI(
    title="Cache Monitor",
    description="Overvåger størrelsen af cache-mapper og advarer når en grænse overskrides",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logging.debug(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "operation": "http_request",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
        },
    )
    return response


app.include_router(monitors.router)
app.include_router(system.router)
app.include_router(websockets.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Cache Monitor kører"}


@app.get("/health")
async def health():
    coordinator = get_scan_coordinator()
    return {
        "status": "healthy",
        "service": "cache-monitor",
        "sweep_running": coordinator.is_running(),
    }


def run() -> None:
    settings = get_settings()
    uvicorn.run("cache_monitor.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    run()
