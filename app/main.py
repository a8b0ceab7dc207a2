from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import router, service_router
from app.errors import register_error_handlers
from app.web import router as web_router
from datastore.sensors_store import build_default_store
from logging_config import configure_logging
from models.errors import Err
from services.sensors_info import build_default_sensors_info, load_sensors_data
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    sensors_info = build_default_sensors_info()
    data_path = get_settings().data_path
    if data_path:
        result = load_sensors_data(sensors_info, Path(data_path))
        if isinstance(result, Err):
            for error in result.errors:
                logger.error(error.message, extra={"error_code": error.code, "path": data_path})
            raise RuntimeError(f"cannot load sensors data from {data_path!r}")
    try:
        yield
    finally:
        sensors_info.close()
        build_default_sensors_info.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Sensors Info",
        description="Sensor types, sensors and sensor readings with validated, paged access.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "PUT", "POST", "DELETE"],
        allow_headers=["Content-Type"],
        expose_headers=["Location", "Content-Type"],
    )
    register_error_handlers(app)
    static_dir = Path(__file__).resolve().parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router, prefix=settings.api_base)
    app.include_router(service_router)
    app.include_router(web_router)
    return app

app = create_app()
