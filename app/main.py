from contextlib import asynccontextmanager
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router
from app.services.metadata_mirror import ProjectMetadataMirror
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.processing_gateway.close()
        if app.state.metadata_mirror is not None:
            app.state.metadata_mirror.close()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    # Shared clients, injected into handlers through app.core.deps
    app.state.object_storage = ObjectStorage.from_settings(settings)
    app.state.metadata_mirror = ProjectMetadataMirror.from_settings(settings)
    app.state.processing_gateway = ProcessingGateway.from_settings(settings)
    if app.state.metadata_mirror is None:
        logger.info("[startup] MONGODB_URI not set; project mirror disabled")

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(request: Request, exc: SQLAlchemyError):
        logger.error("[db] %s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Database error"})

    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
