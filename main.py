from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from api.router import router as api_router
from core.config import config
from core.db import engine
from core.exceptions.base import CustomException, StoreException
from core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {config.APP_NAME} v{VERSION}")
    yield
    await engine.dispose()
    logger.info(f"{config.APP_NAME} stopped, database connections closed")


def _error(status_code: int, error_code: str, message: str, data: Optional[Any] = None) -> JSONResponse:
    """Every error leaves the API in this one shape."""
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "data": data or {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CustomException)
    async def custom_exception_handler(request: Request, exc: CustomException) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: {exc.error_code} - {exc.message}")
        return _error(exc.code, exc.error_code, exc.message, exc.data)

    # Store failures that escaped a service
    @app.exception_handler(SQLAlchemyError)
    async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path}: store error {type(exc).__name__} - {exc}")
        return _error(
            StoreException.code,
            StoreException.error_code,
            StoreException.message,
            {"detail": str(exc)} if config.DEBUG else None,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"{request.method} {request.url.path}: unhandled {type(exc).__name__}")
        return _error(
            500,
            "INTERNAL_ERROR",
            "An internal server error occurred",
            {"detail": str(exc)} if config.DEBUG else None,
        )


def create_app() -> FastAPI:
    """Build the portal API: routers under /api, attachments under /uploads."""
    app = FastAPI(
        title="Youth Portal",
        description="Youth council program registration and budget API",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check() -> dict:
        return {"status": "healthy", "version": VERSION, "app_name": config.APP_NAME}

    app.include_router(api_router, prefix="/api")

    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    return app


app = create_app()
