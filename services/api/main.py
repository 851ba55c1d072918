import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from core.exceptions import EstimatorError
from core.logging_config import setup_logging_from_env
from core.settings import get_settings
from services.api.exception_handlers import estimator_exception_handler
from services.api.routes import router as v1_router


def _cors_origins() -> list[str]:
    ui_origin = os.getenv("UI_ORIGIN", "http://localhost:3000")
    origins = {ui_origin, "http://localhost:3000", "http://127.0.0.1:3000"}
    if "localhost" in ui_origin:
        origins.add(ui_origin.replace("localhost", "127.0.0.1"))
    elif "127.0.0.1" in ui_origin:
        origins.add(ui_origin.replace("127.0.0.1", "localhost"))
    return sorted(origins)


def create_app() -> FastAPI:
    # LOG_LEVEL, JSON_LOGGING, LOG_FILE
    setup_logging_from_env()

    app = FastAPI(
        title="Furniture Estimator API",
        version="0.1.0",
        description="Drawing analysis, component expansion and catalog pricing",
    )

    cors_origins = _cors_origins()
    logger.info(f"CORS allowed origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _load_settings() -> None:
        settings = get_settings()
        logger.info(
            "API initialised with vision model={model} catalog={directory}",
            model=settings.vision.model,
            directory=str(settings.catalog.directory),
        )

    @app.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    # Register exception handlers
    app.add_exception_handler(EstimatorError, estimator_exception_handler)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with a JSON body."""
        logger.opt(exception=exc).error("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content={
                "error": type(exc).__name__,
                "message": str(exc),
            },
        )

    app.include_router(v1_router)

    return app


app = create_app()


__all__ = ["app", "create_app"]
