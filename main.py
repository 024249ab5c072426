from __future__ import annotations

import logging
from logging.config import dictConfig
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from api.router import api_router
from core.config import settings
from core.security_headers import SecurityHeadersMiddleware
from db.database import close_database, ensure_indexes
from services.access_codes import get_access_code_manager
from services.rate_limit import RateLimitMiddleware, RequestRateLimiter


def configure_logging() -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "pythonjsonlogger.json.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "level": settings.log_level,
                }
            },
            "root": {"handlers": ["console"], "level": settings.log_level},
            "loggers": {
                "uvicorn.access": {"level": "WARNING"},
            },
        }
    )


configure_logging()
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Studio Calendar API", version=settings.app_version)

    app.state.request_limiter = RequestRateLimiter(settings.api_rate_limit, settings.api_rate_window_seconds)
    app.add_middleware(RateLimitMiddleware, limiter=app.state.request_limiter)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)

    origins = settings.cors_origins
    if origins == ["*"]:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("request.validation_error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request.unhandled_error", extra={"path": request.url.path})
        content = {"message": "Something went wrong!"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    @app.on_event("startup")
    async def _startup() -> None:
        get_access_code_manager()
        try:
            await ensure_indexes()
        except PyMongoError:
            # The API still serves health checks without a database
            logger.exception("db.index_setup_failed")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await close_database()

    logger.info("Application initialized", extra={"environment": settings.environment})
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=not settings.is_production)
