from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from subscribe_api.api import api_router
from subscribe_api.core.config import settings
from subscribe_api.core.logging_config import configure_logging
from subscribe_api.core.redis_client import close_redis
from subscribe_api.core.sentry import init_sentry
from subscribe_api.core.startup_checks import validate_production_settings
from subscribe_api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from subscribe_api.schemas.error import ErrorResponse


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_redis()


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    validate_production_settings()
    init_sentry()
    tags_metadata = [
        {"name": "subscribe", "description": "Newsletter subscription"},
        {"name": "health", "description": "Liveness and readiness probes"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse(error=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        payload = ErrorResponse(error="Invalid request format")
        return JSONResponse(status_code=400, content=payload.model_dump())

    return app


app = get_application()
