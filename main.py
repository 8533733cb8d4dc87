"""Training Center Back Office - FastAPI Application."""

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.api.v1.router import api_router
from backoffice.core.config import settings
from backoffice.core.exceptions import BackofficeError, ValidationError
from backoffice.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError) -> JSONResponse:
    """Render domain errors as ``{"detail": ..., "code": ...}``."""
    logger.warning(
        "request_rejected",
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )

    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field_errors:
        content["errors"] = exc.field_errors

    return JSONResponse(status_code=exc.status_code, content=content)


# Include API routes
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
