from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
import os

from app.database import engine, Base
import app.models  # noqa: F401 (registers all models)
from app.config import settings
from app.errors import AuditError
from app.routers import health, chromebooks, audits, scan
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    # Ensure DB exists and tables are created
    if settings.DATABASE_URL.startswith("sqlite:///./"):
        os.makedirs(os.path.dirname(settings.DATABASE_URL.removeprefix("sqlite:///")), exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info("ChromeAudit ready (%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="ChromeAudit",
    description="Chromebook inventory audits",
    version="1.0.0",
    lifespan=lifespan,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.APP_ENV == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(AuditError)
async def audit_error_handler(request: Request, exc: AuditError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.code})


app.include_router(health.router)
app.include_router(chromebooks.router)
app.include_router(audits.router)
app.include_router(scan.router)
