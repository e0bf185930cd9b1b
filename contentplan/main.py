from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy import text

from contentplan.core.config import settings
from contentplan.core.database import async_session_factory
from contentplan.core.errors import (
    ConflictError,
    DocumentExistsError,
    NotFoundError,
    conflict_handler,
    document_exists_handler,
    global_exception_handler,
    http_exception_handler,
    not_found_handler,
)
from contentplan.core.sentry import init_sentry

import contentplan.models  # noqa: F401  register all models at startup

from contentplan.modules.documents.dependencies import audit_emitter
from contentplan.modules.documents.router import router as documents_router
from contentplan.modules.revisions.router import router as revisions_router

# ── Sentry: initialise before the FastAPI app is created ────────────────────────────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting contentplan API", env=settings.APP_ENV)
    yield
    logger.info("Shutting down contentplan API", pending_audit_events=audit_emitter.pending)
    await audit_emitter.drain()


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="Contentplan Documents API",
    description="Versioned video documents with optimistic concurrency control.",
    version="0.1.0",
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)

app.add_exception_handler(NotFoundError, not_found_handler)
app.add_exception_handler(ConflictError, conflict_handler)
app.add_exception_handler(DocumentExistsError, document_exists_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)


@app.middleware("http")
async def add_version_header(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


@app.get("/health")
async def health_check() -> dict:
    """Probe the primary database."""
    try:
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        database = {"status": "healthy"}
    except Exception as exc:
        database = {"status": "unhealthy", "error": str(exc)}

    overall = "healthy" if database["status"] == "healthy" else "degraded"
    return {"status": overall, "service": "contentplan-api", "checks": {"database": database}}


# ── /v1 versioned router ──────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/v1")

api_v1.include_router(documents_router)
api_v1.include_router(revisions_router)

app.include_router(api_v1)
