"""Domain exceptions and the standardized error responses built from them."""
import uuid
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"

logger = structlog.get_logger()


# ── Domain errors ────────────────────────────────────────────────────────────


class NotFoundError(LookupError):
    """A referenced document or revision does not exist."""

    def __init__(self, entity: str, identifier: Any) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity.capitalize()} not found: {identifier}")


class ConflictError(Exception):
    """The caller's expected version is stale.

    Carries everything needed to offer "force save at current_version"
    without another round trip.
    """

    def __init__(
        self,
        document_id: uuid.UUID,
        expected_version: int,
        current_version: int,
        content_preview: str | None = None,
    ) -> None:
        self.document_id = document_id
        self.expected_version = expected_version
        self.current_version = current_version
        self.content_preview = content_preview
        super().__init__(
            f"Document {document_id} is at version {current_version}, "
            f"expected {expected_version}"
        )

    def to_detail(self) -> dict[str, Any]:
        return {
            "current_version": self.current_version,
            "expected_version": self.expected_version,
            "content_preview": self.content_preview,
        }


class DocumentExistsError(Exception):
    """A document of this kind already exists for the video."""

    def __init__(self, video_id: uuid.UUID, kind: str) -> None:
        self.video_id = video_id
        self.kind = kind
        super().__init__(f"Video {video_id} already has a {kind} document")


class RevisionIntegrityError(RuntimeError):
    """Duplicate or non-sequential revision append. Programming error, never user-facing."""


# ── Handlers ─────────────────────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", "unknown")


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(
            error="not_found",
            message=str(exc),
            detail={"entity": exc.entity, "id": str(exc.identifier)},
            request_id=_request_id(request),
        ).model_dump(),
    )


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=ErrorResponse(
            error="version_conflict",
            message="Document has been modified by another user.",
            detail=exc.to_detail(),
            request_id=_request_id(request),
        ).model_dump(),
    )


async def document_exists_handler(request: Request, exc: DocumentExistsError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=ErrorResponse(
            error="document_exists",
            message=str(exc),
            detail={"video_id": str(exc.video_id), "kind": exc.kind},
            request_id=_request_id(request),
        ).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = _request_id(request)

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Our team has been notified.",
            "request_id": request_id,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    request_id = _request_id(request)

    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": request_id,
        },
        headers=dict(exc.headers or {}),
    )
