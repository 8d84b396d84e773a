"""
FastAPI application for the grading engine.

Exposes the caller-facing grading operations over HTTP/JSON.
"""

import time
from contextlib import asynccontextmanager
from typing import List, Literal, Optional, Union

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from grade_engine import __version__
from grade_engine.api.health import router as health_router
from grade_engine.api.schemas import (
    AssignmentResponse,
    ErrorResponse,
    ManualGradeRequest,
    SubmissionResponse,
    SubmitRequest,
)
from grade_engine.config.settings import get_settings
from grade_engine.core.exceptions import (
    AlreadyPublishedError,
    AssignmentNotFoundError,
    GradingEngineError,
    NotReadyError,
    StorageError,
    SubmissionNotFoundError,
    ValidationError,
)
from grade_engine.core.models import Assignment, GradeView, RosterEntry, StudentGradeView
from grade_engine.core.service import GradingService


# Most specific first; handlers are looked up along the exception's MRO
ERROR_STATUS_CODES = [
    (ValidationError, 422),
    (NotReadyError, 409),
    (AlreadyPublishedError, 409),
    (SubmissionNotFoundError, 404),
    (AssignmentNotFoundError, 404),
    (StorageError, 503),
    (GradingEngineError, 500),
]


# ============================================================================
# Request Logging Middleware
# ============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with correlation ID, method, path, status, latency."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        with logger.contextualize(correlation_id=correlation_id.get() or "unknown"):
            logger.info(f"{request.method} {request.url.path}")

            response = await call_next(request)

            latency_ms = (time.time() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms:.1f}ms)"
            )
            return response


# ============================================================================
# Dependencies
# ============================================================================

def get_service(request: Request) -> GradingService:
    return request.app.state.service


def _error_handler(status_code: int):
    async def handler(request: Request, exc: GradingEngineError) -> JSONResponse:
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

        body = ErrorResponse(detail=exc.message, error=type(exc).__name__, context=exc.details)
        return JSONResponse(status_code=status_code, content=body.model_dump(mode='json'))

    return handler


# ============================================================================
# Application Factory
# ============================================================================

def create_app(service: Optional[GradingService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Grading service to expose (default: built from settings)

    Returns:
        FastAPI application instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Grading engine API started (AI provider: {settings.ai_provider})")
        yield
        logger.info("Grading engine API stopped")

    app = FastAPI(
        title="Grade Engine",
        description="Auto, AI and manual grading of student assignment submissions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service or GradingService.from_settings(settings)

    for exc_class, status_code in ERROR_STATUS_CODES:
        app.add_exception_handler(exc_class, _error_handler(status_code))

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Request logging runs inside the correlation ID middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware, validator=lambda x: True)

    app.include_router(health_router)
    _register_routes(app)

    return app


def _register_routes(app: FastAPI) -> None:

    # ==================== ASSIGNMENTS ====================

    @app.post("/api/assignments", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
    async def create_assignment(
        assignment: Assignment,
        service: GradingService = Depends(get_service)
    ):
        """Register an assignment so students can submit against it."""
        service.register_assignment(assignment)
        return AssignmentResponse.from_assignment(assignment)

    @app.get("/api/assignments/{assignment_id}/submissions", response_model=List[RosterEntry])
    async def list_submissions(assignment_id: str, service: GradingService = Depends(get_service)):
        """Teacher roster with Graded / Late / Submitted labels."""
        return await service.list_submissions(assignment_id)

    @app.post(
        "/api/assignments/{assignment_id}/submissions",
        response_model=SubmissionResponse,
        status_code=status.HTTP_201_CREATED
    )
    async def submit(
        assignment_id: str,
        request: SubmitRequest,
        service: GradingService = Depends(get_service)
    ):
        submission = await service.submit(
            assignment_id,
            request.student_id,
            request.answers,
            submission_id=request.submission_id,
        )
        return SubmissionResponse.from_submission(submission)

    # ==================== GRADING ====================

    @app.post("/api/submissions/{submission_id}/grade", response_model=GradeView)
    async def trigger_grading(submission_id: str, service: GradingService = Depends(get_service)):
        """Auto-grade, then AI-grade if enabled for the assignment."""
        return await service.trigger_grading(submission_id)

    @app.put("/api/submissions/{submission_id}/questions/{question_id}/grade", response_model=GradeView)
    async def override_grade(
        submission_id: str,
        question_id: str,
        request: ManualGradeRequest,
        service: GradingService = Depends(get_service)
    ):
        return await service.override_grade(submission_id, question_id, request.score, request.feedback)

    @app.post("/api/submissions/{submission_id}/publish", response_model=GradeView)
    async def publish(submission_id: str, service: GradingService = Depends(get_service)):
        return await service.publish(submission_id)

    @app.get(
        "/api/submissions/{submission_id}/grade",
        response_model=Union[GradeView, StudentGradeView]
    )
    async def get_grade(
        submission_id: str,
        view: Literal["teacher", "student"] = "teacher",
        service: GradingService = Depends(get_service)
    ):
        """Teacher view shows per-question sources; student view stays pending until publish."""
        if view == "student":
            return await service.get_student_grade(submission_id)
        return await service.get_grade(submission_id)
