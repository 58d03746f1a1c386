"""CourseTrack API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursetrack.assignments.dependencies import set_assignment_service_getter
from coursetrack.assignments.router import router as assignments_router
from coursetrack.assignments.service import AssignmentService
from coursetrack.auth.router import router as users_router
from coursetrack.auth.router import set_user_service_getter
from coursetrack.auth.service import UserService
from coursetrack.config import get_settings
from coursetrack.core.context import get_request_id
from coursetrack.core.database import StorageError
from coursetrack.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)
from coursetrack.core.logging import configure_structlog, get_logger
from coursetrack.core.middleware import RequestContextMiddleware
from coursetrack.courses.dependencies import (
    set_content_service_getter,
    set_course_service_getter,
)
from coursetrack.courses.router import router as courses_router
from coursetrack.courses.service import ContentService, CourseService
from coursetrack.forum.dependencies import set_forum_service_getter
from coursetrack.forum.router import router as forum_router
from coursetrack.forum.service import ForumService
from coursetrack.health import router as health_router
from coursetrack.notifications.dependencies import set_notification_service_getter
from coursetrack.notifications.router import router as notifications_router
from coursetrack.notifications.service import NotificationService
from coursetrack.progress.dependencies import (
    set_course_progress_service_getter,
    set_enrollment_service_getter,
    set_progress_service_getter,
)
from coursetrack.progress.router import enrollments_router
from coursetrack.progress.router import router as progress_router
from coursetrack.progress.service import (
    CourseProgressService,
    EnrollmentService,
    ProgressService,
)


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


class AppState:
    """Application state container."""

    cassandra_session: Any = None
    user_service: UserService | None = None
    course_service: CourseService | None = None
    content_service: ContentService | None = None
    enrollment_service: EnrollmentService | None = None
    progress_service: ProgressService | None = None
    course_progress_service: CourseProgressService | None = None
    notification_service: NotificationService | None = None
    forum_service: ForumService | None = None
    assignment_service: AssignmentService | None = None


app_state = AppState()


def _getter(name: str):
    def get_service():
        service = getattr(app_state, name)
        if service is None:
            msg = f"{name} not initialized"
            raise RuntimeError(msg)
        return service

    return get_service


def build_services(session: Any, keyspace: str) -> None:
    """Create every service around one shared session."""
    app_state.user_service = UserService(session=session, keyspace=keyspace)
    app_state.course_service = CourseService(session=session, keyspace=keyspace)
    app_state.content_service = ContentService(session=session, keyspace=keyspace)
    app_state.enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        course_service=app_state.course_service,
        user_service=app_state.user_service,
    )
    app_state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        content_service=app_state.content_service,
    )
    app_state.course_progress_service = CourseProgressService(
        course_service=app_state.course_service,
        content_service=app_state.content_service,
        enrollment_service=app_state.enrollment_service,
        progress_service=app_state.progress_service,
    )
    app_state.notification_service = NotificationService(
        session=session, keyspace=keyspace
    )
    app_state.forum_service = ForumService(
        session=session,
        keyspace=keyspace,
        user_service=app_state.user_service,
        notification_service=app_state.notification_service,
    )
    app_state.assignment_service = AssignmentService(
        session=session,
        keyspace=keyspace,
        course_service=app_state.course_service,
        user_service=app_state.user_service,
        enrollment_service=app_state.enrollment_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        app_state.cassandra_session = await init_async_cassandra()
        build_services(app_state.cassandra_session, settings.cassandra_keyspace)
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays False so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course enrollment and progress tracking API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_body(
        request: Request, status_code: int, message: str
    ) -> dict[str, Any]:
        return {
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": _get_request_id_safe(request),
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        content = _error_body(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error"
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(
        request: Request, exc: StorageError
    ) -> ORJSONResponse:
        """The store failed; the operation was already logged with its cause."""
        logger.error(
            "storage_unavailable",
            operation=exc.operation,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(
                request, status.HTTP_503_SERVICE_UNAVAILABLE, exc.message
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all: log everything, return nothing internal."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
            ),
        )

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(assignments_router)
    app.include_router(forum_router)
    app.include_router(notifications_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "CourseTrack API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


set_user_service_getter(_getter("user_service"))
set_course_service_getter(_getter("course_service"))
set_content_service_getter(_getter("content_service"))
set_enrollment_service_getter(_getter("enrollment_service"))
set_progress_service_getter(_getter("progress_service"))
set_course_progress_service_getter(_getter("course_progress_service"))
set_notification_service_getter(_getter("notification_service"))
set_forum_service_getter(_getter("forum_service"))
set_assignment_service_getter(_getter("assignment_service"))


app = create_app()


def run() -> None:
    """Serve the API with uvicorn (``coursetrack`` console script)."""
    settings = get_settings()
    uvicorn.run(
        "coursetrack.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        # uvicorn runs a single process when reloading
        workers=None if settings.api_reload else settings.api_workers,
        log_config=None,
    )
