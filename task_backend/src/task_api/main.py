from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .accounts import AccountService
from .errors import AppError, validation_details
from .repositories import build_repositories
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .routers import users as users_router
from .schemas import HealthResponse
from .security import PasswordHasher, TokenService
from .settings import Settings, load_settings
from .tasks import TaskService

logger = logging.getLogger("taskmanager.api")

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and logout. Login returns a bearer token."},
    {"name": "users", "description": "The authenticated user's profile."},
    {
        "name": "tasks",
        "description": "CRUD operations on the authenticated user's tasks with search and status filtering.",
    },
]

_HTTP_ERROR_CODES = {
    401: "Unauthorized",
    404: "NotFound",
    405: "MethodNotAllowed",
}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """
        Render domain errors as ``{"error": <code>, "message": <text>}``.
        401 responses advertise the Bearer scheme.
        """
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "message": "Invalid input",
                "detail": [{"loc": [...], "msg": "...", "type": "..."}, ...]
            }
        """
        return JSONResponse(
            status_code=400,
            content={
                "error": "ValidationError",
                "message": "Invalid input",
                "detail": validation_details(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Framework-raised HTTP errors (unknown route, wrong method) in the same envelope."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": _HTTP_ERROR_CODES.get(exc.status_code, f"HTTP{exc.status_code}"),
                "message": "Not found" if exc.status_code == 404 else str(exc.detail),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Catch-all for unexpected failures. Details go to the log only; the
        client gets a generic message.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "InternalError", "message": "Internal server error"},
        )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Settings are loaded from the environment when not given; a missing
    JWT_SECRET raises ConfigurationError here, so the process never starts
    without a signing secret. Services are created once and kept on
    ``app.state``.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Task Manager Backend",
        description="Backend API for personal task management with bearer-token authentication.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    users, task_repo = build_repositories(settings)
    tokens = TokenService(settings)
    app.state.settings = settings
    app.state.token_service = tokens
    app.state.accounts = AccountService(users, PasswordHasher(settings), tokens)
    app.state.tasks = TaskService(task_repo)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            ms = (time.perf_counter() - start) * 1000
            logger.info("%s %s %d %.1fms", request.method, request.url.path, status_code, ms)

    _install_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get(f"{settings.api_prefix}/health", response_model=HealthResponse, summary="Health Check", tags=["health"])
    def health_check() -> HealthResponse:
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the storage backend.
        """
        return HealthResponse(ok=True, backend=settings.persistence_backend)

    # Include routers
    app.include_router(auth_router.router, prefix=settings.api_prefix)
    app.include_router(users_router.router, prefix=settings.api_prefix)
    app.include_router(tasks_router.router, prefix=settings.api_prefix)

    logger.info(
        "Task manager API configured (backend=%s, prefix=%s)",
        settings.persistence_backend,
        settings.api_prefix or "/",
    )
    return app
