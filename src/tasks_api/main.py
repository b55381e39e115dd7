from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import (
    EmptyTitleError,
    IdNotFoundError,
    InternalError,
    PayloadTooLargeError,
    TaskStoreError,
)
from .logging_setup import setup_logging
from .repositories import TaskRepository, create_store
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "Insert, list, find, update and delete Tasks held in memory.",
    },
]


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "message": message})


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    status_by_error = {
        EmptyTitleError: settings.empty_title_status,
        IdNotFoundError: 404,
        InternalError: 500,
    }

    @app.exception_handler(TaskStoreError)
    async def task_store_exception_handler(request: Request, exc: TaskStoreError) -> JSONResponse:
        """
        Translate task store errors into a status code and a JSON body.

        Response format:
            {"error": "IdNotFound", "message": "Task id `7` not found"}
        """
        status_code = status_by_error.get(type(exc), 500)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(status_code, exc.kind, exc.message)

    @app.exception_handler(PayloadTooLargeError)
    async def payload_too_large_handler(request: Request, exc: PayloadTooLargeError) -> JSONResponse:
        return _error_response(413, exc.kind, exc.message)

    # Global exception handlers for consistent JSON on validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None, store: Optional[TaskRepository] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    The task store is created once here (or passed in) and attached to
    ``app.state.store``; endpoints reach it only through a dependency.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Tasks API",
        description="HTTP service managing a list of tasks held in a thread-safe in-memory store.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.store = store if store is not None else create_store(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app, settings)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the number of stored tasks.
        """
        return {"message": "Healthy", "tasks": request.app.state.store.count()}

    app.include_router(tasks_router.router)

    logger.info(
        "Tasks API ready (max_body_bytes=%d, lock_timeout=%ss, empty_title_status=%d)",
        settings.max_body_bytes,
        settings.lock_timeout,
        settings.empty_title_status,
    )
    return app


app = create_app()
