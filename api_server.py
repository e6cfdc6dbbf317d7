"""
Taskboard API - FastAPI Server
Owner-scoped task CRUD over a task table in either historical layout
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from urllib.parse import unquote
import logging

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

import config
from taskboard_core import __version__
from taskboard_core.database import SchemaLayout
from taskboard_core.errors import TaskboardError
from taskboard_core.models import (
    ErrorResponse,
    MessageResponse,
    SchemaReport,
    TaskFields,
    TaskListResponse,
    TaskRecord,
    TaskResponse,
)
from taskboard_core.service import TaskService, build_task_service

# Setup logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Task not found or not owned by this user"},
    500: {"model": ErrorResponse, "description": "Store or configuration error"},
}


OWNER_PREFIX = b"/items/user/"


def get_service(request: Request) -> TaskService:
    return request.app.state.task_service


def path_owner(owner: str) -> str:
    """Owner key from the still-encoded {owner} path segment"""
    return unquote(owner)


class RawOwnerSegmentMiddleware:
    """
    Route owner URLs on the raw owner segment.

    Starlette matches routes against the decoded path, so an owner key
    containing an encoded '/' would be split across two segments. The owner
    segment is kept percent-encoded for routing and decoded by path_owner();
    the rest of the path is decoded as usual.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and not scope.get("root_path"):
            raw_path = scope.get("raw_path") or b""
            if raw_path.startswith(OWNER_PREFIX):
                rest = raw_path[len(OWNER_PREFIX):].split(b"?", 1)[0]
                owner_segment, sep, tail = rest.partition(b"/")
                path = (
                    OWNER_PREFIX.decode()
                    + owner_segment.decode("utf-8", "replace")
                    + sep.decode()
                    + unquote(tail.decode("utf-8", "replace"))
                )
                scope = dict(scope, path=path)
        await self.app(scope, receive, send)


def create_app(service: Optional[TaskService] = None) -> FastAPI:
    """Build the API around a task service (the configured one by default)"""
    if service is None:
        service = build_task_service(
            database_url=config.DATABASE_URL,
            table_name=config.TASK_TABLE,
            schema_layout=config.SCHEMA_LAYOUT,
            pool_size=config.DB_POOL_SIZE,
            echo=config.DB_ECHO,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.PROVISION_LAYOUT:
            service.repository.db_manager.provision(SchemaLayout(config.PROVISION_LAYOUT))
        service.prime()
        yield
        service.repository.db_manager.close()

    app = FastAPI(
        title="Taskboard API",
        description="Personal todo lists scoped to the signed-in user",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.task_service = service

    app.add_middleware(RawOwnerSegmentMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": "; ".join(problems)},
        )

    # ==================== Task Routes ====================

    @app.get("/items/user/{owner}", response_model=TaskListResponse, responses=ERROR_RESPONSES)
    def list_tasks(owner: str = Depends(path_owner), service: TaskService = Depends(get_service)):
        """List the owner's tasks, earliest due date first"""
        tasks = service.list_tasks(owner)
        logger.info(f"Listed {len(tasks)} tasks for owner={owner!r}")
        return TaskListResponse(message="success", data=tasks)

    @app.get("/items/user/{owner}/{task_id}", response_model=TaskRecord, responses=ERROR_RESPONSES)
    def get_task(task_id: int, owner: str = Depends(path_owner), service: TaskService = Depends(get_service)):
        """Fetch one task"""
        return service.get_task(owner, task_id)

    @app.post(
        "/items/user/{owner}",
        response_model=TaskResponse,
        status_code=201,
        responses=ERROR_RESPONSES,
    )
    def create_task(fields: TaskFields, owner: str = Depends(path_owner), service: TaskService = Depends(get_service)):
        """Create a task for the owner"""
        record = service.create_task(owner, fields)
        return TaskResponse(message="Task created", data=record)

    @app.put("/items/user/{owner}/{task_id}", response_model=MessageResponse, responses=ERROR_RESPONSES)
    def update_task(
        task_id: int,
        fields: TaskFields,
        owner: str = Depends(path_owner),
        service: TaskService = Depends(get_service),
    ):
        """Replace every mutable field of a task"""
        service.update_task(owner, task_id, fields)
        return MessageResponse(message="Task updated")

    @app.delete("/items/user/{owner}/{task_id}", response_model=MessageResponse, responses=ERROR_RESPONSES)
    def delete_task(task_id: int, owner: str = Depends(path_owner), service: TaskService = Depends(get_service)):
        service.delete_task(owner, task_id)
        return MessageResponse(message="Task deleted")

    @app.post(
        "/items/user/{owner}/{task_id}/toggle",
        response_model=TaskResponse,
        responses=ERROR_RESPONSES,
    )
    def toggle_task(task_id: int, owner: str = Depends(path_owner), service: TaskService = Depends(get_service)):
        """Flip a task between completed and pending"""
        record = service.toggle_status(owner, task_id)
        return TaskResponse(message="Task status updated", data=record)

    # ==================== Diagnostics ====================

    @app.get("/debug/schema", response_model=SchemaReport, responses=ERROR_RESPONSES)
    def schema_report(service: TaskService = Depends(get_service)):
        """Columns of the task table and the layout they map to"""
        return service.schema_report()

    @app.post("/debug/schema/refresh", response_model=SchemaReport, responses=ERROR_RESPONSES)
    def refresh_schema(service: TaskService = Depends(get_service)):
        """Forget the cached layout and detect it again"""
        return service.refresh_schema()

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": __version__,
            "environment": config.ENVIRONMENT,
            "schema_policy": service.layout_policy.name,
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "Taskboard API",
            "version": __version__,
            "status": "operational",
            "docs": "/docs",
            "endpoints": {
                "GET /items/user/{owner}": "List the owner's tasks",
                "POST /items/user/{owner}": "Create a task",
                "GET /items/user/{owner}/{id}": "Fetch a task",
                "PUT /items/user/{owner}/{id}": "Update a task",
                "DELETE /items/user/{owner}/{id}": "Delete a task",
                "POST /items/user/{owner}/{id}/toggle": "Toggle completed/pending",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "api_server:app",
        host=config.API_HOST,
        port=config.API_PORT,
        workers=config.API_WORKERS,
        reload=False,
        log_level=config.LOG_LEVEL.lower()
    )
