"""Test API — FastAPI application serving users from an in-memory store."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from common.models import ErrorResponse, HealthResponse, InfoResponse, User, UserBase, UserList
from test_api.store import UserNotFoundError, UserStore

SERVICE_NAME = "test-api"
SERVICE_VERSION = "1.0.0"

ENDPOINTS = (
    ("GET", "/healthz", "Health check"),
    ("GET", "/users", "List all users"),
    ("GET", "/users/{user_id}", "Get user by ID"),
    ("POST", "/users", "Create new user"),
    ("GET", "/info", "Service information"),
)


def get_store(request: Request) -> UserStore:
    return request.app.state.store


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc_parts = [p for p in err.get("loc", ()) if p not in ("body", "path", "query")]
        if err.get("type") == "json_invalid":
            # json_invalid carries the byte offset of the error, not a field
            loc_parts = [p for p in loc_parts if not isinstance(p, int)]
        loc = ".".join(str(p) for p in loc_parts)
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid request"


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=str(exc.detail)).model_dump(),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=_validation_message(exc)).model_dump(), status_code=400)


async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
    return JSONResponse(ErrorResponse(error="User not found").model_dump(), status_code=404)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(ErrorResponse(error="Internal server error").model_dump(), status_code=500)


def create_app(store: Optional[UserStore] = None) -> FastAPI:
    app = FastAPI(title="Test API", version=SERVICE_VERSION)
    app.state.store = store if store is not None else UserStore.seeded()
    app.state.started_at = time.monotonic()

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(UserNotFoundError, user_not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} -> {} ({:.1f}ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    @app.get("/healthz", response_model=HealthResponse)
    def health():
        return HealthResponse(status="healthy", timestamp=int(time.time()), service=SERVICE_NAME)

    @app.get("/users", response_model=UserList)
    def list_users(store: UserStore = Depends(get_store)):
        users = store.list()
        return UserList(users=users, count=len(users))

    @app.get("/users/{user_id}", response_model=User)
    def get_user(user_id: int, store: UserStore = Depends(get_store)):
        return store.get(user_id)

    @app.post("/users", response_model=User, status_code=201)
    def create_user(payload: UserBase, store: UserStore = Depends(get_store)):
        user = store.create(payload)
        logger.info("Created user {} ({})", user.id, user.name)
        return user

    @app.get("/info", response_model=InfoResponse)
    def info(request: Request):
        uptime = timedelta(seconds=time.monotonic() - request.app.state.started_at)
        return InfoResponse(
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            timestamp=int(time.time()),
            uptime=str(uptime),
        )

    return app
