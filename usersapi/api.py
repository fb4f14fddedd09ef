"""FastAPI application exposing CRUD endpoints for user records."""
from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

import anyio
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import API_PREFIX, Settings, load_settings
from .errors import NotFoundError, StorageError, ValidationError
from .messages import translate
from .models import SYSTEM_FIELDS
from .storage import Record, UserStore, current_timestamp, generate_user_id
from .validation import validate

logger = logging.getLogger("usersapi.api")

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-XSS-Protection": "0",
    "Cross-Origin-Resource-Policy": "same-origin",
}


def filter_users(
    users: List[Record],
    *,
    q: Optional[str] = None,
    city: Optional[str] = None,
    is_active: Optional[str] = None,
) -> List[Record]:
    """Apply the list endpoint's query filters. Empty values are ignored."""

    filtered = users
    if q:
        term = q.lower()
        filtered = [
            user
            for user in filtered
            if term in str(user.get("firstName", "")).lower()
            or term in str(user.get("lastName", "")).lower()
        ]
    if city:
        wanted = city.lower()
        filtered = [
            user for user in filtered if user.get("city") and str(user["city"]).lower() == wanted
        ]
    if is_active:
        expected = is_active == "true"
        filtered = [user for user in filtered if user.get("isActive") is expected]
    return filtered


def find_user_index(users: List[Record], user_id: str) -> int:
    for index, user in enumerate(users):
        if user.get("id") == user_id:
            return index
    return -1


def _success(data: object, **extra: object) -> Dict[str, object]:
    return {"status": "success", "data": data, **extra}


def _error(message: str) -> Dict[str, object]:
    return {"status": "error", "message": message}


def create_app(
    *,
    settings: Settings | None = None,
    store: UserStore | None = None,
) -> FastAPI:
    if settings is None:
        settings = load_settings()
    if store is None:
        store = UserStore(settings.data_file)

    locale = settings.locale

    app = FastAPI(
        title="Users API",
        description="CRUD service for user records kept in a JSON file",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.store = store

    def get_store() -> UserStore:
        return store

    def not_found() -> NotFoundError:
        return NotFoundError(translate("not_found", locale))

    @contextmanager
    def storage_failure(message_key: str) -> Iterator[None]:
        try:
            yield
        except StorageError as exc:
            exc.message = translate(message_key, locale)
            raise

    async def read_payload(request: Request) -> Any:
        body = await request.body()
        if not body.strip():
            return {}
        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(
                [{"field": "body", "message": translate("body", locale)}],
                translate("validation_failed", locale),
            ) from exc

    router = APIRouter(prefix=f"{API_PREFIX}/users")

    @router.get("")
    async def list_users(
        q: Optional[str] = None,
        city: Optional[str] = None,
        is_active: Optional[str] = Query(default=None, alias="isActive"),
        users_store: UserStore = Depends(get_store),
    ) -> Dict[str, object]:
        with storage_failure("list_failed"):
            users = await anyio.to_thread.run_sync(users_store.load)
        filtered = filter_users(users, q=q, city=city, is_active=is_active)
        return _success(filtered, meta={"total": len(filtered), "returned": len(filtered)})

    @router.get("/{user_id}")
    async def read_user(user_id: str, users_store: UserStore = Depends(get_store)) -> Dict[str, object]:
        with storage_failure("get_failed"):
            users = await anyio.to_thread.run_sync(users_store.load)
        index = find_user_index(users, user_id)
        if index == -1:
            raise not_found()
        return _success(users[index])

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_user(
        payload: Any = Depends(read_payload),
        users_store: UserStore = Depends(get_store),
    ) -> Dict[str, object]:
        data = validate(payload, locale)

        def _append(users: List[Record]) -> Record:
            timestamp = current_timestamp()
            record: Record = {"id": generate_user_id(), **data, "createdAt": timestamp, "updatedAt": timestamp}
            users.append(record)
            return record

        with storage_failure("create_failed"):
            record = await anyio.to_thread.run_sync(users_store.mutate, _append)
        logger.info("Created user %s", record["id"])
        return _success(record)

    @router.put("/{user_id}")
    async def replace_user(
        user_id: str,
        payload: Any = Depends(read_payload),
        users_store: UserStore = Depends(get_store),
    ) -> Dict[str, object]:
        data = validate(payload, locale)

        def _replace(users: List[Record]) -> Record:
            index = find_user_index(users, user_id)
            if index == -1:
                raise not_found()
            existing = users[index]
            record: Record = {
                "id": existing["id"],
                **data,
                "createdAt": existing.get("createdAt") or current_timestamp(),
                "updatedAt": current_timestamp(),
            }
            users[index] = record
            return record

        with storage_failure("update_failed"):
            record = await anyio.to_thread.run_sync(users_store.mutate, _replace)
        logger.info("Replaced user %s", user_id)
        return _success(record)

    @router.patch("/{user_id}")
    async def update_user(
        user_id: str,
        payload: Any = Depends(read_payload),
        users_store: UserStore = Depends(get_store),
    ) -> Dict[str, object]:
        def _merge(users: List[Record]) -> Record:
            index = find_user_index(users, user_id)
            if index == -1:
                raise not_found()
            existing = users[index]
            if not isinstance(payload, Mapping):
                validate(payload, locale)
            merged = {key: value for key, value in existing.items() if key not in SYSTEM_FIELDS}
            merged.update(payload)
            data = validate(merged, locale)
            record: Record = {
                "id": existing["id"],
                **data,
                "createdAt": existing.get("createdAt") or current_timestamp(),
                "updatedAt": current_timestamp(),
            }
            users[index] = record
            return record

        with storage_failure("patch_failed"):
            record = await anyio.to_thread.run_sync(users_store.mutate, _merge)
        logger.info("Updated user %s", user_id)
        return _success(record)

    @router.delete("/{user_id}")
    async def delete_user(user_id: str, users_store: UserStore = Depends(get_store)) -> Dict[str, object]:
        def _remove(users: List[Record]) -> Record:
            index = find_user_index(users, user_id)
            if index == -1:
                raise not_found()
            return users.pop(index)

        with storage_failure("delete_failed"):
            record = await anyio.to_thread.run_sync(users_store.mutate, _remove)
        logger.info("Deleted user %s", user_id)
        return _success(record, message=translate("deleted", locale))

    app.include_router(router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        client = request.client.host if request.client else "-"
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            logger.info("%s %s %s 500 %.1fms", client, request.method, request.url.path, elapsed)
            raise
        response.headers.update(SECURITY_HEADERS)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %s %.1fms",
            client,
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        return response

    @app.exception_handler(ValidationError)
    async def handle_validation_error(_: Request, exc: ValidationError):
        return JSONResponse(status_code=exc.status_code, content={"status": "error", "errors": exc.errors})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError):
        return JSONResponse(status_code=exc.status_code, content=_error(exc.message))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "Storage failure during %s %s: %s",
            request.method,
            request.url.path,
            exc.detail or exc,
            exc_info=exc,
        )
        return JSONResponse(status_code=exc.status_code, content=_error(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException):
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=_error(translate("route_not_found", locale)),
            )
        return JSONResponse(status_code=exc.status_code, content=_error(str(exc.detail)))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error during %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error(translate("internal_error", locale)),
            headers=SECURITY_HEADERS,
        )

    return app


__all__ = ["create_app", "filter_users", "find_user_index"]
