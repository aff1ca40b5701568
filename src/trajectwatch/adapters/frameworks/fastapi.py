"""FastAPI adapter exposing the traject query façade."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import date
from typing import Any

from fastapi import APIRouter, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from trajectwatch.core.exceptions import (
    DuplicateIdError,
    StorageError,
    TrajectNotFoundError,
    ValidationError,
)
from trajectwatch.core.models import Direction
from trajectwatch.service import TrajectService

logger = logging.getLogger(__name__)

_NO_STORE = {"Cache-Control": "no-store"}


class TrajectSpecBody(BaseModel):
    """Registration payload; field validation happens in the core."""

    model_config = ConfigDict(extra="ignore")

    id: Any = None
    name: Any = None
    origin: Any = None
    destination: Any = None
    mode: Any = None
    intervalMinutes: Any = None
    logFile: Any = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies and query parameters as 400 errors."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return _error(400, problems or "invalid request")


async def _handle_endpoint(
    endpoint_func: Callable[[], Awaitable[Response]], log_message: str
) -> Response:
    """Run an endpoint, mapping lookup failures to 404 and crashes to 500."""
    try:
        return await endpoint_func()
    except TrajectNotFoundError as exc:
        return _error(404, str(exc))
    except Exception:
        logger.exception(log_message)
        return _error(500, "Internal Server Error")


def create_traject_router(
    service: TrajectService,
    public_config: Mapping[str, Any] | None = None,
) -> APIRouter:
    """Create a FastAPI router with the /api endpoints.

    Args:
        service: Query façade backing the endpoints.
        public_config: Process defaults returned by /api/config. Must not
            contain secrets.

    Returns:
        APIRouter with health, config, traject, eta and history endpoints.
    """
    router = APIRouter(prefix="/api")
    config_body = dict(public_config or {})

    @router.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @router.get("/config")
    async def get_config() -> dict[str, Any]:
        """Return the sanitized process defaults."""
        return config_body

    @router.get("/trajects")
    async def list_trajects() -> Response:
        async def endpoint() -> Response:
            trajects = await service.list_trajects()
            return JSONResponse([t.to_document() for t in trajects])

        return await _handle_endpoint(endpoint, "Error listing trajects")

    @router.post("/trajects")
    async def register_traject(body: TrajectSpecBody) -> Response:
        """Register a traject and start polling it.

        Returns 201 with the resolved traject, 400 on validation errors and
        409 when the id is taken.
        """
        spec = body.model_dump(exclude_none=True)
        try:
            traject = await service.register(spec)
        except DuplicateIdError as exc:
            return _error(409, str(exc))
        except ValidationError as exc:
            return _error(400, str(exc))
        except StorageError:
            logger.exception("Error persisting traject")
            return _error(503, "Traject store unavailable")
        return JSONResponse(status_code=201, content=traject.to_document())

    @router.get("/eta")
    async def get_eta(traject: str | None = Query(default=None)) -> Response:
        """Return the last-known forward and reverse measurements."""

        async def endpoint() -> Response:
            resolved, snapshot = await service.last_known(traject)
            return JSONResponse(
                {"traject": resolved.to_document(), "last": snapshot.to_dict()}
            )

        return await _handle_endpoint(endpoint, "Error reading last-known measurements")

    @router.get("/history")
    async def get_history(
        traject: str | None = Query(default=None),
        direction: Direction | None = Query(default=None),
        day: date | None = Query(default=None),
        limit: int | None = Query(default=None, ge=1),
    ) -> Response:
        """Return history records.

        Append order without `limit`; with `limit`, the last N newest first.
        """

        async def endpoint() -> Response:
            _, records = await service.history(
                traject, direction=direction, day=day, limit=limit
            )
            return JSONResponse([r.to_dict() for r in records], headers=_NO_STORE)

        return await _handle_endpoint(endpoint, "Error reading history")

    @router.get("/history/aligned")
    async def get_aligned_history(
        traject: str | None = Query(default=None),
        day: date | None = Query(default=None),
    ) -> Response:
        """Return forward/reverse records paired by minute."""

        async def endpoint() -> Response:
            _, rows = await service.aligned_history(traject, day=day)
            return JSONResponse([row.to_dict() for row in rows], headers=_NO_STORE)

        return await _handle_endpoint(endpoint, "Error reading aligned history")

    return router
