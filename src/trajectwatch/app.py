"""FastAPI application setup.

Configures the app with the traject router and lifespan events that
start and stop polling.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from trajectwatch.adapters.frameworks.fastapi import (
    create_traject_router,
    request_validation_handler,
)
from trajectwatch.config import Settings
from trajectwatch.service import TrajectService, build_service


def create_app(
    settings: Settings | None = None,
    service: TrajectService | None = None,
) -> FastAPI:
    """Create and configure the trajectwatch FastAPI application.

    Args:
        settings: Runtime settings (read from the environment if omitted).
        service: Prebuilt service; built from settings if omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or Settings()
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Start polling every stored traject on startup."""
        await service.start()
        yield
        await service.stop()

    app = FastAPI(title="trajectwatch", lifespan=lifespan)
    app.state.service = service
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(create_traject_router(service, settings.public()))
    return app
