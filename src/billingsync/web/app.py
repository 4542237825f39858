"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from billingsync import __version__
from billingsync.app import BillingServices, build_services

from .routes import router
from .schemas import ApiResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

log = getLogger(__name__)


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    fields = sorted({str(error["loc"][-1]) for error in errors if error.get("loc")})
    message = f"Invalid request body: {', '.join(fields)}" if fields else "Invalid request body"
    log.info("Rejected request to %s: %s", request.url.path, message)
    body = ApiResponse(success=False, message=message, data={"code": "bad_request"})
    return JSONResponse(status_code=400, content=body.model_dump())


def create_app(
    services: BillingServices | None = None,
    *,
    services_factory: Callable[[], BillingServices] = build_services,
) -> FastAPI:
    """Create the HTTP application.

    ``services`` is built lazily on startup when not supplied, so importing this
    module never touches the database or external credentials.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned: BillingServices | None = None
        if getattr(app.state, "services", None) is None:
            owned = app.state.services = services_factory()
        try:
            yield
        finally:
            if owned is not None:
                owned.close()

    app = FastAPI(title="billingsync", version=__version__, lifespan=lifespan)
    app.state.services = services
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app
