"""Entrypoint for the FastAPI application."""

import os

from dotenv import load_dotenv

# Load .env locally only (production injects env vars)
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api import (
    admin_users,
    auth,
    banking,
    class_groups,
    class_logs,
    costs,
    cron,
    donations,
    donor,
    events,
    health,
    invoices,
    logs,
    orphanages,
    transparency,
    uploads,
)
from .core.logging import configure_logging
from .services.storage import LOCAL_MEDIA_ROUTE, is_local_mode, local_bucket_root

LOGGER = structlog.get_logger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def first_validation_message(exc: RequestValidationError) -> str:
    """Return the first validation message, without pydantic's prefix."""

    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg") or "Invalid request")
    if message.startswith(_VALUE_ERROR_PREFIX):
        message = message[len(_VALUE_ERROR_PREFIX):]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "missing" and location:
        return f"{location[-1]} is required"
    return message


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = first_validation_message(exc)
    LOGGER.info("request_validation_failed", path=request.url.path, detail=detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="TransforMe Academy Admin", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(uploads.router, prefix="/api")
    app.include_router(class_logs.router, prefix="/api")
    app.include_router(orphanages.router, prefix="/api")
    app.include_router(class_groups.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")
    app.include_router(admin_users.router, prefix="/api")
    app.include_router(transparency.router, prefix="/api")
    app.include_router(banking.router, prefix="/api")
    app.include_router(costs.router, prefix="/api")
    app.include_router(donations.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(donor.router, prefix="/api")
    app.include_router(logs.router, prefix="/api")
    app.include_router(cron.router, prefix="/api")

    if is_local_mode():
        app.mount(
            LOCAL_MEDIA_ROUTE,
            StaticFiles(directory=local_bucket_root()),
            name="media",
        )

    return app


app = create_app()
