# backend/app/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import DomainError
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.users import router as users_router

from .routers.properties import router as properties_router
from .routers.projects import router as projects_router
from .routers.bids import router as bids_router
from .routers.documents import router as documents_router

from .routers.messages import router as messages_router
from .routers.notifications import router as notifications_router
from .routers.realtime import router as realtime_router

API_PREFIX = "/api"

log = logging.getLogger("bidding.api")


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning("dependency failure", exc_info=exc, extra={"event": exc.code})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.detail})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Vendor Bidding Marketplace",
        version=settings.app_version,
    )

    # outermost last: request id must exist before the access log runs
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, _domain_error_handler)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)

    # Marketplace
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(projects_router, prefix=API_PREFIX)
    app.include_router(bids_router, prefix=API_PREFIX)
    app.include_router(documents_router, prefix=API_PREFIX)

    # Messaging + live events
    app.include_router(messages_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)
    app.include_router(realtime_router, prefix=API_PREFIX)

    return app


app = create_app()
