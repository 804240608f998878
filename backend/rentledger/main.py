# backend/rentledger/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .domain.errors import LedgerError
from .logging_config import configure_logging
from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.tenants import router as tenants_router
from .routers.payments import router as payments_router

API_PREFIX = "/api"

log = logging.getLogger("rentledger.api")


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    log.warning(
        "request rejected: %s",
        exc.message,
        extra={"kind": exc.kind},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    configure_logging()
    if settings.auto_create_tables:
        init_db()

    app = FastAPI(
        title="RentLedger",
        version=getattr(settings, "api_version", "dev"),
    )

    # last added = outermost; request id must wrap the request logger
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, _ledger_error_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(tenants_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)

    return app


app = create_app()
