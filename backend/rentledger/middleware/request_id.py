# backend/rentledger/middleware/request_id.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# ids longer than this (or with odd characters) are replaced, not trusted
_MAX_INCOMING_LEN = 64

_current_request_id: ContextVar[str | None] = ContextVar("rentledger_request_id", default=None)


def get_request_id() -> str | None:
    """Id of the request being handled on this task, if any."""
    return _current_request_id.get()


def _incoming_id(request: Request) -> str | None:
    # header lookup is case-insensitive in starlette
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if not rid or len(rid) > _MAX_INCOMING_LEN or not rid.isprintable():
        return None
    return rid


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id so payment log lines from one call can be
    grouped. A caller-supplied X-Request-ID is reused when it looks sane.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request) or uuid.uuid4().hex

        request.state.request_id = rid
        token = _current_request_id.set(rid)
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
