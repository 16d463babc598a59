# backend/app/middleware/request_context.py
from __future__ import annotations

import logging
import re
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("signature_elite.request")

REQUEST_ID_HEADER = "X-Request-ID"

# /api/properties/12/... and /api/offers/7/... carry the entity the request touches
_ENTITY_PATH = re.compile(r"^/api/(properties|offers|users)/(\d+)(?:/|$)")
_ENTITY_KEYS = {"properties": "property_id", "offers": "offer_id", "users": "user_id"}


@dataclass
class RequestContext:
    request_id: str
    caller_email: Optional[str] = None
    entity: dict[str, int] = field(default_factory=dict)

    def log_fields(self) -> dict[str, Any]:
        out: dict[str, Any] = {"request_id": self.request_id}
        if self.caller_email:
            out["user_email"] = self.caller_email
        out.update(self.entity)
        return out


_ctx: ContextVar[Optional[RequestContext]] = ContextVar("signature_elite_request", default=None)


def current_context() -> Optional[RequestContext]:
    return _ctx.get()


def entity_from_path(path: str) -> dict[str, int]:
    m = _ENTITY_PATH.match(path or "")
    if not m:
        return {}
    return {_ENTITY_KEYS[m.group(1)]: int(m.group(2))}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Opens a request context and writes one access line when the request ends.

    The context holds the request id (incoming X-Request-ID or a fresh uuid4),
    the caller's email when sent through the dev identity header, and the
    property/offer/user id parsed from the path. The JSON log formatter copies
    these onto every record emitted while the request runs, so service logs
    inside a handler are correlated without passing ids around.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        ctx = RequestContext(
            request_id=rid,
            caller_email=(request.headers.get(settings.dev_header_user_email) or "").strip().lower() or None,
            entity=entity_from_path(request.url.path),
        )
        request.state.request_id = rid
        token = _ctx.set(ctx)

        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            level = logging.ERROR if status_code >= 500 else logging.INFO
            log.log(
                level,
                "%s %s -> %d",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "event": "http_request",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                },
            )
            _ctx.reset(token)
