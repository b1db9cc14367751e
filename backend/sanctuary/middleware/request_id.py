"""
Sanctuary Backend — Request Correlation IDs
=============================================

What:  Tags every request with a short ID that appears in the access log,
       in error bodies (`request_id`) and in the `X-Request-ID` header.
How:   A client-supplied `X-Request-ID` is reused only when it is a plain
       token (letters, digits, `.`, `_`, `-`, at most 64 characters), so a
       caller cannot inject text into log lines or error payloads. Anything
       else is replaced by an 8-character hex ID.

Readers:
    request_id_var        loggers and exception handlers (main.py)
    request.state         route handlers
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"

_CLIENT_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,64}")


def resolve_request_id(client_value: Optional[str]) -> str:
    """Reuse a well-formed client ID, otherwise mint a new one."""
    if client_value and _CLIENT_ID_PATTERN.fullmatch(client_value):
        return client_value
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        # Not reset afterwards: the outermost 500 handler still reads it
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
