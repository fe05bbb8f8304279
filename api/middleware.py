"""Request context middleware using ContextVar.

Assigns every request an id (taken from the X-Request-ID header when the
caller supplies one) and stores it in the logging request context, so any
downstream log line (resolver, pricing, catalog adapter) carries it without
explicit parameter passing. The id is echoed back in the response header.
"""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import request_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and path to the logging context for one request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        token = request_context.set(
            {"request_id": request_id, "path": request.url.path}
        )
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_context.reset(token)
