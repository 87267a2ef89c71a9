"""Request ID middleware for request tracing.

Reads X-Request-ID from the incoming request header or generates a UUID4.
Incoming IDs are sanitised (printable ASCII, 64 chars max) because they end
up verbatim in every log line for the request. The ID is echoed back as a
response header.
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from racefetch.core.context import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 64
_UNSAFE_CHARS_RE = re.compile(r"[^\x21-\x7e]")


def sanitize_request_id(raw: str | None) -> str:
    cleaned = _UNSAFE_CHARS_RE.sub("", raw or "")[:_MAX_REQUEST_ID_LENGTH]
    return cleaned or str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        rid = sanitize_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            request_id_var.reset(token)
