import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

HEADER = "X-Request-ID"

# Client supplied ids end up in logs and error bodies; anything else is replaced.
_VALID_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

# Read by the log filter and by the error envelope builder.
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def incoming_request_id(request: Request) -> str:
    """Reuse the caller's id when it is well formed, otherwise mint one."""
    supplied = request.headers.get(HEADER)
    if supplied and _VALID_ID.fullmatch(supplied):
        return supplied
    return new_request_id()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and echo it back."""

    async def dispatch(self, request: Request, call_next):
        req_id = incoming_request_id(request)
        request.state.request_id = req_id
        token = request_id_ctx.set(req_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[HEADER] = req_id
        return response
