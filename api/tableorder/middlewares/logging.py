import json
import logging
import os
import random
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..obs.errors import capture_exception
from ..utils.responses import err
from .request_id import HEADER, incoming_request_id, request_id_ctx

# Request fields that never reach the logs
REDACT_KEYS = {"password", "refresh_token", "access_token", "email", "phone"}
LOG_SAMPLE_2XX = float(os.getenv("LOG_SAMPLE_2XX", "1.0"))

logger = logging.getLogger("tableorder.http")


def _redact(obj):
    if isinstance(obj, dict):
        return {
            k: ("***" if k.lower() in REDACT_KEYS else _redact(v))
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_redact(v) for v in obj]
    return obj


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured line per request and turn crashes into a 500 envelope."""

    async def dispatch(self, request: Request, call_next):
        req_id = getattr(request.state, "request_id", None)
        token = None
        if not req_id:
            req_id = incoming_request_id(request)
            request.state.request_id = req_id
            token = request_id_ctx.set(req_id)

        body_bytes = await request.body()

        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes, "more_body": False}

        request._receive = receive

        body = None
        if body_bytes and request.headers.get("content-type", "").startswith(
            "application/json"
        ):
            try:
                body = json.loads(body_bytes)
            except ValueError:
                body = "<unparseable>"

        start = time.perf_counter()
        error_id = None
        try:
            response = await call_next(request)
        except Exception as exc:
            error_id = uuid.uuid4().hex
            logger.exception("request crashed error_id=%s", error_id)
            capture_exception(exc)
            payload = err("INTERNAL", "Internal Server Error")
            payload["error_id"] = error_id
            response = JSONResponse(payload, status_code=500)
        latency_ms = int((time.perf_counter() - start) * 1000)
        status = response.status_code

        if status >= 300 or random.random() < LOG_SAMPLE_2XX:
            line = {
                "method": request.method,
                "path": request.url.path,
                "ip": request.client.host if request.client else None,
            }
            if request.query_params:
                line["query"] = _redact(dict(request.query_params))
            if body is not None:
                line["body"] = _redact(body)
            if error_id:
                line["error_id"] = error_id
            log_fn = logger.error if status >= 500 else logger.info
            log_fn(
                json.dumps(line),
                extra={
                    "route": request.url.path,
                    "status": status,
                    "latency_ms": latency_ms,
                },
            )

        response.headers[HEADER] = req_id
        if token is not None:
            request_id_ctx.reset(token)
        return response
