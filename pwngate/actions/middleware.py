"""Request body size limit middleware for PwnGate.

Action events are small JSON documents. Bodies larger than
MAX_REQUEST_BODY_BYTES are refused with HTTP 413 before any parsing or
lookup happens:

  1. Content-Length fast path: reject on the declared size without reading.
  2. Chunked / no Content-Length: accumulate with a rolling cap and reject as
     soon as the cap is exceeded.

Error bodies use the action-framework envelope so the identity provider can
report them like any other action ERROR.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pwngate.constants import MAX_REQUEST_BODY_BYTES
from pwngate.utils.logger import get_logger

logger = get_logger(__name__)

_PAYLOAD_TOO_LARGE_BODY: dict = {
    "actionStatus": "ERROR",
    "error": "invalid_request",
    "errorDescription": f"Request body too large. Maximum size: {MAX_REQUEST_BODY_BYTES // 1024}KB",
}

_INVALID_CONTENT_LENGTH_BODY: dict = {
    "actionStatus": "ERROR",
    "error": "invalid_request",
    "errorDescription": "Invalid Content-Length header",
}


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Starlette middleware enforcing the request body hard cap.

    Registration (in create_app() in pwngate/main.py):
        application.add_middleware(BodySizeLimitMiddleware)

      - Content-Length > MAX_REQUEST_BODY_BYTES   -> HTTP 413 (no body read)
      - Content-Length == MAX_REQUEST_BODY_BYTES  -> accepted
      - No Content-Length, accumulated body > cap -> HTTP 413
      - Non-integer Content-Length                -> HTTP 400
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        content_length_header = request.headers.get("content-length")

        if content_length_header is not None:
            try:
                declared_size = int(content_length_header)
            except ValueError:
                logger.warning(
                    "Invalid Content-Length header",
                    value=content_length_header,
                    path=request.url.path,
                )
                return JSONResponse(status_code=400, content=_INVALID_CONTENT_LENGTH_BODY)

            if declared_size > MAX_REQUEST_BODY_BYTES:
                logger.warning(
                    "Request body too large (Content-Length)",
                    declared_size=declared_size,
                    limit=MAX_REQUEST_BODY_BYTES,
                    path=request.url.path,
                )
                return JSONResponse(status_code=413, content=_PAYLOAD_TOO_LARGE_BODY)

            return await call_next(request)

        body_chunks: list[bytes] = []
        total_size: int = 0

        async for chunk in request.stream():
            total_size += len(chunk)
            if total_size > MAX_REQUEST_BODY_BYTES:
                logger.warning(
                    "Request body too large (chunked)",
                    accumulated_size=total_size,
                    limit=MAX_REQUEST_BODY_BYTES,
                    path=request.url.path,
                )
                return JSONResponse(status_code=413, content=_PAYLOAD_TOO_LARGE_BODY)
            body_chunks.append(chunk)

        # Starlette's Request.body() returns request._body when set, so the
        # route handler reads the cached bytes instead of the consumed stream.
        request._body = b"".join(body_chunks)  # type: ignore[attr-defined]

        return await call_next(request)
