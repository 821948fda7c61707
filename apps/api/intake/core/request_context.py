"""Per-request identifiers for log correlation."""

import uuid
from contextvars import ContextVar, Token

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)


def start_request_context(request_id: str) -> Token:
    """Bind the request id to the current context and return the reset token."""
    return _REQUEST_ID.set(request_id)


def reset_request_context(token: Token) -> None:
    _REQUEST_ID.reset(token)


def current_request_id() -> str | None:
    """Return the id of the request being handled, if any."""
    return _REQUEST_ID.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Accept or mint an X-Request-ID and echo it on the response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = start_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_context(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
