"""Request context middleware.

Binds the X-Request-ID of each request (or a fresh UUID4) to the log
context and echoes it on the response.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .log_context import bind_request_id, clear

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of each request.

    Example:
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        clear()
        request_id = bind_request_id(request.headers.get(REQUEST_ID_HEADER))
        try:
            response = await call_next(request)
        finally:
            clear()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
