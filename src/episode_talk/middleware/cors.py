"""Cross-origin headers for every response."""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from episode_talk.config import CorsSettings


def cors_headers(settings: CorsSettings) -> dict[str, str]:
    """Build the cross-origin header set from settings."""
    headers = {
        "Access-Control-Allow-Origin": settings.allow_origin,
        "Access-Control-Allow-Methods": ", ".join(settings.allowed_methods),
        "Access-Control-Allow-Headers": ", ".join(settings.allowed_headers),
    }
    if settings.allow_origin != "*":
        headers["Vary"] = "Origin"
    return headers


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Attach cross-origin headers to every response.

    Unlike Starlette's CORSMiddleware, headers are sent whether or not the
    request carries an ``Origin``, and preflight requests are answered by the
    route's own OPTIONS handler with an empty body.
    """

    def __init__(self, app, settings: CorsSettings | None = None):
        super().__init__(app)
        self.headers = cors_headers(settings or CorsSettings())

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response
