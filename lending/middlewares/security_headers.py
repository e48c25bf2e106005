from __future__ import annotations

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


def build_dashboard_csp(static_path: str = "/static") -> str:
    """Policy for the server-rendered dashboard: plain forms, one stylesheet, no scripts."""

    directives = {
        "default-src": ["'none'"],
        "style-src": ["'self'", static_path.rstrip("/") + "/"],
        "img-src": ["'self'", "data:"],
        "form-action": ["'self'"],
        "frame-ancestors": ["'none'"],
        "base-uri": ["'none'"],
    }
    return "; ".join(f"{name} {' '.join(sources)}" for name, sources in directives.items())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Lock dashboard pages down to same-origin forms and stylesheets.

    JSON responses only get ``nosniff``. The policy is applied to HTML pages,
    except the interactive API docs, which load their assets from a CDN.
    """

    def __init__(
        self,
        app: ASGIApp,
        static_path: str = "/static",
        exempt_paths: Iterable[str] = ("/docs", "/redoc"),
    ) -> None:
        super().__init__(app)
        self.csp = build_dashboard_csp(static_path)
        self.exempt_paths = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("text/html") or request.url.path.startswith(self.exempt_paths):
            return response
        response.headers.setdefault("Content-Security-Policy", self.csp)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "same-origin")
        return response
