"""
HTTP middleware: response hardening, double-submit CSRF, request context.

Order in ``create_app`` matters: the request-context middleware is
outermost so every log line, including CSRF rejections, carries the
request id.
"""

from __future__ import annotations

import secrets
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.auth import CSRF_COOKIE, SESSION_COOKIE
from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
CSRF_HEADER = "X-CSRF-Token"
REQUEST_ID_HEADER = "X-Request-ID"


def security_headers(production: bool) -> dict[str, str]:
    """Headers attached to every response. HSTS is sent only in production."""
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        # JSON only, apart from the interactive docs pages.
        "Content-Security-Policy": (
            "default-src 'none'; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "img-src 'self' data: https://fastapi.tiangolo.com; "
            "connect-src 'self'; "
            "frame-ancestors 'none'"
        ),
    }
    if production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


SECURITY_HEADERS = security_headers(settings.is_production)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie check for cookie-authenticated writes.

    The ``X-CSRF-Token`` header must equal the CSRF cookie issued at login.
    Not enforced for safe methods, for requests carrying an Authorization
    header, or when no session cookie is present.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if (
            request.method in SAFE_METHODS
            or request.headers.get("Authorization")
            or SESSION_COOKIE not in request.cookies
        ):
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE, "")
        header_token = request.headers.get(CSRF_HEADER, "")
        if not cookie_token or not secrets.compare_digest(
            cookie_token.encode(), header_token.encode()
        ):
            log.warning("csrf.rejected", path=request.url.path, has_header=bool(header_token))
            return JSONResponse(
                status_code=403,
                content={"status": "fail", "message": "Invalid or missing CSRF token."},
            )
        return await call_next(request)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to structlog's context for the lifetime of a request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
