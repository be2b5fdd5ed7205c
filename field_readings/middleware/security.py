# field_readings/middleware/security.py
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
import logging
from field_readings.config import settings

logger = logging.getLogger(__name__)

DOC_PATHS = {"/docs", "/redoc", "/openapi.json", "/docs/oauth2-redirect"}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Security headers on every response, relaxed CSP on the docs pages."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Readings and meter lists must never be served from a cache
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
        response.headers["Pragma"] = "no-cache"

        if not settings.DEBUG:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        if request.url.path in DOC_PATHS:
            # Swagger UI loads its assets from jsdelivr
            csp = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https:; "
                "frame-ancestors 'none'"
            )
        else:
            csp = "default-src 'none'; frame-ancestors 'none'"

        response.headers["Content-Security-Policy"] = csp

        return response
