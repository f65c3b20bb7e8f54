"""
Middleware for handling multi-tenancy
"""
from fastapi import Request, status
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

ORG_HEADER = "X-Org-ID"


class OrgMiddleware(BaseHTTPMiddleware):
    """
    Middleware that extracts org_id from X-Org-ID header
    and sets it on request.state for use in endpoint handlers
    """

    # Paths that don't require organization context
    EXEMPT_PATHS = [
        "/docs",
        "/redoc",
        "/openapi.json",
        "/auth",
        "/organizations",
        "/taxes",
        "/health",
    ]

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path == "/" or any(path.startswith(exempt) for exempt in self.EXEMPT_PATHS):
            return await call_next(request)

        # Skip for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        org_header = request.headers.get(ORG_HEADER)

        if not org_header:
            return Response(
                content='{"detail":"Missing X-Org-ID header","code":"org_header_missing"}',
                status_code=status.HTTP_400_BAD_REQUEST,
                media_type="application/json"
            )

        try:
            org_id = UUID(org_header)
        except ValueError:
            return Response(
                content='{"detail":"Invalid X-Org-ID format. Must be a valid UUID","code":"org_header_invalid"}',
                status_code=status.HTTP_400_BAD_REQUEST,
                media_type="application/json"
            )

        request.state.org_id = org_id
        logger.debug(f"Request to {path} with org_id: {org_id}")

        response = await call_next(request)
        response.headers["X-Org-ID"] = str(org_id)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers for production
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
