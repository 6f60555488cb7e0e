"""HTTP security headers middleware."""

from __future__ import annotations

from fastapi import FastAPI, Request

from intranet.core.config import Settings

API_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
}


def security_headers_for(path: str, *, production: bool) -> dict[str, str]:
    if not path.startswith("/api"):
        return {}
    headers = dict(API_SECURITY_HEADERS)
    if production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


def install_security_headers_middleware(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        for name, value in security_headers_for(request.url.path or "", production=settings.is_production).items():
            response.headers.setdefault(name, value)
        return response
