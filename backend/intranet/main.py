from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from intranet.core.config import settings
from intranet.core.exceptions import IntranetException
from intranet.core.logging import setup_logging
from intranet.core.security_headers import install_security_headers_middleware
from intranet.routers import (
    ai,
    auth,
    books,
    departments,
    embeddings,
    forms,
    helpdesks,
    home,
    inbound_email,
    notifications,
    pages,
    roles,
    search,
    settings as settings_router,
    tickets,
    users,
)
from intranet.services.embedding_queue import start_embedding_worker, stop_embedding_worker
from intranet.services.sla.sweeper import start_escalation_sweeper, stop_escalation_sweeper


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    settings.validate_runtime_security()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await start_embedding_worker()
        await start_escalation_sweeper()
        try:
            yield
        finally:
            await stop_escalation_sweeper()
            await stop_embedding_worker()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )
    install_security_headers_middleware(app, settings)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(roles.router, prefix="/api", tags=["roles"])
    app.include_router(departments.router, prefix="/api", tags=["departments"])
    app.include_router(settings_router.router, prefix="/api", tags=["settings"])
    app.include_router(helpdesks.router, prefix="/api", tags=["helpdesks"])
    # Signed by the mail provider, not behind user auth.
    app.include_router(inbound_email.router, prefix="/api", tags=["inbound-email"])
    app.include_router(forms.router, prefix="/api", tags=["forms"])
    app.include_router(tickets.router, prefix="/api/tickets", tags=["tickets"])
    app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
    app.include_router(books.router, prefix="/api/books", tags=["books"])
    app.include_router(pages.router, prefix="/api/pages", tags=["pages"])
    app.include_router(search.router, prefix="/api", tags=["search"])
    app.include_router(embeddings.router, prefix="/api/embeddings", tags=["embeddings"])
    app.include_router(home.router, prefix="/api", tags=["home"])
    app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

    @app.exception_handler(IntranetException)
    async def handle_intranet_exception(_: Request, exc: IntranetException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    return app


app = create_app()
