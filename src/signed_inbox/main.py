"""Main entry point for the Signed Inbox application."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signed_inbox.api import inbox_router
from signed_inbox.core.settings import settings
from signed_inbox.runtime import build_inbox_service
from signed_inbox.services import InboxService

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Signature-gated multi-recipient message inbox",
    version=settings.app_version,
)

# Browsers must be allowed to send the signature header cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[settings.signature_header, "Content-Type"],
)

app.include_router(inbox_router)


@app.on_event("startup")
async def on_startup() -> None:
    if getattr(app.state, "inbox_service", None) is None:
        app.state.inbox_service = build_inbox_service(settings)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    service: InboxService | None = getattr(app.state, "inbox_service", None)
    if service is not None:
        await service.close()
        app.state.inbox_service = None


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint to verify the service is running."""
    service: InboxService | None = getattr(app.state, "inbox_service", None)
    return {"status": "ok", "store": service.store.name if service else None}


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "signed_inbox.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    run()
