"""Dependency helpers for the inbox routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from signed_inbox.core.settings import settings
from signed_inbox.services import InboxService


def get_inbox_service(request: Request) -> InboxService:
    """Return the service built at startup."""
    service: InboxService | None = getattr(request.app.state, "inbox_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inbox service is not initialised",
        )
    return service


async def get_request_body(request: Request) -> bytes:
    """Return the exact bytes the client signed."""
    return await request.body()


def get_signature(request: Request) -> str | None:
    """Return the detached signature from its dedicated header."""
    return request.headers.get(settings.signature_header)


InboxServiceDep = Annotated[InboxService, Depends(get_inbox_service)]
RawBodyDep = Annotated[bytes, Depends(get_request_body)]
SignatureDep = Annotated[str | None, Depends(get_signature)]
