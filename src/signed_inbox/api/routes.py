"""Signed inbox endpoints.

Every endpoint answers 200 with a ``success`` flag; failures carry an
``error`` message instead of an HTTP error status.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from .dependencies import InboxServiceDep, RawBodyDep, SignatureDep

router = APIRouter(tags=["inbox"])


@router.post("/send")
async def send_message(
    body: RawBodyDep,
    signature: SignatureDep,
    service: InboxServiceDep,
) -> dict[str, Any]:
    """Deposit a message in every receiver's inbox."""
    return await service.send(body, signature)


@router.post("/read")
async def read_messages(
    body: RawBodyDep,
    signature: SignatureDep,
    service: InboxServiceDep,
) -> dict[str, Any]:
    """Return the caller's messages."""
    return await service.read(body, signature)


@router.post("/set-read")
async def set_message_read(
    body: RawBodyDep,
    signature: SignatureDep,
    service: InboxServiceDep,
) -> dict[str, Any]:
    """Mark one of the caller's messages as read."""
    return await service.set_read(body, signature)


@router.post("/count-unread")
async def count_unread_messages(
    body: RawBodyDep,
    signature: SignatureDep,
    service: InboxServiceDep,
) -> dict[str, Any]:
    """Count the caller's unread messages."""
    return await service.count_unread(body, signature)


@router.post("/delete")
async def delete_message(
    body: RawBodyDep,
    signature: SignatureDep,
    service: InboxServiceDep,
) -> dict[str, Any]:
    """Delete one of the caller's messages."""
    return await service.delete(body, signature)
