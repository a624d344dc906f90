"""Pydantic schemas for request validation."""

from .inbox import (
    CountUnreadRequest,
    DeleteRequest,
    InboxRequest,
    ReadRequest,
    SendRequest,
    SetReadRequest,
)

__all__ = [
    "InboxRequest",
    "SendRequest",
    "ReadRequest",
    "SetReadRequest",
    "CountUnreadRequest",
    "DeleteRequest",
]
