"""SQLAlchemy models for the Signed Inbox service."""

from .inbox_message import InboxMessage

__all__ = ["InboxMessage"]
