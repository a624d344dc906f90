"""HTTP API for the Signed Inbox service."""

from .routes import router as inbox_router

__all__ = ["inbox_router"]
