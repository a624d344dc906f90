"""Inbox orchestration: validate, authorize, then touch the store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

from pydantic import ValidationError

from signed_inbox.core.errors import (
    AuthError,
    InboxError,
    InvalidRequestError,
    UnsupportedOperationError,
)
from signed_inbox.schemas import (
    CountUnreadRequest,
    DeleteRequest,
    InboxRequest,
    ReadRequest,
    SendRequest,
    SetReadRequest,
)
from signed_inbox.stores import Message, MessageStore

from .auth_gate import AuthContext, AuthGate, AuthResult

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=InboxRequest)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "Invalid request: " + "; ".join(parts)


class InboxService:
    """Entry point for every inbox operation.

    Each operation takes the exact request bytes and the detached signature
    over them. Validation and authorization failures return before any
    store access; store failures are reported after whatever the store
    already did.
    """

    def __init__(
        self,
        store: MessageStore,
        gate: AuthGate,
        *,
        expose_delivery_outcomes: bool = False,
    ) -> None:
        self.store = store
        self.gate = gate
        self.expose_delivery_outcomes = expose_delivery_outcomes

    @staticmethod
    def parse(model: type[RequestT], body: bytes) -> RequestT:
        """Parse ``body`` as JSON into ``model``.

        Raises:
            InvalidRequestError: If the body is not valid JSON or misses fields.
        """
        if not body:
            raise InvalidRequestError("Could not read the body of the request")
        try:
            return model.model_validate_json(body)
        except ValidationError as exc:
            raise InvalidRequestError(_format_validation_error(exc)) from exc

    @staticmethod
    def validate_message(request: SendRequest) -> Message:
        """Turn a parsed send request into a deliverable message."""
        if not request.receivers:
            raise InvalidRequestError("No receivers")
        if any(not receiver.strip() for receiver in request.receivers):
            raise InvalidRequestError("Empty receiver")
        if not request.content:
            raise InvalidRequestError("Empty content")
        return Message(
            sender=request.sender,
            receivers=tuple(request.receivers),
            content=request.content,
        )

    def require_capability(self, capability: str, operation: str) -> None:
        if not getattr(self.store.capabilities, capability):
            raise UnsupportedOperationError(
                f"{operation} is not supported by the {self.store.name} store"
            )

    async def authorize(self, identity: str, body: bytes, signature: str | None) -> AuthResult:
        context = AuthContext(identity=identity, payload=body, signature=signature or "")
        try:
            return await self.gate.authorize_context(context)
        except AuthError as exc:
            logger.info("Denied request from %s: %s", identity, exc)
            raise

    @staticmethod
    def _failure(operation: str, exc: InboxError) -> dict[str, Any]:
        logger.debug("%s failed: %s", operation, exc)
        return {"success": False, "error": str(exc)}

    async def send(self, body: bytes, signature: str | None) -> dict[str, Any]:
        """Deliver a message to each of its receivers.

        Success means validation and authorization passed; ``count`` may be
        lower than the number of receivers, down to zero.
        """
        try:
            request = self.parse(SendRequest, body)
            message = self.validate_message(request)
            await self.authorize(message.sender, body, signature)
            report = await asyncio.to_thread(self.store.deliver, message)
        except InboxError as exc:
            return self._failure("send", exc)

        result: dict[str, Any] = {"success": True, "count": report.count}
        if self.expose_delivery_outcomes:
            result["outcomes"] = [
                {"receiver": outcome.receiver, "delivered": outcome.delivered, "error": outcome.error}
                for outcome in report.outcomes
            ]
        return result

    async def read(self, body: bytes, signature: str | None) -> dict[str, Any]:
        """Return the receiver's messages, consuming them on destructive stores."""
        try:
            request = self.parse(ReadRequest, body)
            await self.authorize(request.receiver, body, signature)
            messages = await asyncio.to_thread(
                self.store.read, request.receiver, request.only_unread
            )
        except InboxError as exc:
            return self._failure("read", exc)

        return {
            "success": True,
            "request_id": request.request_id,
            "messages": [self.store.serialize(message) for message in messages],
        }

    async def set_read(self, body: bytes, signature: str | None) -> dict[str, Any]:
        try:
            request = self.parse(SetReadRequest, body)
            self.require_capability("read_state", "set-read")
            if not request.read:
                raise InvalidRequestError("Messages cannot be marked unread")
            await self.authorize(request.receiver, body, signature)
            await asyncio.to_thread(
                self.store.set_read, request.receiver, request.message_id, request.read
            )
        except InboxError as exc:
            return self._failure("set-read", exc)
        return {"success": True}

    async def count_unread(self, body: bytes, signature: str | None) -> dict[str, Any]:
        try:
            request = self.parse(CountUnreadRequest, body)
            await self.authorize(request.receiver, body, signature)
            count = await asyncio.to_thread(self.store.count_unread, request.receiver)
        except InboxError as exc:
            return self._failure("count-unread", exc)
        return {"success": True, "count": count}

    async def delete(self, body: bytes, signature: str | None) -> dict[str, Any]:
        try:
            request = self.parse(DeleteRequest, body)
            self.require_capability("delete", "delete")
            await self.authorize(request.receiver, body, signature)
            await asyncio.to_thread(self.store.delete, request.receiver, request.message_id)
        except InboxError as exc:
            return self._failure("delete", exc)
        return {"success": True}

    async def close(self) -> None:
        """Release the gate's clients and the store backend."""
        await self.gate.close()
        await asyncio.to_thread(self.store.close)
