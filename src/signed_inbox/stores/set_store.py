"""Transient set-store backed by Redis sets.

Every receiver owns one Redis set holding JSON blobs. Reading a partition
drains it: ``SMEMBERS`` and ``DEL`` run inside a single ``MULTI``/``EXEC``
transaction, so two concurrent readers can never both receive the same
message.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any

import redis

from signed_inbox.core.errors import StorageError
from signed_inbox.db.time import utcnow

from .base import Message, MessageStore, StoreCapabilities, StoredMessage

logger = logging.getLogger(__name__)


class RedisSetStore(MessageStore):
    """Message store keeping an unordered, consume-on-read set per receiver."""

    name = "set"
    capabilities = StoreCapabilities(read_state=False, delete=False, destructive_read=True)

    def __init__(self, client: redis.Redis, *, key_prefix: str = "") -> None:
        self._redis = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "") -> RedisSetStore:
        """Build a store with its own connection pool."""
        return cls(redis.from_url(url), key_prefix=key_prefix)

    def _key(self, receiver: str) -> str:
        return f"{self._key_prefix}{receiver}"

    @staticmethod
    def _encode(message: Message) -> str:
        # The random id keeps identical messages from collapsing into one set member.
        return json.dumps(
            {
                "id": uuid.uuid4().hex,
                "sender": message.sender,
                "content": message.content,
                "sent_at": utcnow().isoformat(),
            },
            separators=(",", ":"),
        )

    @staticmethod
    def _parse_timestamp(value: object) -> datetime | None:
        if not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None

    @classmethod
    def _decode(cls, receiver: str, blob: bytes | str) -> StoredMessage:
        """Turn a set member into a message.

        Every member removed by a read must be returned, so decoding never
        fails: bodies written by older clients come back as their whole JSON
        object, and anything that is not a JSON object comes back as
        ``{"raw": <text>}``.
        """
        text = blob.decode("utf-8", errors="replace") if isinstance(blob, bytes) else blob
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            logger.warning("Returning undecodable message for %s as raw text", receiver)
            return StoredMessage(receiver=receiver, content={"raw": text})

        content = payload.get("content")
        if not isinstance(content, dict):
            logger.warning("Returning legacy message body for %s", receiver)
            content = payload
        sender = payload.get("sender")
        return StoredMessage(
            receiver=receiver,
            content=content,
            sender=sender if isinstance(sender, str) else None,
            created_at=cls._parse_timestamp(payload.get("sent_at")),
        )

    def _append(self, receiver: str, message: Message) -> None:
        try:
            self._redis.sadd(self._key(receiver), self._encode(message))
        except redis.RedisError as exc:
            raise StorageError(f"Could not store message for {receiver}: {exc}") from exc

    def read(self, receiver: str, only_unread: bool = False) -> list[StoredMessage]:
        """Drain and return every message in the receiver's set.

        ``only_unread`` has no effect: anything still stored is unread.
        """
        key = self._key(receiver)
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.smembers(key)
            pipe.delete(key)
            members, _ = pipe.execute()
        except redis.RedisError as exc:
            raise StorageError(f"Could not read messages for {receiver}: {exc}") from exc

        messages = [self._decode(receiver, blob) for blob in members]
        messages.sort(key=lambda item: item.created_at.isoformat() if item.created_at else "")
        return messages

    def count_unread(self, receiver: str) -> int:
        try:
            return int(self._redis.scard(self._key(receiver)))
        except redis.RedisError as exc:
            raise StorageError(f"Could not count messages for {receiver}: {exc}") from exc

    def serialize(self, message: StoredMessage) -> dict[str, Any]:
        return message.content

    def close(self) -> None:
        self._redis.close()
