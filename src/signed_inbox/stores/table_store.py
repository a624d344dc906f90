"""Durable table-store backed by SQLAlchemy."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from signed_inbox.core.errors import InvalidRequestError, NotFoundError, StorageError
from signed_inbox.db.session import build_session_factory
from signed_inbox.models import InboxMessage

from .base import Message, MessageStore, StoreCapabilities, StoredMessage


def _to_stored(row: InboxMessage) -> StoredMessage:
    return StoredMessage(
        receiver=row.receiver,
        content=row.content,
        sender=row.sender,
        id=row.id,
        read=row.read,
        created_at=row.created_at,
    )


class SqlTableStore(MessageStore):
    """Message store keeping one row per receiver copy.

    Reads are non-destructive. Each public call runs in its own session, so
    a fan-out commits every receiver independently.
    """

    name = "table"
    capabilities = StoreCapabilities(read_state=True, delete=True, destructive_read=False)

    def __init__(self, session_factory: sessionmaker[Session], *, engine: Engine | None = None) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_engine(cls, engine: Engine) -> SqlTableStore:
        """Build a store that owns ``engine`` and disposes it on close."""
        return cls(build_session_factory(engine), engine=engine)

    def _append(self, receiver: str, message: Message) -> None:
        with self._session_factory() as session:
            try:
                session.add(
                    InboxMessage(
                        receiver=receiver,
                        sender=message.sender,
                        content=message.content,
                        read=False,
                    )
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Could not store message for {receiver}: {exc}") from exc

    def read(self, receiver: str, only_unread: bool = False) -> list[StoredMessage]:
        query = select(InboxMessage).where(InboxMessage.receiver == receiver)
        if only_unread:
            query = query.where(InboxMessage.read.is_(False))
        query = query.order_by(InboxMessage.id)

        with self._session_factory() as session:
            try:
                rows = session.scalars(query).all()
            except SQLAlchemyError as exc:
                raise StorageError(f"Could not read messages for {receiver}: {exc}") from exc
            return [_to_stored(row) for row in rows]

    def set_read(self, receiver: str, message_id: int, read: bool = True) -> None:
        """Flag a message as read.

        Setting an already-read message read again is a no-op. Un-reading a
        message is rejected because ``read`` is monotonic.

        Raises:
            NotFoundError: If ``message_id`` does not belong to ``receiver``.
        """
        if not read:
            raise InvalidRequestError("Messages cannot be marked unread")
        with self._session_factory() as session:
            try:
                result = session.execute(
                    update(InboxMessage)
                    .where(
                        InboxMessage.receiver == receiver,
                        InboxMessage.id == message_id,
                    )
                    .values(read=True)
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Could not update message {message_id}: {exc}") from exc
        if result.rowcount == 0:
            raise NotFoundError("Message not found")

    def count_unread(self, receiver: str) -> int:
        query = (
            select(func.count())
            .select_from(InboxMessage)
            .where(InboxMessage.receiver == receiver, InboxMessage.read.is_(False))
        )
        with self._session_factory() as session:
            try:
                return int(session.scalar(query) or 0)
            except SQLAlchemyError as exc:
                raise StorageError(f"Could not count messages for {receiver}: {exc}") from exc

    def delete(self, receiver: str, message_id: int) -> None:
        """Remove a message.

        Raises:
            NotFoundError: If ``message_id`` does not belong to ``receiver``.
        """
        with self._session_factory() as session:
            try:
                result = session.execute(
                    delete(InboxMessage).where(
                        InboxMessage.receiver == receiver,
                        InboxMessage.id == message_id,
                    )
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Could not delete message {message_id}: {exc}") from exc
        if result.rowcount == 0:
            raise NotFoundError("Message not found")

    def serialize(self, message: StoredMessage) -> dict[str, Any]:
        return {
            "id": message.id,
            "sender": message.sender,
            "content": message.content,
            "read": message.read,
            "created_at": message.created_at.isoformat() if message.created_at else None,
        }

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
