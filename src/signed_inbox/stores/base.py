"""Message store interface shared by the set-store and table-store backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from signed_inbox.core.errors import StorageError, UnsupportedOperationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """A message as deposited by its sender."""

    sender: str
    receivers: tuple[str, ...]
    content: dict[str, Any]


@dataclass
class StoredMessage:
    """One receiver's copy of a message."""

    receiver: str
    content: dict[str, Any]
    sender: str | None = None
    id: int | None = None
    read: bool = False
    created_at: datetime | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of storing a message for a single receiver."""

    receiver: str
    delivered: bool
    error: str | None = None


@dataclass(frozen=True)
class StoreCapabilities:
    """Operations a backend supports beyond send, read and count.

    Attributes:
        read_state: Messages carry an addressable id and a read flag.
        delete: Individual messages can be deleted by id.
        destructive_read: Reading a partition consumes what was returned.
    """

    read_state: bool = False
    delete: bool = False
    destructive_read: bool = False


@dataclass
class DeliveryReport:
    """Aggregated per-receiver outcomes of one fan-out."""

    outcomes: list[DeliveryOutcome] = field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.delivered)


class MessageStore(ABC):
    """Per-receiver message storage.

    Subclasses implement the single-receiver primitives; fan-out is shared.
    """

    name: str = "abstract"
    capabilities: StoreCapabilities = StoreCapabilities()

    def deliver(self, message: Message) -> DeliveryReport:
        """Store ``message`` for every receiver, best effort.

        A failing receiver is recorded as undelivered and does not stop
        delivery to the remaining receivers. Writes already performed are
        never rolled back.
        """
        report = DeliveryReport()
        for receiver in message.receivers:
            try:
                self._append(receiver, message)
            except StorageError as exc:
                logger.warning("Delivery to %s failed: %s", receiver, exc)
                report.outcomes.append(DeliveryOutcome(receiver, False, str(exc)))
                continue
            logger.info("Added message for: %s", receiver)
            report.outcomes.append(DeliveryOutcome(receiver, True))
        return report

    def send(self, message: Message) -> int:
        """Store ``message`` for each receiver and return how many succeeded."""
        return self.deliver(message).count

    @abstractmethod
    def _append(self, receiver: str, message: Message) -> None:
        """Append ``message`` to a single receiver's partition."""

    @abstractmethod
    def read(self, receiver: str, only_unread: bool = False) -> list[StoredMessage]:
        """Return the receiver's messages."""

    @abstractmethod
    def count_unread(self, receiver: str) -> int:
        """Return the number of unread messages for ``receiver``."""

    def set_read(self, receiver: str, message_id: int, read: bool = True) -> None:
        """Set the read flag of one message."""
        raise UnsupportedOperationError(f"The {self.name} store does not track read state")

    def delete(self, receiver: str, message_id: int) -> None:
        """Delete one message by id."""
        raise UnsupportedOperationError(f"The {self.name} store does not support deleting messages")

    @abstractmethod
    def serialize(self, message: StoredMessage) -> dict[str, Any]:
        """Render a stored message for the read response."""

    def close(self) -> None:
        """Release backend resources."""
