"""Message store backends."""

from .base import (
    DeliveryOutcome,
    DeliveryReport,
    Message,
    MessageStore,
    StoreCapabilities,
    StoredMessage,
)
from .set_store import RedisSetStore
from .table_store import SqlTableStore

__all__ = [
    "DeliveryOutcome",
    "DeliveryReport",
    "Message",
    "MessageStore",
    "StoreCapabilities",
    "StoredMessage",
    "RedisSetStore",
    "SqlTableStore",
]
