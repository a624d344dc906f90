"""Construction of the long-lived backend clients.

Everything here is built once at startup from ``Settings`` and torn down at
shutdown; nothing is created lazily behind a module-level singleton.
"""

from __future__ import annotations

import logging

from signed_inbox.core.settings import Settings
from signed_inbox.db.session import build_engine, create_tables
from signed_inbox.services import (
    AuthGate,
    Ed25519Verifier,
    HttpKeyDirectory,
    InboxService,
    RemoteVerifier,
    StaticKeyDirectory,
)
from signed_inbox.services.key_directory import KeyDirectory
from signed_inbox.services.verifier import SignatureVerifier
from signed_inbox.stores import MessageStore, RedisSetStore, SqlTableStore

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when settings do not describe a usable runtime."""


def build_store(config: Settings) -> MessageStore:
    """Create the configured message store backend."""
    if config.inbox_store == "table":
        engine = build_engine(config.database_url, echo=config.sql_debug)
        if engine.dialect.name == "sqlite":
            create_tables(engine)
        return SqlTableStore.from_engine(engine)
    return RedisSetStore.from_url(config.effective_redis_url, key_prefix=config.redis_key_prefix)


def build_key_directory(config: Settings) -> KeyDirectory:
    """Create the public key directory, preferring a configured keyring."""
    if config.static_public_keys:
        return StaticKeyDirectory(config.static_public_keys)
    if not config.zenflows_url:
        raise ConfigurationError("ZENFLOWS_URL or STATIC_PUBLIC_KEYS must be set")
    return HttpKeyDirectory(
        config.zenflows_url,
        timeout_seconds=config.key_directory_timeout_seconds,
    )


def build_verifier(config: Settings) -> SignatureVerifier:
    """Create the signature verification capability."""
    if config.verifier == "remote":
        if not config.verifier_url:
            raise ConfigurationError("VERIFIER_URL must be set for the remote verifier")
        return RemoteVerifier(config.verifier_url, timeout_seconds=config.verifier_timeout_seconds)
    return Ed25519Verifier()


def build_inbox_service(config: Settings) -> InboxService:
    """Wire store, gate and service together."""
    gate = AuthGate(
        build_key_directory(config),
        build_verifier(config),
        directory_timeout_seconds=config.key_directory_timeout_seconds,
        verifier_timeout_seconds=config.verifier_timeout_seconds,
    )
    store = build_store(config)
    logger.info("Inbox service using the %s store", store.name)
    return InboxService(
        store,
        gate,
        expose_delivery_outcomes=config.expose_delivery_outcomes,
    )
