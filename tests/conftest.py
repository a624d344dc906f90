from __future__ import annotations

import base64
import threading
from collections import defaultdict
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
import redis
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from signed_inbox.core.settings import settings
from signed_inbox.db.session import Base, create_tables, drop_tables
from signed_inbox.main import app as fastapi_app
from signed_inbox.services import AuthGate, Ed25519Verifier, InboxService, StaticKeyDirectory
from signed_inbox.stores import RedisSetStore, SqlTableStore

TEST_DB_URL = "sqlite://"


class InMemoryRedis:
    """Redis double covering the set commands used by the set-store.

    Pipelines queue commands and apply them under one lock, which is what a
    MULTI/EXEC transaction guarantees on a real server.
    """

    def __init__(self) -> None:
        self._sets: dict[str, set[bytes]] = defaultdict(set)
        self._lock = threading.Lock()
        self.failing_keys: set[str] = set()
        self.closed = False

    def _check(self, key: str) -> None:
        if key in self.failing_keys:
            raise redis.ConnectionError(f"connection lost while writing {key}")

    def sadd(self, key: str, *values: str | bytes) -> int:
        self._check(key)
        with self._lock:
            before = len(self._sets[key])
            for value in values:
                self._sets[key].add(value.encode() if isinstance(value, str) else value)
            return len(self._sets[key]) - before

    def smembers(self, key: str) -> set[bytes]:
        self._check(key)
        with self._lock:
            return set(self._sets.get(key, set()))

    def scard(self, key: str) -> int:
        self._check(key)
        with self._lock:
            return len(self._sets.get(key, set()))

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._sets.pop(key, None):
                    removed += 1
        return removed

    def pipeline(self, transaction: bool = True) -> InMemoryPipeline:
        return InMemoryPipeline(self)

    def close(self) -> None:
        self.closed = True


class InMemoryPipeline:
    def __init__(self, backend: InMemoryRedis) -> None:
        self._backend = backend
        self._commands: list[tuple[str, tuple[Any, ...]]] = []

    def smembers(self, key: str) -> InMemoryPipeline:
        self._commands.append(("smembers", (key,)))
        return self

    def delete(self, *keys: str) -> InMemoryPipeline:
        self._commands.append(("delete", keys))
        return self

    def execute(self) -> list[Any]:
        backend = self._backend
        for _, args in self._commands:
            for key in args:
                backend._check(key)
        results: list[Any] = []
        with backend._lock:
            for name, args in self._commands:
                if name == "smembers":
                    results.append(set(backend._sets.get(args[0], set())))
                else:
                    results.append(sum(1 for key in args if backend._sets.pop(key, None)))
        self._commands = []
        return results


def encode_signature(signature: bytes) -> str:
    return base64.b64encode(signature).decode()


class Identity:
    """A test user holding an Ed25519 signing key."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.signing_key = SigningKey.generate()
        self.pubkey_hex = self.signing_key.verify_key.encode().hex()

    def sign(self, body: bytes) -> str:
        return encode_signature(self.signing_key.sign(body).signature)


@pytest.fixture()
def alice() -> Identity:
    return Identity("alice")


@pytest.fixture()
def bob() -> Identity:
    return Identity("bob")


@pytest.fixture()
def carol() -> Identity:
    return Identity("carol")


@pytest.fixture()
def key_directory(alice: Identity, bob: Identity, carol: Identity) -> StaticKeyDirectory:
    return StaticKeyDirectory({person.name: person.pubkey_hex for person in (alice, bob, carol)})


@pytest.fixture()
def gate(key_directory: StaticKeyDirectory) -> AuthGate:
    return AuthGate(key_directory, Ed25519Verifier())


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def table_store(session_factory: sessionmaker[Session]) -> SqlTableStore:
    return SqlTableStore(session_factory)


@pytest.fixture()
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture()
def set_store(fake_redis: InMemoryRedis) -> RedisSetStore:
    return RedisSetStore(fake_redis, key_prefix="inbox:")  # type: ignore[arg-type]


@pytest.fixture()
def table_service(table_store: SqlTableStore, gate: AuthGate) -> InboxService:
    return InboxService(table_store, gate)


@pytest.fixture()
def set_service(set_store: RedisSetStore, gate: AuthGate) -> InboxService:
    return InboxService(set_store, gate)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def make_client(app: FastAPI) -> Iterator[Callable[[InboxService], TestClient]]:
    clients: list[TestClient] = []

    def _make(service: InboxService) -> TestClient:
        app.state.inbox_service = service
        client = TestClient(app, base_url="http://test")
        client.__enter__()
        clients.append(client)
        return client

    try:
        yield _make
    finally:
        for client in clients:
            client.__exit__(None, None, None)
        app.state.inbox_service = None


@pytest.fixture()
def signature_header() -> str:
    return settings.signature_header
