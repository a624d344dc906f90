"""Public key directories used to resolve a claimed identity.

The production directory is the Zenflows GraphQL API, which publishes each
person's EdDSA public key. A static directory backed by configuration is
provided for local deployments.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from signed_inbox.core.errors import KeyDirectoryUnavailableError

logger = logging.getLogger(__name__)

HTTP_OK = 200

PERSON_PUBKEY_QUERY = """
query($id: ID!) {
  person(id: $id) {
    eddsaPublicKey
  }
}
""".strip()


class KeyDirectory(Protocol):
    """Anything able to map an identity to its public key."""

    async def resolve(self, identity: str) -> str | None:
        """Return the identity's public key, or None if it has none."""
        ...

    async def close(self) -> None:
        ...


class StaticKeyDirectory:
    """Directory answering from a fixed identity -> key mapping."""

    def __init__(self, keys: Mapping[str, str]) -> None:
        self._keys = dict(keys)

    async def resolve(self, identity: str) -> str | None:
        return self._keys.get(identity)

    async def close(self) -> None:
        return None


class HttpKeyDirectory:
    """GraphQL client resolving EdDSA keys from the identity service."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def resolve(self, identity: str) -> str | None:
        """Query the directory for ``identity``'s public key.

        Raises:
            KeyDirectoryUnavailableError: On transport failures, non-200
                responses or payloads that are not GraphQL results.
        """
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.url,
                json={"query": PERSON_PUBKEY_QUERY, "variables": {"id": identity}},
            )
        except httpx.HTTPError as exc:
            logger.warning("Key directory request failed: %s", exc)
            raise KeyDirectoryUnavailableError(f"Key directory request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise KeyDirectoryUnavailableError(
                f"Key directory responded with {response.status_code}"
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise KeyDirectoryUnavailableError("Key directory returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise KeyDirectoryUnavailableError("Key directory returned an unexpected payload")

        data = payload.get("data")
        if not isinstance(data, dict):
            errors = payload.get("errors") or "no data"
            raise KeyDirectoryUnavailableError(f"Key directory query failed: {errors}")
        person = data.get("person")
        if not isinstance(person, dict):
            # Unknown ids come back as a null person, possibly with errors alongside.
            return None
        key = person.get("eddsaPublicKey")
        return key if isinstance(key, str) and key else None

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
