"""Signature verification capabilities.

A verifier answers one question: does ``signature`` sign ``payload`` under
``public_key``? Failing to answer is different from answering no, and is
reported as ``VerifierFaultError`` so the gate can fail closed.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Protocol

import httpx

from signed_inbox.core.errors import VerifierFaultError
from signed_inbox.core.security import decode_public_key, decode_signature, verify_signature_bytes

logger = logging.getLogger(__name__)

HTTP_OK = 200


class SignatureVerifier(Protocol):
    """Verification capability consumed by the auth gate."""

    async def verify(self, payload: bytes, signature: str, public_key: str) -> bool:
        ...

    async def close(self) -> None:
        ...


class Ed25519Verifier:
    """Verify detached Ed25519 signatures with PyNaCl off the event loop."""

    async def verify(self, payload: bytes, signature: str, public_key: str) -> bool:
        try:
            key_bytes = decode_public_key(public_key)
        except ValueError as exc:
            raise VerifierFaultError(f"Unusable public key: {exc}") from exc
        try:
            signature_bytes = decode_signature(signature)
        except ValueError:
            return False
        return await asyncio.to_thread(verify_signature_bytes, key_bytes, payload, signature_bytes)

    async def close(self) -> None:
        return None


class RemoteVerifier:
    """Delegate verification to an external sandboxed evaluator over HTTP.

    The evaluator receives ``{"payload": <base64>, "signature": ...,
    "public_key": ...}`` and must answer ``{"valid": true|false}``.
    """

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

    async def verify(self, payload: bytes, signature: str, public_key: str) -> bool:
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.url,
                json={
                    "payload": base64.b64encode(payload).decode(),
                    "signature": signature,
                    "public_key": public_key,
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("Verifier request failed: %s", exc)
            raise VerifierFaultError(f"Verifier request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise VerifierFaultError(f"Verifier responded with {response.status_code}")
        try:
            result: Any = response.json()
        except ValueError as exc:
            raise VerifierFaultError("Verifier returned invalid JSON") from exc
        if not isinstance(result, dict) or not isinstance(result.get("valid"), bool):
            raise VerifierFaultError("Verifier returned malformed output")
        return result["valid"]

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
