"""Authorization gate run before any inbox storage access."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from signed_inbox.core.errors import (
    AuthError,
    IdentityNotFoundError,
    KeyDirectoryUnavailableError,
    SignatureInvalidError,
    VerifierFaultError,
)

from .key_directory import KeyDirectory
from .verifier import SignatureVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """What a single request claims: who signed which bytes, and how."""

    identity: str
    payload: bytes
    signature: str


@dataclass(frozen=True)
class AuthResult:
    """Proof that ``identity`` signed the request with ``public_key``."""

    identity: str
    public_key: str


class AuthGate:
    """Resolve the signer's key, then verify the request signature.

    The directory lookup always completes before verification is attempted.
    Both collaborators run under a timeout and any failure denies the
    request.
    """

    def __init__(
        self,
        directory: KeyDirectory,
        verifier: SignatureVerifier,
        *,
        directory_timeout_seconds: float = 5.0,
        verifier_timeout_seconds: float = 5.0,
    ) -> None:
        self.directory = directory
        self.verifier = verifier
        self.directory_timeout_seconds = directory_timeout_seconds
        self.verifier_timeout_seconds = verifier_timeout_seconds

    async def resolve_public_key(self, identity: str) -> str:
        """Return ``identity``'s public key.

        Raises:
            IdentityNotFoundError: If the directory knows no key for it.
            KeyDirectoryUnavailableError: If the directory cannot answer.
        """
        try:
            key = await asyncio.wait_for(
                self.directory.resolve(identity),
                timeout=self.directory_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.warning("Key directory timed out resolving %s", identity)
            raise KeyDirectoryUnavailableError("Key directory timed out") from exc
        except AuthError:
            raise
        except Exception as exc:
            logger.warning("Key directory failed resolving %s: %s", identity, exc)
            raise KeyDirectoryUnavailableError(f"Key directory failed: {exc}") from exc

        if not key:
            raise IdentityNotFoundError(f"No public key found for {identity}")
        return key

    async def verify(self, payload: bytes, signature: str, public_key: str) -> None:
        """Check ``signature`` over ``payload``.

        Raises:
            SignatureInvalidError: If the verifier answers no.
            VerifierFaultError: If the verifier errors or times out.
        """
        if not signature:
            raise SignatureInvalidError("Missing signature")
        try:
            valid = await asyncio.wait_for(
                self.verifier.verify(payload, signature, public_key),
                timeout=self.verifier_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.warning("Signature verifier timed out")
            raise VerifierFaultError("Signature verifier timed out") from exc
        except AuthError:
            raise
        except Exception as exc:
            logger.warning("Signature verifier failed: %s", exc)
            raise VerifierFaultError(f"Signature verifier failed: {exc}") from exc

        if not valid:
            raise SignatureInvalidError("Invalid signature")

    async def authorize(self, identity: str, payload: bytes, signature: str) -> AuthResult:
        """Authorize ``identity`` for a request whose raw body is ``payload``."""
        public_key = await self.resolve_public_key(identity)
        await self.verify(payload, signature, public_key)
        return AuthResult(identity=identity, public_key=public_key)

    async def authorize_context(self, context: AuthContext) -> AuthResult:
        return await self.authorize(context.identity, context.payload, context.signature)

    async def close(self) -> None:
        await self.directory.close()
        await self.verifier.close()
