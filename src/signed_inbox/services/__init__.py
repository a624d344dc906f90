"""Business logic services for the Signed Inbox application."""

from .auth_gate import AuthContext, AuthGate, AuthResult
from .inbox import InboxService
from .key_directory import HttpKeyDirectory, KeyDirectory, StaticKeyDirectory
from .verifier import Ed25519Verifier, RemoteVerifier, SignatureVerifier

__all__ = [
    "AuthContext",
    "AuthGate",
    "AuthResult",
    "InboxService",
    "KeyDirectory",
    "HttpKeyDirectory",
    "StaticKeyDirectory",
    "SignatureVerifier",
    "Ed25519Verifier",
    "RemoteVerifier",
]
