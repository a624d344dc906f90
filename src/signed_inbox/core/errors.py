"""Exception hierarchy shared by the inbox service, the auth gate and the stores."""

from __future__ import annotations


class InboxError(RuntimeError):
    """Base exception for failures reported back to the caller.

    The string form of an ``InboxError`` is the ``error`` field of the
    structured ``{"success": false, "error": ...}`` outcome.
    """


class InvalidRequestError(InboxError):
    """Raised when a request body is malformed or semantically empty."""


class UnsupportedOperationError(InboxError):
    """Raised when the configured store lacks the capability an operation needs."""


class AuthError(InboxError):
    """Base class for authorization failures. No storage is touched after one."""


class IdentityNotFoundError(AuthError):
    """Raised when the key directory has no public key for the claimed identity."""


class KeyDirectoryUnavailableError(AuthError):
    """Raised when the key directory cannot be reached or answers garbage."""


class SignatureInvalidError(AuthError):
    """Raised when the signature does not verify under the resolved key."""


class VerifierFaultError(AuthError):
    """Raised when the verification capability itself fails."""


class StorageError(InboxError):
    """Raised when the message store backend fails."""


class NotFoundError(InboxError):
    """Raised when an addressed message id does not exist for the receiver."""
